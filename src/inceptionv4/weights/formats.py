"""Shape-tagged weight matrices handed from the loaders to the graph builder."""

from dataclasses import dataclass
from enum import Enum
from math import prod
from typing import Tuple

import torch


class Dimension(Enum):
    """Semantic axes of a weight matrix."""
    OUTPUT_DEPTH = "output_depth"
    INPUT_DEPTH = "input_depth"
    FILTER_HEIGHT = "filter_height"
    FILTER_WIDTH = "filter_width"
    OUTPUT_FEATURES = "output_features"
    INPUT_FEATURES = "input_features"


class Orientation(Enum):
    """Which axis of the 2-D matrix spans the output dimensions."""
    ROWS_SPAN_OUTPUT_DIMENSIONS = "rows_span_output"
    ROWS_SPAN_INPUT_DIMENSIONS = "rows_span_input"


@dataclass(frozen=True)
class WeightsFormat:
    """Dimension tags for the output (row) and input (column) sides."""
    output_dimensions: Tuple[Dimension, ...]
    input_dimensions: Tuple[Dimension, ...]
    orientation: Orientation = Orientation.ROWS_SPAN_OUTPUT_DIMENSIONS

    @property
    def dimensions(self) -> Tuple[Dimension, ...]:
        return self.output_dimensions + self.input_dimensions

    @property
    def is_pointwise(self) -> bool:
        """True for 1x1 convolutions, which are dense layers over channels."""
        return self.input_dimensions == (Dimension.INPUT_DEPTH,)


DENSE_FORMAT = WeightsFormat(
    output_dimensions=(Dimension.OUTPUT_FEATURES,),
    input_dimensions=(Dimension.INPUT_FEATURES,),
)

POINTWISE_CONV_FORMAT = WeightsFormat(
    output_dimensions=(Dimension.OUTPUT_DEPTH,),
    input_dimensions=(Dimension.INPUT_DEPTH,),
)

SPATIAL_CONV_FORMAT = WeightsFormat(
    output_dimensions=(Dimension.OUTPUT_DEPTH,),
    input_dimensions=(Dimension.INPUT_DEPTH, Dimension.FILTER_HEIGHT, Dimension.FILTER_WIDTH),
)

# Batch norm parameters are column vectors: one row per channel.
CHANNEL_VECTOR_FORMAT = WeightsFormat(
    output_dimensions=(Dimension.INPUT_DEPTH,),
    input_dimensions=(),
)


def _check_extents(fmt: WeightsFormat, output_shape, input_shape):
    if len(output_shape) != len(fmt.output_dimensions):
        raise ValueError(
            f"Output shape {output_shape} does not match tags {fmt.output_dimensions}"
        )
    if len(input_shape) != len(fmt.input_dimensions):
        raise ValueError(
            f"Input shape {input_shape} does not match tags {fmt.input_dimensions}"
        )


@dataclass(frozen=True)
class WeightTensor:
    """
    A weight blob reshaped into a 2-D matrix.

    Rows span the output dimensions, columns the input dimensions, so a
    convolution kernel is stored as ``output_depth x (input_depth * height * width)``
    with the row-major flattening of the original blob preserved.
    """
    weights: torch.Tensor
    format: WeightsFormat
    output_shape: Tuple[int, ...]
    input_shape: Tuple[int, ...]

    def __post_init__(self):
        _check_extents(self.format, self.output_shape, self.input_shape)
        if self.weights.dim() != 2:
            raise ValueError(f"Weights must be 2-D, got shape {tuple(self.weights.shape)}")
        rows, columns = self.weights.shape
        if rows * columns != self.weights.numel():
            raise ValueError("Weights matrix is not dense")
        if prod(self.output_shape) != rows:
            raise ValueError(
                f"Output extents {self.output_shape} do not multiply to {rows} rows"
            )
        if prod(self.input_shape) != columns:
            raise ValueError(
                f"Input extents {self.input_shape} do not multiply to {columns} columns"
            )

    @property
    def rows(self) -> int:
        return self.weights.shape[0]

    @property
    def columns(self) -> int:
        return self.weights.shape[1]

    @property
    def is_pointwise(self) -> bool:
        return self.format.is_pointwise

    @property
    def is_initialized(self) -> bool:
        return True

    def to_kernel(self) -> torch.Tensor:
        """View the matrix with one axis per dimension tag."""
        return self.weights.reshape(self.output_shape + self.input_shape)

    def flatten(self) -> torch.Tensor:
        return self.weights.reshape(-1)


@dataclass(frozen=True)
class UninitializedWeights:
    """
    Shape information for a weight matrix whose values the caller did not
    supply. The graph builder keeps the framework's default initialisation
    for these parameters.
    """
    format: WeightsFormat
    output_shape: Tuple[int, ...]
    input_shape: Tuple[int, ...]

    def __post_init__(self):
        _check_extents(self.format, self.output_shape, self.input_shape)

    @classmethod
    def dense(cls, output_units: int, input_units: int) -> "UninitializedWeights":
        return cls(DENSE_FORMAT, (output_units,), (input_units,))

    @property
    def rows(self) -> int:
        return prod(self.output_shape)

    @property
    def columns(self) -> int:
        return prod(self.input_shape)

    @property
    def is_pointwise(self) -> bool:
        return self.format.is_pointwise

    @property
    def is_initialized(self) -> bool:
        return False
