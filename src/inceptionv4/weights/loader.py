"""Weights loaders: translate a blob name and target shape into a weight matrix."""

from math import prod
from typing import Tuple, Union

import torch

from ..errors import ShapeMismatchError
from .formats import (
    CHANNEL_VECTOR_FORMAT,
    DENSE_FORMAT,
    POINTWISE_CONV_FORMAT,
    SPATIAL_CONV_FORMAT,
    UninitializedWeights,
    WeightsFormat,
    WeightTensor,
)
from .store import ResourceStore

LoadedWeights = Union[WeightTensor, UninitializedWeights]


def convolutional_layout(filter_width: int, filter_height: int,
                         input_depth: int, output_depth: int) -> Tuple[WeightsFormat, Tuple[int, ...], Tuple[int, ...]]:
    """
    Format and extents for a convolution kernel.

    A 1x1 kernel is tagged with the input depth only so that downstream
    consumers can treat it as a dense layer over channels.
    """
    if filter_width == 1 and filter_height == 1:
        return POINTWISE_CONV_FORMAT, (output_depth,), (input_depth,)
    return SPATIAL_CONV_FORMAT, (output_depth,), (input_depth, filter_height, filter_width)


def _check_positive(**dims):
    for key, value in dims.items():
        if value < 1:
            raise ValueError(f"{key} must be positive, got {value}")


class WeightsLoader:
    """Supplies the weights each layer of a graph definition needs."""

    def load_dense(self, name: str, output_units: int, input_units: int) -> LoadedWeights:
        """Weights of a fully connected layer, rows = output units."""
        raise NotImplementedError

    def load_convolutional(self, name: str, filter_width: int, filter_height: int,
                           input_depth: int, output_depth: int) -> LoadedWeights:
        """Kernel of a convolution, rows = output depth."""
        raise NotImplementedError

    def load_batch_norm_param(self, name: str, channel_count: int) -> LoadedWeights:
        """Beta, moving mean or moving variance as a column vector."""
        raise NotImplementedError


class PretrainedWeightsLoader(WeightsLoader):
    """
    Loads pretrained weights from a ResourceStore.

    Every call reads the blob afresh; values are passed through unchanged.
    """

    def __init__(self, store: ResourceStore):
        self.store = store

    def __repr__(self):
        return f"PretrainedWeightsLoader({self.store!r})"

    def _load(self, name: str, fmt: WeightsFormat,
              output_shape: Tuple[int, ...], input_shape: Tuple[int, ...]) -> WeightTensor:
        rows, columns = prod(output_shape), prod(input_shape)

        values = self.store.read_floats(name)
        if values.size != rows * columns:
            raise ShapeMismatchError(name, rows * columns, int(values.size),
                                     output_shape + input_shape)

        weights = torch.from_numpy(values).reshape(rows, columns)
        return WeightTensor(weights=weights, format=fmt,
                            output_shape=output_shape, input_shape=input_shape)

    def load_dense(self, name, output_units, input_units):
        _check_positive(output_units=output_units, input_units=input_units)
        return self._load(name, DENSE_FORMAT, (output_units,), (input_units,))

    def load_convolutional(self, name, filter_width, filter_height, input_depth, output_depth):
        _check_positive(filter_width=filter_width, filter_height=filter_height,
                        input_depth=input_depth, output_depth=output_depth)
        fmt, output_shape, input_shape = convolutional_layout(
            filter_width, filter_height, input_depth, output_depth)
        return self._load(name, fmt, output_shape, input_shape)

    def load_batch_norm_param(self, name, channel_count):
        _check_positive(channel_count=channel_count)
        return self._load(name, CHANNEL_VECTOR_FORMAT, (channel_count,), ())


class UntrainedWeightsLoader(WeightsLoader):
    """Returns shape-only placeholders; the network keeps its default initialisation."""

    def load_dense(self, name, output_units, input_units):
        _check_positive(output_units=output_units, input_units=input_units)
        return UninitializedWeights.dense(output_units, input_units)

    def load_convolutional(self, name, filter_width, filter_height, input_depth, output_depth):
        _check_positive(filter_width=filter_width, filter_height=filter_height,
                        input_depth=input_depth, output_depth=output_depth)
        return UninitializedWeights(*convolutional_layout(
            filter_width, filter_height, input_depth, output_depth))

    def load_batch_norm_param(self, name, channel_count):
        _check_positive(channel_count=channel_count)
        return UninitializedWeights(CHANNEL_VECTOR_FORMAT, (channel_count,), ())
