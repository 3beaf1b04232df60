from typing import Tuple, Union, Literal, Optional, Iterator, ClassVar
from dataclasses import dataclass, field

from .weights.formats import WeightTensor, UninitializedWeights

Padding = Literal["valid", "same"]
PoolKind = Literal["max", "average"]
ActivationKind = Literal["relu", "softmax"]
Combination = Literal["filter_concat"]
Stride = Tuple[int, int]  # (width, height)

@dataclass(frozen=True)
class Neurons3D:
    width: int
    height: int
    depth: int

    @property
    def size(self) -> int:
        return self.width * self.height * self.depth

@dataclass(frozen=True)
class ConvSpec:
    kind: ClassVar[str] = "conv"
    kernel_key: str
    filter_width: int
    filter_height: int
    input_depth: int
    output_depth: int
    stride: Stride = (1, 1)
    padding: Padding = "valid"

@dataclass(frozen=True)
class BatchNormSpec:
    kind: ClassVar[str] = "batch_norm"
    beta_key: str
    mean_key: str
    variance_key: str
    depth: int

@dataclass(frozen=True)
class ActivationSpec:
    kind: ClassVar[str] = "activation"
    function: ActivationKind

@dataclass(frozen=True)
class PoolSpec:
    kind: ClassVar[str] = "pool"
    pooling: PoolKind
    filter_width: int
    filter_height: int
    stride: Stride = (1, 1)
    padding: Padding = "valid"

@dataclass(frozen=True)
class DropoutSpec:
    kind: ClassVar[str] = "dropout"
    keep_probability: float

@dataclass(frozen=True)
class DenseSpec:
    kind: ClassVar[str] = "dense"
    weights_key: str
    bias_key: str
    output_units: int
    input_units: int
    regularisation_lambda: Optional[float] = None  # None: use the context default
    # Explicit weights take precedence over the keys
    weights: Optional[Union[WeightTensor, UninitializedWeights]] = field(default=None, compare=False)
    bias: Optional[Union[WeightTensor, UninitializedWeights]] = field(default=None, compare=False)

@dataclass(frozen=True)
class ParallelSpec:
    kind: ClassVar[str] = "parallel"
    paths: Tuple[Tuple["LayerSpec", ...], ...]
    combination: Combination = "filter_concat"

LayerSpec = Union[ConvSpec, BatchNormSpec, ActivationSpec, PoolSpec, DropoutSpec, DenseSpec, ParallelSpec]

@dataclass(frozen=True)
class GraphDefinition:
    name: str
    input_neurons: Neurons3D
    layers: Tuple[LayerSpec, ...]

    def walk(self) -> Iterator[LayerSpec]:
        """Yield every layer, descending into parallel paths in order."""
        def _walk(layers):
            for layer in layers:
                yield layer
                if isinstance(layer, ParallelSpec):
                    for path in layer.paths:
                        yield from _walk(path)
        return _walk(self.layers)

    def weight_keys(self) -> Tuple[str, ...]:
        """Blob names the definition reads, in construction order."""
        keys = []
        for layer in self.walk():
            if isinstance(layer, ConvSpec):
                keys.append(layer.kernel_key)
            elif isinstance(layer, BatchNormSpec):
                keys.extend([layer.beta_key, layer.mean_key, layer.variance_key])
            elif isinstance(layer, DenseSpec):
                if layer.weights is None:
                    keys.append(layer.weights_key)
                if layer.bias is None:
                    keys.append(layer.bias_key)
        return tuple(keys)
