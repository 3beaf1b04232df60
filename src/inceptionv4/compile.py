"""Graph builder: interprets a GraphDefinition into torch modules with loaded weights."""

from collections import Counter
from typing import Dict, List, Optional, Tuple, Union
import logging
import warnings

import torch
import torch.nn as nn

from .context import NetworkContext
from .errors import ArchitectureError
from .ir import (
    ActivationSpec,
    BatchNormSpec,
    ConvSpec,
    DenseSpec,
    DropoutSpec,
    GraphDefinition,
    LayerSpec,
    Neurons3D,
    ParallelSpec,
    PoolSpec,
)
from .weights.formats import UninitializedWeights, WeightTensor
from .weights.loader import WeightsLoader

logger = logging.getLogger(__name__)

# Epsilon the pretrained batch norm statistics were computed with
BATCH_NORM_EPSILON = 1e-3


class ParallelPaths(nn.Module):
    """Runs each path on the same input and concatenates along the channel axis."""

    def __init__(self, paths: List[nn.Module]):
        super().__init__()
        self.paths = nn.ModuleList(paths)

    def forward(self, x):
        return torch.cat([path(x) for path in self.paths], dim=1)


class ComponentGraph(nn.Module):
    """
    Executable graph produced by the GraphBuilder.

    Holds the assembled components together with the neuron shapes at its
    boundaries and the weight decay of each regularised parameter.
    """

    def __init__(self,
                 name: str,
                 components: nn.Sequential,
                 input_neurons: Neurons3D,
                 output_neurons: Neurons3D,
                 decay_by_param: Optional[Dict[int, float]] = None,
                 counts: Optional[Dict[str, int]] = None,
                 uninitialized: Tuple[str, ...] = ()):
        super().__init__()
        self.name = name
        self.components = components
        self.input_neurons = input_neurons
        self.output_neurons = output_neurons
        self.counts = dict(counts or {})
        self.uninitialized = uninitialized

        decay_by_param = decay_by_param or {}
        self.weight_decay: Dict[str, float] = {
            param_name: decay_by_param[id(param)]
            for param_name, param in self.named_parameters()
            if id(param) in decay_by_param
        }

    def forward(self, x):
        return self.components(x)

    def summary(self) -> Dict[str, int]:
        """Component counts by kind, plus the parameter count."""
        summary = dict(self.counts)
        summary["parameters"] = sum(p.numel() for p in self.parameters())
        return summary


class GraphBuilder:
    """
    Builds torch modules from layer specs, pulling weights from a WeightsLoader.

    Neuron shapes are tracked through every layer so that inconsistent
    definitions fail at build time rather than on the first forward pass.
    """

    def __init__(self, weights_loader: WeightsLoader, context: Optional[NetworkContext] = None):
        self.weights_loader = weights_loader
        self.context = context or NetworkContext()

    def build(self, definition: GraphDefinition) -> ComponentGraph:
        """
        Build a graph definition.

        Args:
            definition: Layer table with its input shape

        Returns:
            The component graph, on the CPU, with weights loaded

        Raises:
            ArchitectureError: The definition is inconsistent
            WeightsError: A weight blob is missing, malformed or misshapen
        """
        self._decay: Dict[int, float] = {}
        self._counts: Counter = Counter()
        self._uninitialized: List[str] = []

        modules, output_neurons = self._build_layers(definition.layers, definition.input_neurons)

        graph = ComponentGraph(
            name=definition.name,
            components=nn.Sequential(*modules),
            input_neurons=definition.input_neurons,
            output_neurons=output_neurons,
            decay_by_param=self._decay,
            counts=self._counts,
            uninitialized=tuple(self._uninitialized),
        )

        if self._uninitialized:
            warnings.warn(
                f"{len(self._uninitialized)} weight tensors of {definition.name} were not "
                f"supplied and keep their default initialisation"
            )
        logger.debug("Built %s: %s", definition.name, graph.summary())
        return graph

    def _build_layers(self, layers, neurons: Neurons3D) -> Tuple[List[nn.Module], Neurons3D]:
        modules = []
        for layer in layers:
            module, neurons = self._build_layer(layer, neurons)
            modules.append(module)
        return modules, neurons

    def _build_layer(self, layer: LayerSpec, neurons: Neurons3D) -> Tuple[nn.Module, Neurons3D]:
        self._counts[layer.kind] += 1
        if isinstance(layer, ConvSpec):
            return self._build_conv(layer, neurons)
        elif isinstance(layer, BatchNormSpec):
            return self._build_batch_norm(layer, neurons)
        elif isinstance(layer, ActivationSpec):
            return self._build_activation(layer), neurons
        elif isinstance(layer, PoolSpec):
            return self._build_pool(layer, neurons)
        elif isinstance(layer, DropoutSpec):
            return nn.Dropout(p=1.0 - layer.keep_probability), neurons
        elif isinstance(layer, DenseSpec):
            return self._build_dense(layer, neurons)
        elif isinstance(layer, ParallelSpec):
            return self._build_parallel(layer, neurons)
        raise ArchitectureError(f"Unsupported layer spec: {layer!r}")

    @staticmethod
    def _output_extent(size: int, filter_size: int, stride: int, padding: str, label: str) -> int:
        if padding == "same":
            return size
        extent = (size - filter_size) // stride + 1
        if extent < 1:
            raise ArchitectureError(f"{label}: filter {filter_size} does not fit input of size {size}")
        return extent

    def _output_neurons(self, neurons: Neurons3D, filter_width: int, filter_height: int,
                        stride, padding: str, depth: int, label: str) -> Neurons3D:
        if padding not in ("valid", "same"):
            raise ArchitectureError(f"{label}: unknown padding {padding!r}")
        if padding == "same" and tuple(stride) != (1, 1):
            raise ArchitectureError(f"{label}: same padding requires stride 1, got {stride}")
        return Neurons3D(
            width=self._output_extent(neurons.width, filter_width, stride[0], padding, label),
            height=self._output_extent(neurons.height, filter_height, stride[1], padding, label),
            depth=depth,
        )

    def _load_checked(self, weights: Union[WeightTensor, UninitializedWeights],
                      key: str, rows: int, columns: int):
        if weights.rows != rows or weights.columns != columns:
            raise ArchitectureError(
                f"{key}: expected a {rows}x{columns} weights matrix, got {weights.rows}x{weights.columns}"
            )
        if not weights.is_initialized:
            self._uninitialized.append(key)
            return None
        return weights

    def _regularise(self, param: nn.Parameter, decay: float):
        if decay:
            self._decay[id(param)] = decay

    def _build_conv(self, spec: ConvSpec, neurons: Neurons3D):
        if spec.input_depth != neurons.depth:
            raise ArchitectureError(
                f"{spec.kernel_key}: expects input depth {spec.input_depth}, got {neurons.depth}"
            )
        output_neurons = self._output_neurons(neurons, spec.filter_width, spec.filter_height,
                                              spec.stride, spec.padding, spec.output_depth,
                                              spec.kernel_key)

        conv = nn.Conv2d(
            spec.input_depth,
            spec.output_depth,
            kernel_size=(spec.filter_height, spec.filter_width),
            stride=(spec.stride[1], spec.stride[0]),
            padding=0 if spec.padding == "valid" else "same",
            bias=False,
        )

        weights = self.weights_loader.load_convolutional(
            spec.kernel_key, spec.filter_width, spec.filter_height,
            spec.input_depth, spec.output_depth)
        if weights.is_pointwise:
            self._counts["pointwise_conv"] += 1

        weights = self._load_checked(weights, spec.kernel_key, spec.output_depth,
                                     spec.filter_width * spec.filter_height * spec.input_depth)
        if weights is not None:
            kernel = weights.to_kernel()
            if weights.is_pointwise:
                # (out, in) -> (out, in, 1, 1)
                kernel = kernel[:, :, None, None]
            with torch.no_grad():
                conv.weight.copy_(kernel)

        self._regularise(conv.weight, self.context.regularisation_lambda)
        return conv, output_neurons

    def _build_batch_norm(self, spec: BatchNormSpec, neurons: Neurons3D):
        if spec.depth != neurons.depth:
            raise ArchitectureError(
                f"{spec.beta_key}: expects depth {spec.depth}, got {neurons.depth}"
            )

        bn = nn.BatchNorm2d(spec.depth, eps=BATCH_NORM_EPSILON)
        # The pretrained network has no scale parameter
        with torch.no_grad():
            bn.weight.fill_(1.0)
        bn.weight.requires_grad_(False)

        targets = (
            (spec.beta_key, bn.bias),
            (spec.mean_key, bn.running_mean),
            (spec.variance_key, bn.running_var),
        )
        for key, target in targets:
            weights = self.weights_loader.load_batch_norm_param(key, spec.depth)
            weights = self._load_checked(weights, key, spec.depth, 1)
            if weights is not None:
                with torch.no_grad():
                    target.copy_(weights.flatten())

        self._regularise(bn.bias, self.context.batch_norm_regularisation_lambda)
        return bn, neurons

    @staticmethod
    def _build_activation(spec: ActivationSpec) -> nn.Module:
        if spec.function == "relu":
            return nn.ReLU()
        elif spec.function == "softmax":
            return nn.Softmax(dim=1)
        raise ArchitectureError(f"Unsupported activation function: {spec.function!r}")

    def _build_pool(self, spec: PoolSpec, neurons: Neurons3D):
        label = f"{spec.pooling} pooling {spec.filter_width}x{spec.filter_height}"
        output_neurons = self._output_neurons(neurons, spec.filter_width, spec.filter_height,
                                              spec.stride, spec.padding, neurons.depth, label)
        if spec.padding == "same":
            if spec.filter_width % 2 == 0 or spec.filter_height % 2 == 0:
                raise ArchitectureError(f"{label}: same padding requires odd filter sizes")
            padding = (spec.filter_height // 2, spec.filter_width // 2)
        else:
            padding = 0

        kernel_size = (spec.filter_height, spec.filter_width)
        stride = (spec.stride[1], spec.stride[0])
        if spec.pooling == "max":
            pool = nn.MaxPool2d(kernel_size, stride=stride, padding=padding)
        elif spec.pooling == "average":
            pool = nn.AvgPool2d(kernel_size, stride=stride, padding=padding,
                                count_include_pad=False)
        else:
            raise ArchitectureError(f"Unsupported pooling: {spec.pooling!r}")
        return pool, output_neurons

    def _build_dense(self, spec: DenseSpec, neurons: Neurons3D):
        if neurons.size != spec.input_units:
            raise ArchitectureError(
                f"{spec.weights_key}: expects {spec.input_units} inputs, got {neurons.size}"
            )

        linear = nn.Linear(spec.input_units, spec.output_units)

        weights = spec.weights
        if weights is None:
            weights = self.weights_loader.load_dense(spec.weights_key, spec.output_units, spec.input_units)
        weights = self._load_checked(weights, spec.weights_key, spec.output_units, spec.input_units)

        bias = spec.bias
        if bias is None:
            bias = self.weights_loader.load_dense(spec.bias_key, spec.output_units, 1)
        bias = self._load_checked(bias, spec.bias_key, spec.output_units, 1)

        with torch.no_grad():
            if weights is not None:
                linear.weight.copy_(weights.weights)
            if bias is not None:
                linear.bias.copy_(bias.flatten())

        decay = spec.regularisation_lambda
        if decay is None:
            decay = self.context.regularisation_lambda
        self._regularise(linear.weight, decay)

        module = nn.Sequential(nn.Flatten(), linear)
        return module, Neurons3D(1, 1, spec.output_units)

    def _build_parallel(self, spec: ParallelSpec, neurons: Neurons3D):
        if spec.combination != "filter_concat":
            raise ArchitectureError(f"Unsupported path combination: {spec.combination!r}")
        if not spec.paths:
            raise ArchitectureError("Parallel block has no paths")

        paths = []
        outputs = []
        for path in spec.paths:
            modules, path_neurons = self._build_layers(path, neurons)
            paths.append(nn.Sequential(*modules))
            outputs.append(path_neurons)

        first = outputs[0]
        for other in outputs[1:]:
            if (other.width, other.height) != (first.width, first.height):
                raise ArchitectureError(
                    f"Cannot concatenate paths with outputs {first.width}x{first.height} "
                    f"and {other.width}x{other.height}"
                )

        depth = sum(n.depth for n in outputs)
        return ParallelPaths(paths), Neurons3D(first.width, first.height, depth)
