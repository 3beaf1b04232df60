"""
Inception V4 layer table.

The network is described as data: each block function returns a tuple of
layer specs, and the definition functions chain the blocks together:

    stem -> 4x Inception-A -> Reduction-A -> 7x Inception-B -> Reduction-B
         -> 3x Inception-C -> tail

Filter sizes are given as (width, height), matching the layout of the
pretrained kernels.
"""

from typing import Optional, Tuple

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
from .naming import BlockKind, ParamRole, conv_weight_names, weight_name
from .weights.formats import UninitializedWeights, WeightTensor

INPUT_NEURONS = Neurons3D(299, 299, 3)
FEATURE_NEURONS = Neurons3D(8, 8, 1536)
PRETRAINED_CLASSES = 1001

Layers = Tuple[LayerSpec, ...]


def conv_bn(block: BlockKind, index: int, position: int,
            filter_width: int, filter_height: int,
            input_depth: int, output_depth: int,
            stride: int = 1, padding: str = "same") -> Layers:
    """Convolution, batch normalisation and ReLU sharing one layer number."""
    names = conv_weight_names(block, index, position)
    return (
        ConvSpec(
            kernel_key=names[ParamRole.KERNEL],
            filter_width=filter_width,
            filter_height=filter_height,
            input_depth=input_depth,
            output_depth=output_depth,
            stride=(stride, stride),
            padding=padding,
        ),
        BatchNormSpec(
            beta_key=names[ParamRole.BETA],
            mean_key=names[ParamRole.MOVING_MEAN],
            variance_key=names[ParamRole.MOVING_VARIANCE],
            depth=output_depth,
        ),
        ActivationSpec("relu"),
    )


def max_pool_3x3_s2() -> PoolSpec:
    return PoolSpec("max", 3, 3, stride=(2, 2), padding="valid")


def avg_pool_3x3_same() -> PoolSpec:
    return PoolSpec("average", 3, 3, stride=(1, 1), padding="same")


def concat(*paths: Layers) -> ParallelSpec:
    return ParallelSpec(paths=tuple(paths))


def stem() -> Layers:
    """299x299x3 -> 35x35x384"""
    def c(position, *args, **kwargs):
        return conv_bn(BlockKind.STEM, 0, position, *args, **kwargs)

    return (
        *c(0, 3, 3, 3, 32, stride=2, padding="valid"),
        *c(1, 3, 3, 32, 32, padding="valid"),
        *c(2, 3, 3, 32, 64),
        concat(
            (max_pool_3x3_s2(),),
            c(3, 3, 3, 64, 96, stride=2, padding="valid"),
        ),
        concat(
            (*c(4, 1, 1, 160, 64),
             *c(5, 3, 3, 64, 96, padding="valid")),
            (*c(6, 1, 1, 160, 64),
             *c(7, 7, 1, 64, 64),
             *c(8, 1, 7, 64, 64),
             *c(9, 3, 3, 64, 96, padding="valid")),
        ),
        concat(
            c(10, 3, 3, 192, 192, stride=2, padding="valid"),
            (max_pool_3x3_s2(),),
        ),
    )


def inception_a(index: int) -> Layers:
    """35x35x384 -> 35x35x384"""
    def c(position, *args, **kwargs):
        return conv_bn(BlockKind.INCEPTION_A, index, position, *args, **kwargs)

    return (
        concat(
            c(0, 1, 1, 384, 96),
            (*c(1, 1, 1, 384, 64),
             *c(2, 3, 3, 64, 96)),
            (*c(3, 1, 1, 384, 64),
             *c(4, 3, 3, 64, 96),
             *c(5, 3, 3, 96, 96)),
            (avg_pool_3x3_same(),
             *c(6, 1, 1, 384, 96)),
        ),
    )


def reduction_a() -> Layers:
    """35x35x384 -> 17x17x1024"""
    def c(position, *args, **kwargs):
        return conv_bn(BlockKind.REDUCTION_A, 0, position, *args, **kwargs)

    return (
        concat(
            c(0, 3, 3, 384, 384, stride=2, padding="valid"),
            (*c(1, 1, 1, 384, 192),
             *c(2, 3, 3, 192, 224),
             *c(3, 3, 3, 224, 256, stride=2, padding="valid")),
            (max_pool_3x3_s2(),),
        ),
    )


def inception_b(index: int) -> Layers:
    """17x17x1024 -> 17x17x1024"""
    def c(position, *args, **kwargs):
        return conv_bn(BlockKind.INCEPTION_B, index, position, *args, **kwargs)

    return (
        concat(
            c(0, 1, 1, 1024, 384),
            (*c(1, 1, 1, 1024, 192),
             *c(2, 7, 1, 192, 224),
             *c(3, 1, 7, 224, 256)),
            (*c(4, 1, 1, 1024, 192),
             *c(5, 1, 7, 192, 192),
             *c(6, 7, 1, 192, 224),
             *c(7, 1, 7, 224, 224),
             *c(8, 7, 1, 224, 256)),
            (avg_pool_3x3_same(),
             *c(9, 1, 1, 1024, 128)),
        ),
    )


def reduction_b() -> Layers:
    """17x17x1024 -> 8x8x1536"""
    def c(position, *args, **kwargs):
        return conv_bn(BlockKind.REDUCTION_B, 0, position, *args, **kwargs)

    return (
        concat(
            (*c(0, 1, 1, 1024, 192),
             *c(1, 3, 3, 192, 192, stride=2, padding="valid")),
            (*c(2, 1, 1, 1024, 256),
             *c(3, 7, 1, 256, 256),
             *c(4, 1, 7, 256, 320),
             *c(5, 3, 3, 320, 320, stride=2, padding="valid")),
            (max_pool_3x3_s2(),),
        ),
    )


def inception_c(index: int) -> Layers:
    """8x8x1536 -> 8x8x1536"""
    def c(position, *args, **kwargs):
        return conv_bn(BlockKind.INCEPTION_C, index, position, *args, **kwargs)

    return (
        concat(
            c(0, 1, 1, 1536, 256),
            (*c(1, 1, 1, 1536, 384),
             concat(
                 c(2, 3, 1, 384, 256),
                 c(3, 1, 3, 384, 256),
             )),
            (*c(4, 1, 1, 1536, 384),
             *c(5, 1, 3, 384, 448),
             *c(6, 3, 1, 448, 512),
             concat(
                 c(7, 3, 1, 512, 256),
                 c(8, 1, 3, 512, 256),
             )),
            (avg_pool_3x3_same(),
             *c(9, 1, 1, 1536, 256)),
        ),
    )


def body() -> Layers:
    """Every block up to and including the last Inception-C."""
    layers = list(stem())
    for i in range(BlockKind.INCEPTION_A.repeats):
        layers.extend(inception_a(i))
    layers.extend(reduction_a())
    for i in range(BlockKind.INCEPTION_B.repeats):
        layers.extend(inception_b(i))
    layers.extend(reduction_b())
    for i in range(BlockKind.INCEPTION_C.repeats):
        layers.extend(inception_c(i))
    return tuple(layers)


def tail(output_neurons: int = PRETRAINED_CLASSES,
         weights: Optional[WeightTensor] = None,
         bias: Optional[WeightTensor] = None,
         regularisation_lambda: Optional[float] = None,
         dropout_keep_probability: float = 1.0,
         untrained: bool = False) -> Layers:
    """
    Global average pooling, optional dropout, dense layer and softmax.

    Args:
        output_neurons: Number of classes
        weights: Dense weights, ``output_neurons x 1536``; read from the
            store when omitted
        bias: Dense bias, ``output_neurons x 1``
        regularisation_lambda: Weight decay of the dense weights
        dropout_keep_probability: Keep probability of the dense input
        untrained: Leave omitted weights at their default initialisation
            instead of reading them from the store
    """
    if not 0.0 < dropout_keep_probability <= 1.0:
        raise ValueError(f"Keep probability must be in (0, 1], got {dropout_keep_probability}")

    input_units = FEATURE_NEURONS.depth
    if untrained:
        if weights is None:
            weights = UninitializedWeights.dense(output_neurons, input_units)
        if bias is None:
            bias = UninitializedWeights.dense(output_neurons, 1)

    layers = [PoolSpec("average", FEATURE_NEURONS.width, FEATURE_NEURONS.height,
                       stride=(1, 1), padding="valid")]
    if dropout_keep_probability < 1.0:
        layers.append(DropoutSpec(dropout_keep_probability))
    layers.append(DenseSpec(
        weights_key=weight_name(BlockKind.TAIL, 0, 0, ParamRole.KERNEL),
        bias_key=weight_name(BlockKind.TAIL, 0, 0, ParamRole.BIAS),
        output_units=output_neurons,
        input_units=input_units,
        regularisation_lambda=regularisation_lambda,
        weights=weights,
        bias=bias,
    ))
    layers.append(ActivationSpec("softmax"))
    return tuple(layers)


def inception_v4_definition(regularisation_lambda: Optional[float] = None,
                            dropout_keep_probability: float = 1.0,
                            name: str = "inceptionV4") -> GraphDefinition:
    """The pretrained classifier: 299x299x3 images to 1001 class probabilities."""
    return GraphDefinition(
        name=name,
        input_neurons=INPUT_NEURONS,
        layers=body() + tail(
            regularisation_lambda=regularisation_lambda,
            dropout_keep_probability=dropout_keep_probability,
        ),
    )


def inception_v4_without_tail_definition() -> GraphDefinition:
    """Feature extractor ending at the 8x8x1536 output of the last Inception-C block."""
    return GraphDefinition(
        name="inceptionV4WithoutTail",
        input_neurons=INPUT_NEURONS,
        layers=body(),
    )


def inception_v4_custom_tail_definition(output_neurons: int,
                                        weights: Optional[WeightTensor] = None,
                                        bias: Optional[WeightTensor] = None,
                                        regularisation_lambda: float = 0.0,
                                        dropout_keep_probability: float = 1.0) -> GraphDefinition:
    """Pretrained body with a replacement dense layer of ``output_neurons`` classes."""
    return GraphDefinition(
        name="inceptionV4WithCustomTail",
        input_neurons=INPUT_NEURONS,
        layers=body() + tail(
            output_neurons=output_neurons,
            weights=weights,
            bias=bias,
            regularisation_lambda=regularisation_lambda,
            dropout_keep_probability=dropout_keep_probability,
            untrained=True,
        ),
    )


def inception_v4_tail_definition(output_neurons: int,
                                 weights: Optional[WeightTensor] = None,
                                 bias: Optional[WeightTensor] = None,
                                 regularisation_lambda: float = 0.0,
                                 dropout_keep_probability: float = 1.0) -> GraphDefinition:
    """The replacement tail alone, applied to precomputed 8x8x1536 features."""
    return GraphDefinition(
        name="inceptionV4CustomTail",
        input_neurons=FEATURE_NEURONS,
        layers=tail(
            output_neurons=output_neurons,
            weights=weights,
            bias=bias,
            regularisation_lambda=regularisation_lambda,
            dropout_keep_probability=dropout_keep_probability,
            untrained=True,
        ),
    )
