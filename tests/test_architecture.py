import re
import warnings

import pytest

from inceptionv4 import (
    GraphBuilder,
    GraphDefinition,
    Neurons3D,
    UntrainedWeightsLoader,
    inception_v4_custom_tail_definition,
    inception_v4_definition,
    inception_v4_tail_definition,
    inception_v4_without_tail_definition,
)
from inceptionv4.architecture import (
    INPUT_NEURONS,
    inception_a,
    inception_b,
    inception_c,
    reduction_a,
    reduction_b,
    stem,
)
from inceptionv4.ir import ActivationSpec, BatchNormSpec, ConvSpec, DenseSpec, DropoutSpec


def build_untrained(definition):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return GraphBuilder(UntrainedWeightsLoader()).build(definition)


def layer_numbers(definition, pattern):
    numbers = []
    for key in definition.weight_keys():
        match = re.fullmatch(pattern, key)
        if match:
            numbers.append(int(match.group(1)))
    return numbers


def test_every_convolution_used_exactly_once():
    definition = inception_v4_definition()

    kernels = layer_numbers(definition, r"conv2d_(\d+)_kernel0")
    betas = layer_numbers(definition, r"batch_normalization_(\d+)_beta0")
    means = layer_numbers(definition, r"batch_normalization_(\d+)_moving_mean0")
    variances = layer_numbers(definition, r"batch_normalization_(\d+)_moving_variance0")

    assert kernels == list(range(1, 150))
    assert betas == kernels
    assert means == kernels
    assert variances == kernels


def test_single_dense_layer_then_softmax():
    definition = inception_v4_definition()
    dense = [layer for layer in definition.walk() if isinstance(layer, DenseSpec)]

    assert len(dense) == 1
    assert (dense[0].weights_key, dense[0].bias_key) == ("dense_1_kernel0", "dense_1_bias0")
    assert (dense[0].output_units, dense[0].input_units) == (1001, 1536)
    assert definition.layers[-1] == ActivationSpec("softmax")
    assert definition.weight_keys()[-2:] == ("dense_1_kernel0", "dense_1_bias0")


def test_convolutions_followed_by_batch_norm_and_relu():
    layers = list(inception_v4_without_tail_definition().walk())

    for i, layer in enumerate(layers):
        if isinstance(layer, ConvSpec):
            assert isinstance(layers[i + 1], BatchNormSpec)
            assert layers[i + 1].depth == layer.output_depth
            assert layers[i + 2] == ActivationSpec("relu")


def test_asymmetric_filters():
    convs = [layer for layer in GraphDefinition("b", INPUT_NEURONS, inception_b(0)).walk()
             if isinstance(layer, ConvSpec)]
    sizes = {layer.kernel_key: (layer.filter_width, layer.filter_height) for layer in convs}

    assert sizes["conv2d_46_kernel0"] == (7, 1)
    assert sizes["conv2d_47_kernel0"] == (1, 7)
    assert sizes["conv2d_49_kernel0"] == (1, 7)


def test_custom_tail_reads_only_body_weights():
    definition = inception_v4_custom_tail_definition(10)

    assert definition.name == "inceptionV4WithCustomTail"
    assert not any(key.startswith("dense_") for key in definition.weight_keys())
    assert len(definition.weight_keys()) == 149 * 4


def test_tail_definition():
    definition = inception_v4_tail_definition(10, dropout_keep_probability=0.5)

    assert definition.input_neurons == Neurons3D(8, 8, 1536)
    assert any(isinstance(layer, DropoutSpec) for layer in definition.layers)
    assert definition.weight_keys() == ()


def test_rejects_invalid_keep_probability():
    with pytest.raises(ValueError):
        inception_v4_definition(dropout_keep_probability=0.0)
    with pytest.raises(ValueError):
        inception_v4_tail_definition(10, dropout_keep_probability=1.5)


@pytest.mark.parametrize("layers,input_neurons,output_neurons", [
    (stem(), Neurons3D(299, 299, 3), Neurons3D(35, 35, 384)),
    (inception_a(0), Neurons3D(35, 35, 384), Neurons3D(35, 35, 384)),
    (reduction_a(), Neurons3D(35, 35, 384), Neurons3D(17, 17, 1024)),
    (inception_b(0), Neurons3D(17, 17, 1024), Neurons3D(17, 17, 1024)),
    (reduction_b(), Neurons3D(17, 17, 1024), Neurons3D(8, 8, 1536)),
    (inception_c(0), Neurons3D(8, 8, 1536), Neurons3D(8, 8, 1536)),
])
def test_block_shapes(layers, input_neurons, output_neurons):
    graph = build_untrained(GraphDefinition("block", input_neurons, layers))

    assert graph.output_neurons == output_neurons


def test_full_network_summary():
    graph = build_untrained(inception_v4_definition())
    summary = graph.summary()

    assert graph.output_neurons == Neurons3D(1, 1, 1001)
    assert summary["conv"] == 149
    assert summary["batch_norm"] == 149
    assert summary["pointwise_conv"] == 61
    assert summary["dense"] == 1
    assert len(graph.uninitialized) == 149 * 4 + 2
