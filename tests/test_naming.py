import pytest

from inceptionv4 import BlockKind, ParamRole, layer_number, weight_name
from inceptionv4.naming import conv_weight_names


def test_block_offsets():
    assert layer_number(BlockKind.STEM, 0, 0) == 1
    assert layer_number(BlockKind.STEM, 0, 10) == 11
    assert layer_number(BlockKind.INCEPTION_A, 0, 0) == 12
    assert layer_number(BlockKind.INCEPTION_A, 1, 0) == 19
    assert layer_number(BlockKind.INCEPTION_A, 3, 6) == 39
    assert layer_number(BlockKind.REDUCTION_A, 0, 3) == 43
    assert layer_number(BlockKind.INCEPTION_B, 0, 0) == 44
    assert layer_number(BlockKind.INCEPTION_B, 6, 9) == 113
    assert layer_number(BlockKind.REDUCTION_B, 0, 5) == 119
    assert layer_number(BlockKind.INCEPTION_C, 2, 9) == 149


def test_convolutional_names():
    assert weight_name(BlockKind.STEM, 0, 0, ParamRole.KERNEL) == "conv2d_1_kernel0"
    assert weight_name(BlockKind.INCEPTION_A, 1, 2, ParamRole.MOVING_VARIANCE) == \
        "batch_normalization_21_moving_variance0"

    names = conv_weight_names(BlockKind.REDUCTION_B, 0, 0)
    assert names == {
        ParamRole.KERNEL: "conv2d_114_kernel0",
        ParamRole.BETA: "batch_normalization_114_beta0",
        ParamRole.MOVING_MEAN: "batch_normalization_114_moving_mean0",
        ParamRole.MOVING_VARIANCE: "batch_normalization_114_moving_variance0",
    }


def test_dense_names():
    assert weight_name(BlockKind.TAIL, 0, 0, ParamRole.KERNEL) == "dense_1_kernel0"
    assert weight_name(BlockKind.TAIL, 0, 0, ParamRole.BIAS) == "dense_1_bias0"


def test_accepts_enum_values():
    assert weight_name("inception_c", 0, 0, "beta") == "batch_normalization_120_beta0"


@pytest.mark.parametrize("block,index,position", [
    (BlockKind.INCEPTION_A, 4, 0),
    (BlockKind.INCEPTION_B, 0, 10),
    (BlockKind.STEM, 1, 0),
    (BlockKind.REDUCTION_A, 0, -1),
])
def test_out_of_range(block, index, position):
    with pytest.raises(ValueError):
        layer_number(block, index, position)


def test_role_must_match_block():
    with pytest.raises(ValueError):
        weight_name(BlockKind.TAIL, 0, 0, ParamRole.BETA)
    with pytest.raises(ValueError):
        weight_name(BlockKind.STEM, 0, 0, ParamRole.BIAS)
