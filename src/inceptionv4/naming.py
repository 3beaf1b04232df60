"""Resource names of the pretrained Inception V4 weights."""

from enum import Enum


class BlockKind(Enum):
    """Blocks of the network with their layer numbering."""
    STEM = "stem"
    INCEPTION_A = "inception_a"
    REDUCTION_A = "reduction_a"
    INCEPTION_B = "inception_b"
    REDUCTION_B = "reduction_b"
    INCEPTION_C = "inception_c"
    TAIL = "tail"

    @property
    def base_layer(self) -> int:
        """Number of the first layer of the first block of this kind."""
        mapping = {
            BlockKind.STEM: 1,
            BlockKind.INCEPTION_A: 12,
            BlockKind.REDUCTION_A: 40,
            BlockKind.INCEPTION_B: 44,
            BlockKind.REDUCTION_B: 114,
            BlockKind.INCEPTION_C: 120,
            BlockKind.TAIL: 1,
        }
        return mapping[self]

    @property
    def layers_per_block(self) -> int:
        mapping = {
            BlockKind.STEM: 11,
            BlockKind.INCEPTION_A: 7,
            BlockKind.REDUCTION_A: 4,
            BlockKind.INCEPTION_B: 10,
            BlockKind.REDUCTION_B: 6,
            BlockKind.INCEPTION_C: 10,
            BlockKind.TAIL: 1,
        }
        return mapping[self]

    @property
    def repeats(self) -> int:
        mapping = {
            BlockKind.INCEPTION_A: 4,
            BlockKind.INCEPTION_B: 7,
            BlockKind.INCEPTION_C: 3,
        }
        return mapping.get(self, 1)

    @property
    def is_dense(self) -> bool:
        return self is BlockKind.TAIL


class ParamRole(Enum):
    """Parameter of a layer stored as a separate blob."""
    KERNEL = "kernel"
    BIAS = "bias"
    BETA = "beta"
    MOVING_MEAN = "moving_mean"
    MOVING_VARIANCE = "moving_variance"


CONV_ROLES = (ParamRole.KERNEL, ParamRole.BETA, ParamRole.MOVING_MEAN, ParamRole.MOVING_VARIANCE)
DENSE_ROLES = (ParamRole.KERNEL, ParamRole.BIAS)


def layer_number(block: BlockKind, index: int, position: int) -> int:
    """
    Number of a layer in the pretrained weights.

    Args:
        block: Kind of block the layer belongs to
        index: Which repetition of the block (0-based)
        position: Position of the layer within the block (0-based)

    Returns:
        The 1-based layer number used in the blob names
    """
    block = BlockKind(block)
    if not 0 <= index < block.repeats:
        raise ValueError(f"{block.value} has {block.repeats} blocks, got index {index}")
    if not 0 <= position < block.layers_per_block:
        raise ValueError(
            f"{block.value} has {block.layers_per_block} layers per block, got position {position}"
        )
    return block.base_layer + index * block.layers_per_block + position


def weight_name(block: BlockKind, index: int, position: int, role: ParamRole) -> str:
    """
    Blob name for one parameter of one layer.

    Convolutional blocks map to ``conv2d_<n>_kernel0`` and
    ``batch_normalization_<n>_<role>0``; the tail maps to
    ``dense_<n>_kernel0`` and ``dense_<n>_bias0``.
    """
    block = BlockKind(block)
    role = ParamRole(role)
    n = layer_number(block, index, position)

    if block.is_dense:
        if role not in DENSE_ROLES:
            raise ValueError(f"Dense layers have no {role.value} parameter")
        return f"dense_{n}_{role.value}0"

    if role not in CONV_ROLES:
        raise ValueError(f"Convolutional layers have no {role.value} parameter")
    if role is ParamRole.KERNEL:
        return f"conv2d_{n}_kernel0"
    return f"batch_normalization_{n}_{role.value}0"


def conv_weight_names(block: BlockKind, index: int, position: int) -> dict:
    """All four blob names of a convolution followed by batch normalisation."""
    return {role: weight_name(block, index, position, role) for role in CONV_ROLES}
