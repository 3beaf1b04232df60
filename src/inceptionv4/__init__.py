"""
inceptionv4 - Pretrained Inception V4 image classification on PyTorch.

The network is described as a table of layer specs, built into torch modules
by a graph builder, and populated with pretrained weights read by name from
a resource store.
"""

__version__ = "0.1.0"

# Weights
from .errors import (
    WeightsError,
    MissingResourceError,
    ShapeMismatchError,
    DeserializationError,
    ArchitectureError,
)
from .weights import (
    Dimension,
    Orientation,
    WeightsFormat,
    WeightTensor,
    UninitializedWeights,
    ResourceStore,
    WeightsLoader,
    PretrainedWeightsLoader,
    UntrainedWeightsLoader,
)

# Architecture
from .naming import BlockKind, ParamRole, weight_name, layer_number
from .ir import GraphDefinition, Neurons3D
from .architecture import (
    inception_v4_definition,
    inception_v4_without_tail_definition,
    inception_v4_custom_tail_definition,
    inception_v4_tail_definition,
)

# Construction
from .context import NetworkContext
from .compile import GraphBuilder, ComponentGraph
from .engine import SupervisedNetwork
from .labels import InceptionV4Labels
from .factory import InceptionV4Factory, load_inception_v4


__all__ = [
    # Errors
    'WeightsError',
    'MissingResourceError',
    'ShapeMismatchError',
    'DeserializationError',
    'ArchitectureError',

    # Weights
    'Dimension',
    'Orientation',
    'WeightsFormat',
    'WeightTensor',
    'UninitializedWeights',
    'ResourceStore',
    'WeightsLoader',
    'PretrainedWeightsLoader',
    'UntrainedWeightsLoader',

    # Architecture
    'BlockKind',
    'ParamRole',
    'weight_name',
    'layer_number',
    'GraphDefinition',
    'Neurons3D',
    'inception_v4_definition',
    'inception_v4_without_tail_definition',
    'inception_v4_custom_tail_definition',
    'inception_v4_tail_definition',

    # Construction
    'NetworkContext',
    'GraphBuilder',
    'ComponentGraph',
    'SupervisedNetwork',
    'InceptionV4Labels',
    'InceptionV4Factory',
    'load_inception_v4',

    # Version
    '__version__',
]
