"""Weight formats, resource store and loaders."""

from .formats import (
    Dimension,
    Orientation,
    WeightsFormat,
    WeightTensor,
    UninitializedWeights,
)
from .store import ResourceStore, default_weights_dir
from .loader import (
    WeightsLoader,
    PretrainedWeightsLoader,
    UntrainedWeightsLoader,
    convolutional_layout,
)
