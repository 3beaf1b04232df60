"""Shared fixtures: filesystem weight stores populated with synthetic blobs."""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from inceptionv4 import ResourceStore, PretrainedWeightsLoader
from inceptionv4.ir import BatchNormSpec, ConvSpec, DenseSpec


def _populate_store(store, definition, seed=0):
    """Write every blob a definition reads, with reproducible random values."""
    rng = np.random.default_rng(seed)
    blobs = {}
    for layer in definition.walk():
        if isinstance(layer, ConvSpec):
            size = layer.output_depth * layer.filter_width * layer.filter_height * layer.input_depth
            blobs[layer.kernel_key] = rng.standard_normal(size).astype(np.float32) * 0.1
        elif isinstance(layer, BatchNormSpec):
            blobs[layer.beta_key] = rng.standard_normal(layer.depth).astype(np.float32)
            blobs[layer.mean_key] = rng.standard_normal(layer.depth).astype(np.float32)
            blobs[layer.variance_key] = rng.uniform(0.5, 2.0, layer.depth).astype(np.float32)
        elif isinstance(layer, DenseSpec):
            if layer.weights is None:
                blobs[layer.weights_key] = rng.standard_normal(
                    layer.output_units * layer.input_units).astype(np.float32) * 0.1
            if layer.bias is None:
                blobs[layer.bias_key] = rng.standard_normal(layer.output_units).astype(np.float32)
    for name, values in blobs.items():
        store.write_floats(name, values)
    return blobs


@pytest.fixture
def store(tmp_path):
    return ResourceStore(root=tmp_path)


@pytest.fixture
def loader(store):
    return PretrainedWeightsLoader(store)


@pytest.fixture
def populate_store():
    """Callable writing the blobs of a definition into a store."""
    return _populate_store
