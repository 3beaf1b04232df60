import numpy as np
import pytest

from inceptionv4 import (
    DeserializationError,
    InceptionV4Labels,
    MissingResourceError,
    ResourceStore,
)
from inceptionv4.weights import default_weights_dir


def test_write_then_read(store):
    path = store.write_floats("conv2d_1_kernel0", [1.5, -2.0, 0.25])

    assert path.name == "conv2d_1_kernel0.npy"
    assert path.parent.name == "inceptionv4weights"
    assert store.contains("conv2d_1_kernel0")
    values = store.read_floats("conv2d_1_kernel0")
    assert values.dtype == np.float32
    assert values.tolist() == [1.5, -2.0, 0.25]
    assert values.flags.writeable


def test_missing_blob(store):
    assert not store.contains("nope")
    with pytest.raises(MissingResourceError) as excinfo:
        store.read_floats("nope")
    assert excinfo.value.name == "nope"
    assert "nope" in str(excinfo.value)


def test_truncated_blob(store):
    path = store.write_floats("dense_1_bias0", np.zeros(16))
    path.write_bytes(path.read_bytes()[:-8])

    with pytest.raises(DeserializationError) as excinfo:
        store.read_floats("dense_1_bias0")
    assert excinfo.value.name == "dense_1_bias0"


def test_garbage_blob(store):
    path = store.locate("dense_1_kernel0")
    path.parent.mkdir(parents=True)
    path.write_bytes(b"not an array")

    with pytest.raises(DeserializationError):
        store.read_floats("dense_1_kernel0")


def test_wrong_dtype(store):
    path = store.locate("batch_normalization_1_beta0")
    path.parent.mkdir(parents=True)
    np.save(path, np.zeros(4, dtype=np.float64))

    with pytest.raises(DeserializationError, match="float32"):
        store.read_floats("batch_normalization_1_beta0")


def test_custom_namespace(tmp_path):
    store = ResourceStore(root=tmp_path, namespace="other")
    store.write_floats("x", [1.0])

    assert (tmp_path / "other" / "x.npy").is_file()
    assert not ResourceStore(root=tmp_path).contains("x")


def test_package_relative_lookup(tmp_path, monkeypatch):
    package = tmp_path / "bundled_inception_weights"
    (package / "inceptionv4weights").mkdir(parents=True)
    (package / "__init__.py").write_text("")
    np.save(package / "inceptionv4weights" / "dense_1_bias0.npy", np.arange(3, dtype=np.float32))
    monkeypatch.syspath_prepend(str(tmp_path))

    store = ResourceStore(package="bundled_inception_weights")

    assert store.read_floats("dense_1_bias0").tolist() == [0.0, 1.0, 2.0]
    with pytest.raises(MissingResourceError):
        store.read_floats("dense_1_kernel0")
    with pytest.raises(ValueError):
        store.write_floats("dense_1_kernel0", [0.0])


def test_root_and_package_are_exclusive(tmp_path):
    with pytest.raises(ValueError):
        ResourceStore(root=tmp_path, package="inceptionv4")


def test_weights_dir_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("INCEPTIONV4_WEIGHTS_DIR", str(tmp_path))

    assert default_weights_dir() == tmp_path
    assert ResourceStore().root == tmp_path


def test_labels_from_store(store):
    path = store.locate("labels", ".txt")
    path.parent.mkdir(parents=True)
    path.write_text("background\ntench\n\ngoldfish\n")

    labels = InceptionV4Labels.from_store(store)

    assert list(labels) == ["background", "tench", "goldfish"]
    assert labels.get_class_name(1) == "tench"
    with pytest.raises(IndexError):
        labels.get_class_name(3)
