"""Read-only store of named float32 blobs."""

import io
import logging
import os
from importlib import resources
from pathlib import Path
from typing import Optional, Union

import numpy as np

from ..errors import DeserializationError, MissingResourceError

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "inceptionv4weights"
WEIGHTS_DIR_ENV = "INCEPTIONV4_WEIGHTS_DIR"
BLOB_SUFFIX = ".npy"


def default_weights_dir() -> Path:
    """Filesystem root used when no package or root is supplied."""
    return Path(os.environ.get(WEIGHTS_DIR_ENV, "."))


class ResourceStore:
    """
    Flat namespace of binary blobs laid out as ``{namespace}/{name}.npy``.

    When ``package`` is given blobs are resolved relative to that package
    through ``importlib.resources``; otherwise they are read from ``root``
    on the filesystem.
    """

    def __init__(self,
                 root: Optional[Union[str, Path]] = None,
                 package: Optional[str] = None,
                 namespace: str = DEFAULT_NAMESPACE):
        if root is not None and package is not None:
            raise ValueError("Pass either a filesystem root or a package, not both")
        self.package = package
        self.root = None if package else Path(root) if root is not None else default_weights_dir()
        self.namespace = namespace

    def __repr__(self):
        where = f"package={self.package!r}" if self.package else f"root={str(self.root)!r}"
        return f"ResourceStore({where}, namespace={self.namespace!r})"

    def locate(self, name: str, suffix: str = BLOB_SUFFIX):
        """Resolve a blob name to a path-like resource handle."""
        relative = f"{name}{suffix}"
        if self.package:
            return resources.files(self.package).joinpath(self.namespace).joinpath(relative)
        return self.root / self.namespace / relative

    def contains(self, name: str, suffix: str = BLOB_SUFFIX) -> bool:
        return self.locate(name, suffix).is_file()

    def _read_bytes(self, name: str, suffix: str) -> bytes:
        location = self.locate(name, suffix)
        if not location.is_file():
            raise MissingResourceError(name, str(location))
        try:
            return location.read_bytes()
        except FileNotFoundError as e:
            raise MissingResourceError(name, str(location)) from e
        except OSError as e:
            raise DeserializationError(name, str(e)) from e

    def read_floats(self, name: str) -> np.ndarray:
        """
        Read a blob as a flat float32 array.

        Raises:
            MissingResourceError: No blob with this name exists
            DeserializationError: The payload is truncated, malformed or not float32
        """
        logger.debug("Deserializing weights: %s", name)
        data = self._read_bytes(name, BLOB_SUFFIX)
        try:
            array = np.load(io.BytesIO(data), allow_pickle=False)
        except (ValueError, EOFError, OSError) as e:
            raise DeserializationError(name, str(e)) from e

        if not isinstance(array, np.ndarray):
            raise DeserializationError(name, f"expected an array, found {type(array).__name__}")
        if array.dtype != np.float32:
            raise DeserializationError(name, f"expected float32 values, found {array.dtype}")

        # np.load over a byte buffer yields a read-only view
        return array.reshape(-1).copy()

    def read_text(self, name: str, suffix: str = ".txt") -> str:
        data = self._read_bytes(name, suffix)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DeserializationError(name, str(e)) from e

    def write_floats(self, name: str, values) -> Path:
        """Write a blob into a filesystem store, e.g. when converting weights."""
        if self.package:
            raise ValueError("Package resources are read-only")
        path = self.locate(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        np.save(path, np.asarray(values, dtype=np.float32).reshape(-1), allow_pickle=False)
        return path
