"""Exceptions raised while loading weights and assembling networks."""

from typing import Optional, Tuple


class WeightsError(RuntimeError):
    """Base class for failures reading a named weight blob."""

    def __init__(self, name: str, message: str):
        super().__init__(f"{message} (blob: {name})")
        self.name = name


class MissingResourceError(WeightsError):
    """The named blob is absent from the resource store."""

    def __init__(self, name: str, location: Optional[str] = None):
        message = "Weights resource not found"
        if location:
            message += f" at {location}"
        super().__init__(name, message)
        self.location = location


class ShapeMismatchError(WeightsError):
    """The blob length disagrees with the requested reshape target."""

    def __init__(self, name: str, expected: int, actual: int, shape: Tuple[int, ...] = ()):
        target = "x".join(str(d) for d in shape) if shape else str(expected)
        super().__init__(
            name,
            f"Expected {expected} floats for shape {target}, found {actual}"
        )
        self.expected = expected
        self.actual = actual
        self.shape = shape


class DeserializationError(WeightsError):
    """The blob exists but its payload cannot be read as float32 values."""

    def __init__(self, name: str, reason: str):
        super().__init__(name, f"Unable to deserialize weights: {reason}")
        self.reason = reason


class ArchitectureError(ValueError):
    """A graph definition is internally inconsistent."""
