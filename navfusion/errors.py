"""
Error taxonomy for the fusion pipeline.

Numeric edge cases inside filters are recovered locally and reported as an
ErrorKind on the filter's return value. Only acquisition-layer failures cross
the session boundary, as ErrorNotification objects passed to on_error.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    """Kinds of failure the pipeline distinguishes."""

    INVALID_SAMPLE = "invalid_sample"
    DEGENERATE_GEOMETRY = "degenerate_geometry"
    ACQUISITION_UNAVAILABLE = "acquisition_unavailable"
    ACQUISITION_TIMEOUT = "acquisition_timeout"

    @property
    def is_fatal(self) -> bool:
        """Whether this kind terminates a tracking session."""
        return self is ErrorKind.ACQUISITION_UNAVAILABLE


@dataclass(frozen=True)
class ErrorNotification:
    """Error delivered to the consumer's on_error callback."""

    kind: ErrorKind
    message: str
    fatal: bool = False

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class NavFusionError(Exception):
    """Base class for navfusion exceptions."""


class InvalidSampleError(NavFusionError, ValueError):
    """A sample is missing required values or contains NaN/infinity."""

    kind = ErrorKind.INVALID_SAMPLE


class AcquisitionError(NavFusionError):
    """Failure reported by an external sample provider."""

    kind = ErrorKind.ACQUISITION_UNAVAILABLE

    @staticmethod
    def from_kind(kind: ErrorKind, message: str) -> "AcquisitionError":
        """Build the exception class matching an acquisition error kind."""
        if kind is ErrorKind.ACQUISITION_TIMEOUT:
            return AcquisitionTimeoutError(message)
        if kind is ErrorKind.ACQUISITION_UNAVAILABLE:
            return AcquisitionUnavailableError(message)
        raise ValueError(f"Not an acquisition error kind: {kind}")


class AcquisitionUnavailableError(AcquisitionError):
    """Permission denied or hardware absent. Fatal for the session."""

    kind = ErrorKind.ACQUISITION_UNAVAILABLE


class AcquisitionTimeoutError(AcquisitionError):
    """Transient provider timeout. The session keeps running."""

    kind = ErrorKind.ACQUISITION_TIMEOUT


class SessionStateError(NavFusionError):
    """Lifecycle operation not allowed in the session's current state."""
