"""
Heading source and fusion result representation.
"""

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from ..errors import InvalidSampleError
from ..math.utils import normalize_heading


class HeadingSourceKind(Enum):
    """Where a heading came from."""

    DEVICE = "device"
    SATELLITE = "satellite"
    TRAJECTORY = "trajectory"
    INERTIAL = "inertial"
    GPS = "gps"     # derived from consecutive position fixes

    @classmethod
    def parse(cls, value) -> 'HeadingSourceKind':
        """Accept a member, its value, or the alias 'movement' for GPS."""
        if isinstance(value, cls):
            return value
        if value == "movement":
            return cls.GPS
        return cls(value)


class TrackingState(Enum):
    """Lifecycle state of a tracking session."""

    UNINITIALIZED = "uninitialized"
    ACQUIRING = "acquiring"
    TRACKING = "tracking"
    DEGRADED = "degraded"
    STOPPED = "stopped"


@dataclass(frozen=True)
class HeadingSource:
    """
    One heading contribution to a fusion call.

    weight is the base reliability prior of the source kind; confidence is
    this reading's own trust in [0, 1].
    """

    heading: float
    kind: HeadingSourceKind
    weight: float
    confidence: float

    def __post_init__(self):
        if not math.isfinite(self.heading):
            raise InvalidSampleError(f"Heading must be finite, got {self.heading}")
        if self.weight < 0 or not math.isfinite(self.weight):
            raise InvalidSampleError(f"Weight must be non-negative, got {self.weight}")
        if not 0.0 <= self.confidence <= 1.0:
            raise InvalidSampleError(f"Confidence must be in [0, 1], got {self.confidence}")
        object.__setattr__(self, "heading", normalize_heading(self.heading))

    @property
    def effective_weight(self) -> float:
        return self.weight * self.confidence


@dataclass(frozen=True)
class FusionResult:
    """Fused heading with the sources that produced it."""

    heading: float                  # degrees, [0, 360)
    confidence: float               # [0, 1]
    sources: Tuple[HeadingSource, ...]
    timestamp: float = field(default_factory=time.monotonic)
    details: Optional[dict] = None

    def source(self, kind: HeadingSourceKind) -> Optional[HeadingSource]:
        """The contribution of one source kind, if present."""
        for src in self.sources:
            if src.kind is kind:
                return src
        return None
