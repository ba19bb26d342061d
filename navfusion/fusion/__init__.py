"""
Heading fusion across device, satellite, inertial and movement sources.
"""

from .state import HeadingSource, HeadingSourceKind, FusionResult, TrackingState
from .engine import HeadingFusionEngine, DEFAULT_SOURCE_WEIGHTS

__all__ = [
    "HeadingSource",
    "HeadingSourceKind",
    "FusionResult",
    "TrackingState",
    "HeadingFusionEngine",
    "DEFAULT_SOURCE_WEIGHTS",
]
