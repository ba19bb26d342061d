"""
Position and heading fusion from noisy, intermittent sensor samples.

This package provides:
- Accuracy-weighted position smoothing and dead reckoning
- A synthetic satellite geometry model used as a heading reference
- Quaternion-based inertial heading integration
- Multi-source circular-mean heading fusion
- A thread-safe tracking session tying the pipeline together
"""

__version__ = "1.0.0"

from .config import Config
from .errors import (
    ErrorKind,
    ErrorNotification,
    NavFusionError,
    InvalidSampleError,
    AcquisitionError,
    AcquisitionUnavailableError,
    AcquisitionTimeoutError,
    SessionStateError,
)
from .fusion import (
    FusionResult,
    HeadingFusionEngine,
    HeadingSource,
    HeadingSourceKind,
    TrackingState,
)
from .sensors import MotionSample, OrientationSample, RawFix, SmoothedPosition, PredictedPosition
from .tracker import PositionMetadata, TrackingSession

__all__ = [
    "Config",
    "ErrorKind",
    "ErrorNotification",
    "NavFusionError",
    "InvalidSampleError",
    "AcquisitionError",
    "AcquisitionUnavailableError",
    "AcquisitionTimeoutError",
    "SessionStateError",
    "FusionResult",
    "HeadingFusionEngine",
    "HeadingSource",
    "HeadingSourceKind",
    "TrackingState",
    "MotionSample",
    "OrientationSample",
    "RawFix",
    "SmoothedPosition",
    "PredictedPosition",
    "PositionMetadata",
    "TrackingSession",
]
