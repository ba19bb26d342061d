"""
Position fix smoothing.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import List, Optional

from ..errors import ErrorKind
from ..history import RingBuffer
from ..math.constants import (
    SMOOTHING_GAIN,
    MAX_SMOOTHING_FACTOR,
    POSITION_HISTORY_CAPACITY,
    DEFAULT_FIX_ACCURACY_M,
)

logger = logging.getLogger(__name__)


def _finite(value) -> bool:
    return value is not None and isinstance(value, (int, float)) and math.isfinite(value)


def _number(value) -> bool:
    return value is not None and isinstance(value, (int, float)) and not math.isnan(value)


@dataclass(frozen=True)
class RawFix:
    """Raw position fix from the location provider."""

    # Position (decimal degrees)
    latitude: Optional[float]
    longitude: Optional[float]

    # Horizontal accuracy (meters)
    accuracy: float = DEFAULT_FIX_ACCURACY_M

    altitude: Optional[float] = None
    altitude_accuracy: Optional[float] = None

    # Provider-reported motion, if any
    heading: Optional[float] = None     # degrees
    speed: Optional[float] = None       # m/s

    # Capture time, monotonic seconds
    timestamp: Optional[float] = None

    def __post_init__(self):
        if self.timestamp is None:
            object.__setattr__(self, "timestamp", time.monotonic())

    @property
    def is_valid(self) -> bool:
        """Check if the fix carries usable coordinates."""
        return (_finite(self.latitude) and _finite(self.longitude) and
                -90 <= self.latitude <= 90 and
                -180 <= self.longitude <= 180)


@dataclass(frozen=True)
class SmoothedPosition:
    """Smoothed position snapshot, also the unit stored in position history."""

    latitude: float
    longitude: float
    accuracy: float
    timestamp: float
    altitude: Optional[float] = None


@dataclass(frozen=True)
class SmoothingOutcome:
    """
    Result of feeding one fix to the PositionFilter.

    position is the filter's current estimate after the call (None only when
    nothing valid has ever been seen). accepted is False when the fix was
    rejected, in which case error says why.
    """

    position: Optional[SmoothedPosition]
    accepted: bool
    error: Optional[ErrorKind] = None


class PositionFilter:
    """
    Exponential smoothing of raw fixes weighted by measurement accuracy.

    smoothed = previous * (1 - f) + raw * f with
    f = clamp(k / max(accuracy, 1), 0, max_factor), so better fixes pull the
    estimate toward the raw value faster.
    """

    def __init__(self,
                 smoothing_gain: float = SMOOTHING_GAIN,
                 max_factor: float = MAX_SMOOTHING_FACTOR,
                 history_capacity: int = POSITION_HISTORY_CAPACITY):
        """
        Initialize position filter.

        Args:
            smoothing_gain: k in the smoothing factor formula
            max_factor: Upper bound on the smoothing factor
            history_capacity: Number of smoothed snapshots kept
        """
        self.smoothing_gain = smoothing_gain
        self.max_factor = max_factor

        self.current: Optional[SmoothedPosition] = None
        self.history: RingBuffer[SmoothedPosition] = RingBuffer(history_capacity)

        # Statistics
        self.fix_count = 0
        self.rejected_count = 0

    def smoothing_factor(self, accuracy: float) -> float:
        """
        Blend ratio for a fix of the given accuracy.

        Args:
            accuracy: Horizontal accuracy in meters

        Returns:
            Smoothing factor in [0, max_factor] (NaN if accuracy is NaN)
        """
        factor = self.smoothing_gain / max(accuracy, 1.0)
        return min(max(factor, 0.0), self.max_factor)

    def update(self, fix: RawFix) -> SmoothingOutcome:
        """
        Smooth a new raw fix into the running estimate.

        Invalid fixes are rejected silently (logged) and the previous estimate
        is returned unchanged. If the blend produces a non-finite value the raw
        coordinates are used instead.

        Args:
            fix: Raw position fix

        Returns:
            SmoothingOutcome describing the new estimate
        """
        if not fix.is_valid:
            self.rejected_count += 1
            logger.warning("Rejected invalid fix: lat=%s lon=%s", fix.latitude, fix.longitude)
            return SmoothingOutcome(self.current, accepted=False,
                                    error=ErrorKind.INVALID_SAMPLE)

        # Zero, negative and infinite accuracies go through the formula as is
        accuracy = max(fix.accuracy, 1.0) if _number(fix.accuracy) else None

        if self.current is None:
            latitude, longitude = fix.latitude, fix.longitude
        else:
            factor = self.smoothing_factor(fix.accuracy if accuracy is not None else float("nan"))
            if factor == 0.0:
                # Estimate unchanged, so is its accuracy
                accuracy = self.current.accuracy
            latitude = self.current.latitude * (1 - factor) + fix.latitude * factor
            longitude = self.current.longitude * (1 - factor) + fix.longitude * factor

            if not (math.isfinite(latitude) and math.isfinite(longitude)):
                logger.debug("Smoothing produced non-finite value, using raw fix")
                latitude, longitude = fix.latitude, fix.longitude

        if accuracy is None:
            accuracy = self.current.accuracy if self.current is not None else DEFAULT_FIX_ACCURACY_M

        self.current = SmoothedPosition(
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            timestamp=fix.timestamp,
            altitude=fix.altitude if _finite(fix.altitude) else None
        )
        self.history.append(self.current)
        self.fix_count += 1

        return SmoothingOutcome(self.current, accepted=True)

    def recent(self, n: int = 2) -> List[SmoothedPosition]:
        """Return the n most recent smoothed positions, oldest first."""
        return self.history.latest(n)

    def reset(self):
        """Forget the current estimate and history."""
        self.current = None
        self.history.clear()

    def get_statistics(self) -> dict:
        """Get filter statistics."""
        return {
            'fix_count': self.fix_count,
            'rejected_count': self.rejected_count,
            'history_length': len(self.history),
            'current': self.current
        }
