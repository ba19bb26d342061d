"""
Movement estimation and dead reckoning from smoothed positions.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .gps import SmoothedPosition
from ..math.constants import MIN_MOVEMENT_M, MIN_PREDICTION_AGE_S
from ..math.utils import meters_per_degree, normalize_heading

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovementEstimate:
    """Heading, speed and distance between two consecutive smoothed fixes."""

    heading: Optional[float]    # degrees, None when movement is too small
    speed: float                # m/s
    distance: float             # meters

    @property
    def has_heading(self) -> bool:
        return self.heading is not None


NO_MOVEMENT = MovementEstimate(heading=None, speed=0.0, distance=0.0)


class MovementEstimator:
    """
    Derives heading and speed from consecutive smoothed positions.

    Uses a local equirectangular approximation, which is adequate over the
    few meters separating consecutive fixes.
    """

    def __init__(self, min_distance: float = MIN_MOVEMENT_M):
        """
        Args:
            min_distance: Displacement (m) below which no heading is reported
        """
        self.min_distance = min_distance

    def estimate(self, current: SmoothedPosition,
                 previous: Optional[SmoothedPosition]) -> MovementEstimate:
        """
        Estimate movement from previous to current.

        Args:
            current: Most recent smoothed position
            previous: Position before it (None on the first fix)

        Returns:
            MovementEstimate; heading is None if elapsed time is not positive
            or the displacement is below min_distance
        """
        if previous is None or current is None:
            return NO_MOVEMENT

        dt = current.timestamp - previous.timestamp
        if not dt > 0:
            return NO_MOVEMENT

        lat_scale, lon_scale = meters_per_degree(current.latitude)
        north_m = (current.latitude - previous.latitude) * lat_scale
        east_m = (current.longitude - previous.longitude) * lon_scale

        distance = math.hypot(north_m, east_m)
        if not math.isfinite(distance):
            logger.debug("Non-finite displacement between fixes, ignoring")
            return NO_MOVEMENT

        speed = distance / dt

        heading = None
        if distance > self.min_distance:
            heading = normalize_heading(math.degrees(math.atan2(east_m, north_m)))

        return MovementEstimate(heading=heading, speed=speed, distance=distance)


@dataclass(frozen=True)
class PredictedPosition:
    """Dead-reckoned position between real fixes."""

    latitude: float
    longitude: float
    accuracy: float
    timestamp: float
    prediction_time: float      # seconds since the last real fix
    predicted: bool = True


class DeadReckoningPredictor:
    """
    Extrapolates position from the last known velocity.

    Velocity is taken from the two most recent history entries and applied
    over the time elapsed since the last real fix. Accuracy degrades
    proportionally to elapsed time.
    """

    def __init__(self, min_age: float = MIN_PREDICTION_AGE_S):
        """
        Args:
            min_age: Minimum age (s) of the last real fix before predicting
        """
        self.min_age = min_age
        self.prediction_count = 0

    def predict(self, history: Sequence[SmoothedPosition],
                now: float) -> Optional[PredictedPosition]:
        """
        Predict the position at time now.

        Args:
            history: Smoothed positions, oldest first (only the last two are used)
            now: Current time on the same clock as the fix timestamps

        Returns:
            PredictedPosition, or None if fewer than two history points exist,
            the last fix is still fresh, or a time difference is not positive
        """
        if len(history) < 2:
            return None

        previous, last = history[-2], history[-1]

        elapsed = now - last.timestamp
        if not elapsed > 0 or elapsed < self.min_age:
            return None

        span = last.timestamp - previous.timestamp
        if not span > 0:
            return None

        lat_rate = (last.latitude - previous.latitude) / span
        lon_rate = (last.longitude - previous.longitude) / span

        latitude = last.latitude + lat_rate * elapsed
        longitude = last.longitude + lon_rate * elapsed
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            logger.debug("Dead reckoning produced non-finite value, holding last position")
            latitude, longitude = last.latitude, last.longitude

        latitude = min(max(latitude, -90.0), 90.0)
        if not -180.0 <= longitude <= 180.0:
            longitude = (longitude + 180.0) % 360.0 - 180.0

        self.prediction_count += 1

        return PredictedPosition(
            latitude=latitude,
            longitude=longitude,
            accuracy=last.accuracy * (1.0 + elapsed),
            timestamp=now,
            prediction_time=elapsed
        )
