"""
Device compass readings from platform orientation samples.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

from ..history import RingBuffer
from ..math.constants import COMPASS_WINDOW, COMPASS_AGREEMENT_DEG
from ..math.utils import normalize_heading, heading_difference, weighted_circular_mean

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrientationSample:
    """Raw orientation event from the platform."""

    # Rotation about the vertical axis (degrees, counter-clockwise from north)
    alpha: Optional[float]
    beta: Optional[float] = None
    gamma: Optional[float] = None

    # Platform-native compass heading, if the platform provides one
    compass_heading: Optional[float] = None

    timestamp: Optional[float] = None

    def __post_init__(self):
        if self.timestamp is None:
            object.__setattr__(self, "timestamp", time.monotonic())

    @property
    def device_heading(self) -> Optional[float]:
        """Compass heading implied by this sample, or None."""
        if self.compass_heading is not None and math.isfinite(self.compass_heading):
            return normalize_heading(self.compass_heading)
        if self.alpha is not None and math.isfinite(self.alpha):
            return normalize_heading(360.0 - self.alpha)
        return None


class DeviceCompass:
    """
    Smooths device compass headings over a short window.
    """

    def __init__(self, window: int = COMPASS_WINDOW,
                 agreement_deg: float = COMPASS_AGREEMENT_DEG):
        self.readings: RingBuffer[float] = RingBuffer(window)
        self.agreement_deg = agreement_deg
        self.last_sample: Optional[OrientationSample] = None
        self.is_calibrated = False

    def update(self, sample: OrientationSample) -> Optional[float]:
        """
        Add an orientation sample.

        Args:
            sample: Orientation sample

        Returns:
            Smoothed compass heading, or None if the sample has no heading
        """
        heading = sample.device_heading
        if heading is None:
            logger.debug("Orientation sample without heading ignored")
            return None

        self.last_sample = sample
        self.readings.append(heading)

        smoothed = self.heading
        if smoothed is not None and sample.alpha is not None and math.isfinite(sample.alpha):
            raw = normalize_heading(360.0 - sample.alpha)
            self.is_calibrated = abs(heading_difference(raw, smoothed)) < self.agreement_deg
        return smoothed

    @property
    def heading(self) -> Optional[float]:
        """Circular mean of the recent readings."""
        mean = weighted_circular_mean(self.readings)
        return mean.heading if mean is not None else None
