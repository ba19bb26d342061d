"""
Multi-source heading fusion.
"""

import logging
import time
from typing import Dict, Iterable, Mapping, Optional

from .state import FusionResult, HeadingSource, HeadingSourceKind
from ..math.constants import (
    DEVICE_WEIGHT,
    FUSION_REFERENCE_WEIGHT,
    GPS_WEIGHT,
    INERTIAL_WEIGHT,
    MIN_RESULTANT,
    SATELLITE_WEIGHT,
    TRAJECTORY_WEIGHT,
)
from ..math.utils import weighted_circular_mean

logger = logging.getLogger(__name__)


DEFAULT_SOURCE_WEIGHTS: Dict[HeadingSourceKind, float] = {
    HeadingSourceKind.DEVICE: DEVICE_WEIGHT,
    HeadingSourceKind.SATELLITE: SATELLITE_WEIGHT,
    HeadingSourceKind.TRAJECTORY: TRAJECTORY_WEIGHT,
    HeadingSourceKind.INERTIAL: INERTIAL_WEIGHT,
    HeadingSourceKind.GPS: GPS_WEIGHT,
}


class HeadingFusionEngine:
    """
    Weighted circular mean over heading sources.

    Each source contributes with weight * confidence. The fused confidence is
    the combined effective weight relative to reference_weight, capped at 1.
    """

    def __init__(self,
                 weights: Optional[Mapping] = None,
                 reference_weight: float = FUSION_REFERENCE_WEIGHT,
                 min_resultant: float = MIN_RESULTANT):
        """
        Initialize fusion engine.

        Args:
            weights: Base weight per source kind; keys may be HeadingSourceKind
                members or their string values. Missing kinds keep defaults.
                Each weight must lie in [0, reference_weight].
            reference_weight: Combined effective weight at which confidence
                saturates
            min_resultant: Mean resultant length below which sources are
                considered to disagree too much to fuse
        """
        if reference_weight <= 0:
            raise ValueError("reference_weight must be positive")

        self.weights = dict(DEFAULT_SOURCE_WEIGHTS)
        for key, value in (weights or {}).items():
            value = float(value)
            if value < 0:
                raise ValueError(f"Weight for {key} must be non-negative")
            if value > reference_weight:
                raise ValueError(f"Weight for {key} exceeds reference_weight {reference_weight}")
            self.weights[HeadingSourceKind.parse(key)] = value

        self.reference_weight = reference_weight
        self.min_resultant = min_resultant

        self.fusion_count = 0

    def make_source(self, kind, heading: float, confidence: float) -> HeadingSource:
        """Build a HeadingSource carrying this engine's base weight for kind."""
        kind = HeadingSourceKind.parse(kind)
        return HeadingSource(heading=heading, kind=kind,
                             weight=self.weights[kind], confidence=confidence)

    def fuse(self, sources: Iterable[Optional[HeadingSource]],
             details: Optional[dict] = None,
             timestamp: Optional[float] = None) -> Optional[FusionResult]:
        """
        Fuse the available sources.

        Args:
            sources: Heading sources; None entries are skipped
            details: Diagnostic data attached to the result
            timestamp: Result time (defaults to time.monotonic())

        Returns:
            FusionResult, or None if no source carries weight or the sources
            cancel out
        """
        present = tuple(src for src in sources if src is not None)
        if not present:
            return None

        mean = weighted_circular_mean(
            [src.heading for src in present],
            [src.effective_weight for src in present],
            min_resultant=self.min_resultant
        )
        if mean is None:
            logger.debug("No fused heading from %d sources", len(present))
            return None

        self.fusion_count += 1
        confidence = min(1.0, mean.total_weight / self.reference_weight)
        heading = mean.heading
        if mean.count == 1:
            # A lone weighted source passes through unchanged
            heading = next(src.heading for src in present if src.effective_weight > 0)
        return FusionResult(heading=heading, confidence=confidence,
                            sources=present,
                            timestamp=time.monotonic() if timestamp is None else timestamp,
                            details=details)
