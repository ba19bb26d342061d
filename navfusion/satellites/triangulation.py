"""
Heading references from satellite geometry.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .geometry import SatelliteObservation, SatelliteSnapshot
from .heuristics import geometry_score
from ..history import RingBuffer
from ..math.constants import (
    GOOD_SATELLITE_ELEVATION_DEG,
    GOOD_SATELLITE_SIGNAL,
    MIN_SATELLITES,
    MIN_RESULTANT,
    GEOMETRY_SEPARATION_NORM_DEG,
    TRAJECTORY_ELEVATION_MASK_DEG,
    PREDICTION_HORIZON_S,
    SATELLITE_HISTORY_CAPACITY,
)
from ..math.utils import heading_difference, normalize_heading, weighted_circular_mean

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeadingEstimate:
    """Heading derived from a set of satellites."""

    heading: float              # degrees, [0, 360)
    confidence: float           # [0, 1]
    satellite_count: int
    resultant: float
    geometry_score: Optional[float] = None
    mean_angular_speed: Optional[float] = None  # deg/s


def _confidence(resultant: float, count: int) -> float:
    return min(1.0, resultant * count / 10.0)


class GeometricHeadingTriangulator:
    """
    Weighted circular mean of the azimuths of well-placed satellites.

    Each satellite is weighted by sin(elevation) * signal strength * a
    geometry factor that grows with its separation from the nearest other
    satellite, saturating at separation_norm degrees.
    """

    def __init__(self,
                 min_elevation: float = GOOD_SATELLITE_ELEVATION_DEG,
                 min_signal: float = GOOD_SATELLITE_SIGNAL,
                 min_satellites: int = MIN_SATELLITES,
                 min_resultant: float = MIN_RESULTANT,
                 separation_norm: float = GEOMETRY_SEPARATION_NORM_DEG):
        self.min_elevation = min_elevation
        self.min_signal = min_signal
        self.min_satellites = min_satellites
        self.min_resultant = min_resultant
        self.separation_norm = separation_norm

    def select(self, observations: Sequence[SatelliteObservation]):
        """Satellites with usable elevation and signal."""
        return [obs for obs in observations
                if obs.elevation > self.min_elevation and obs.signal_strength > self.min_signal]

    def geometry_weight(self, satellite: SatelliteObservation,
                        others: Sequence[SatelliteObservation]) -> float:
        """
        Separation factor in [0, 1] from the nearest neighbour in
        azimuth/elevation space.
        """
        min_separation = 180.0
        for other in others:
            if other.id == satellite.id:
                continue
            az_diff = heading_difference(satellite.azimuth, other.azimuth)
            el_diff = satellite.elevation - other.elevation
            min_separation = min(min_separation, math.hypot(az_diff, el_diff))
        return min(1.0, min_separation / self.separation_norm)

    def estimate(self, observations: Sequence[SatelliteObservation]) -> Optional[HeadingEstimate]:
        """
        Triangulate a heading.

        Args:
            observations: Current satellite observations

        Returns:
            HeadingEstimate, or None when fewer than min_satellites qualify or
            the geometry is degenerate
        """
        good = self.select(observations)
        if len(good) < self.min_satellites:
            logger.debug("Triangulation needs %d good satellites, have %d",
                         self.min_satellites, len(good))
            return None

        weights = [math.sin(math.radians(sat.elevation)) * sat.signal_strength
                   * self.geometry_weight(sat, good)
                   for sat in good]

        mean = weighted_circular_mean([sat.azimuth for sat in good], weights,
                                      min_resultant=self.min_resultant)
        if mean is None:
            logger.debug("Degenerate satellite geometry, no triangulated heading")
            return None

        return HeadingEstimate(
            heading=mean.heading,
            confidence=_confidence(mean.resultant, len(good)),
            satellite_count=len(good),
            resultant=mean.resultant,
            geometry_score=geometry_score(good)
        )


class TrajectoryHeadingPredictor:
    """
    Heading from satellite positions extrapolated one horizon ahead.

    Satellites are matched by id between the previous and current snapshot;
    their azimuth/elevation rates are used to predict where they will be.
    Snapshots are kept in a bounded history.
    """

    def __init__(self,
                 horizon: float = PREDICTION_HORIZON_S,
                 min_elevation: float = GOOD_SATELLITE_ELEVATION_DEG,
                 predicted_elevation_mask: float = TRAJECTORY_ELEVATION_MASK_DEG,
                 min_satellites: int = MIN_SATELLITES,
                 min_resultant: float = MIN_RESULTANT,
                 history_capacity: int = SATELLITE_HISTORY_CAPACITY):
        self.horizon = horizon
        self.min_elevation = min_elevation
        self.predicted_elevation_mask = predicted_elevation_mask
        self.min_satellites = min_satellites
        self.min_resultant = min_resultant
        self.history: RingBuffer[SatelliteSnapshot] = RingBuffer(history_capacity)

    def update(self, snapshot: SatelliteSnapshot) -> Optional[HeadingEstimate]:
        """Record a snapshot and predict against the one before it."""
        previous = self.history.last()
        self.history.append(snapshot)
        if previous is None:
            return None
        return self.predict(snapshot, previous)

    def predict(self, current: SatelliteSnapshot,
                previous: SatelliteSnapshot) -> Optional[HeadingEstimate]:
        """
        Predict a heading from two snapshots.

        Args:
            current: Most recent snapshot
            previous: Earlier snapshot

        Returns:
            HeadingEstimate, or None if the snapshots are not ordered in time
            or too few satellites survive prediction
        """
        if len(previous) < self.min_satellites:
            return None

        dt = current.timestamp - previous.timestamp
        if not dt > 0:
            logger.debug("Snapshots not ordered in time (dt=%.3f s)", dt)
            return None

        earlier = previous.by_id()
        azimuths, weights, speeds = [], [], []

        for sat in current.observations:
            before = earlier.get(sat.id)
            if before is None or sat.elevation <= self.min_elevation:
                continue

            az_rate = heading_difference(sat.azimuth, before.azimuth) / dt
            el_rate = (sat.elevation - before.elevation) / dt

            predicted_el = sat.elevation + el_rate * self.horizon
            if predicted_el <= self.predicted_elevation_mask:
                continue

            azimuths.append(normalize_heading(sat.azimuth + az_rate * self.horizon))
            weights.append(math.sin(math.radians(predicted_el)) * sat.signal_strength)
            speeds.append(math.hypot(az_rate, el_rate))

        if len(azimuths) < self.min_satellites:
            return None

        mean = weighted_circular_mean(azimuths, weights, min_resultant=self.min_resultant)
        if mean is None:
            return None

        return HeadingEstimate(
            heading=mean.heading,
            confidence=_confidence(mean.resultant, len(azimuths)),
            satellite_count=len(azimuths),
            resultant=mean.resultant,
            mean_angular_speed=sum(speeds) / len(speeds)
        )

    def reset(self):
        self.history.clear()
