"""
Synthetic satellite sky model.

Given an observer position and a wall-clock time, propagates every satellite in
the constellation table on a two-body Keplerian orbit, rotates it into an
Earth-fixed frame using Greenwich Mean Sidereal Time and reports azimuth,
elevation, range and a heuristic signal strength as seen by the observer.

The model has no mutable state: identical inputs always give identical
observations, so snapshots taken at different times can be compared directly.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from .constellations import ConstellationSpec, DEFAULT_CONSTELLATIONS
from ..math.constants import (
    EARTH_MU,
    EARTH_RADIUS_M,
    SECONDS_PER_DAY,
    UNIX_EPOCH_JULIAN_DAY,
    J2000_JULIAN_DAY,
    GPS_L1_FREQUENCY_HZ,
    SPEED_OF_LIGHT_MS,
    MAX_SIGNAL_RANGE_M,
    ELEVATION_MASK_DEG,
    KEPLER_TOLERANCE,
    KEPLER_MAX_ITERATIONS,
)
from ..math.utils import normalize_heading, rot_x, rot_z

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SatelliteObservation:
    """One satellite as seen from the observer."""

    id: str
    constellation: str
    azimuth: float          # degrees, [0, 360)
    elevation: float        # degrees
    range_m: float
    signal_strength: float  # [0, 1]
    plane: int = 0
    slot: int = 0
    doppler_hz: float = 0.0


@dataclass(frozen=True)
class SatelliteSnapshot:
    """Observations computed for one instant."""

    timestamp: float
    observations: Tuple[SatelliteObservation, ...]

    def __len__(self) -> int:
        return len(self.observations)

    def by_id(self) -> Dict[str, SatelliteObservation]:
        return {obs.id: obs for obs in self.observations}

    def constellation_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for obs in self.observations:
            counts[obs.constellation] = counts.get(obs.constellation, 0) + 1
        return counts

    def summary(self) -> dict:
        """Counts used for diagnostics."""
        elevations = [obs.elevation for obs in self.observations]
        return {
            'total': len(self.observations),
            'visible': sum(1 for e in elevations if e > 10.0),
            'strong_signals': sum(1 for obs in self.observations if obs.signal_strength > 0.5),
            'average_elevation': float(np.mean(elevations)) if elevations else 0.0,
            'constellations': self.constellation_counts()
        }


def julian_day(unix_time: float) -> float:
    """Julian day number for a Unix timestamp (seconds)."""
    return unix_time / SECONDS_PER_DAY + UNIX_EPOCH_JULIAN_DAY


def greenwich_sidereal_time(jd: float) -> float:
    """
    Greenwich Mean Sidereal Time.

    Args:
        jd: Julian day

    Returns:
        GMST angle in radians, [0, 2*pi)
    """
    d = jd - J2000_JULIAN_DAY
    t = d / 36525.0
    gmst = 280.46061837 + 360.98564736629 * d + 0.000387933 * t * t - t * t * t / 38710000.0
    return math.radians(normalize_heading(gmst))


def solve_kepler(mean_anomaly: float, eccentricity: float,
                 tolerance: float = KEPLER_TOLERANCE,
                 max_iterations: int = KEPLER_MAX_ITERATIONS) -> float:
    """
    Solve Kepler's equation E - e*sin(E) = M by Newton-Raphson.

    Args:
        mean_anomaly: M in radians
        eccentricity: e in [0, 1)
        tolerance: Convergence threshold on the Newton step
        max_iterations: Iteration cap

    Returns:
        Eccentric anomaly E in radians; M itself if the iteration did not
        converge
    """
    E = mean_anomaly
    for _ in range(max_iterations):
        f = E - eccentricity * math.sin(E) - mean_anomaly
        df = 1.0 - eccentricity * math.cos(E)
        if df == 0.0:
            break
        delta = f / df
        E -= delta
        if abs(delta) <= tolerance:
            return E

    logger.debug("Kepler solver did not converge (M=%.6f, e=%.4f)", mean_anomaly, eccentricity)
    return mean_anomaly


def signal_strength(elevation: float, range_m: float) -> float:
    """
    Heuristic signal strength in [0, 1].

    Combines atmospheric attenuation (worse toward the horizon) with range
    attenuation.
    """
    atmospheric = max(0.0, 1.0 - (90.0 - elevation) / 90.0 * 0.3)
    range_term = max(0.1, 1.0 - range_m / MAX_SIGNAL_RANGE_M)
    return max(0.0, min(1.0, atmospheric * range_term))


def observer_ecef(latitude: float, longitude: float, altitude: float) -> np.ndarray:
    """Observer position on a spherical Earth, ECEF meters."""
    lat = math.radians(latitude)
    lon = math.radians(longitude)
    r = EARTH_RADIUS_M + altitude
    return np.array([
        r * math.cos(lat) * math.cos(lon),
        r * math.cos(lat) * math.sin(lon),
        r * math.sin(lat)
    ])


def ecef_to_neu_matrix(latitude: float, longitude: float) -> np.ndarray:
    """Rotation taking ECEF difference vectors to local North-East-Up."""
    lat = math.radians(latitude)
    lon = math.radians(longitude)
    sin_lat, cos_lat = math.sin(lat), math.cos(lat)
    sin_lon, cos_lon = math.sin(lon), math.cos(lon)
    return np.array([
        [-sin_lat * cos_lon, -sin_lat * sin_lon, cos_lat],
        [-sin_lon,           cos_lon,            0.0],
        [cos_lat * cos_lon,  cos_lat * sin_lon,  sin_lat]
    ])


class SatelliteGeometryModel:
    """
    Deterministic constellation geometry used as a heading reference.

    Any object with a compatible observe()/snapshot() pair can replace it in a
    tracking session.
    """

    def __init__(self,
                 constellations: Optional[Mapping[str, ConstellationSpec]] = None,
                 elevation_mask: float = ELEVATION_MASK_DEG):
        """
        Args:
            constellations: Constellation table (defaults to DEFAULT_CONSTELLATIONS)
            elevation_mask: Observations at or below this elevation (deg) are dropped
        """
        self.constellations = dict(constellations or DEFAULT_CONSTELLATIONS)
        self.elevation_mask = elevation_mask

    def observe(self, latitude: float, longitude: float,
                altitude: Optional[float], timestamp: float) -> List[SatelliteObservation]:
        """
        Compute the visible sky.

        Args:
            latitude, longitude: Observer position (degrees)
            altitude: Observer altitude in meters (None treated as 0)
            timestamp: Unix time in seconds

        Returns:
            Observations above the elevation mask, in constellation table order
        """
        altitude = altitude if altitude is not None and math.isfinite(altitude) else 0.0

        jd = julian_day(timestamp)
        gmst = greenwich_sidereal_time(jd)
        elapsed = (jd - J2000_JULIAN_DAY) * SECONDS_PER_DAY

        observer = observer_ecef(latitude, longitude, altitude)
        to_neu = ecef_to_neu_matrix(latitude, longitude)
        to_ecef = rot_z(-gmst)

        observations = []
        for spec in self.constellations.values():
            orientations = [rot_z(math.radians(raan)) @ rot_x(math.radians(spec.inclination_deg))
                            for raan in spec.raan_deg]
            for plane, slot in spec.slots():
                observation = self._observe_satellite(
                    spec, plane, slot, orientations[plane], elapsed,
                    to_ecef, observer, to_neu
                )
                if observation is not None and observation.elevation > self.elevation_mask:
                    observations.append(observation)

        return observations

    def snapshot(self, latitude: float, longitude: float,
                 altitude: Optional[float], timestamp: float) -> SatelliteSnapshot:
        """observe() wrapped with its timestamp."""
        return SatelliteSnapshot(
            timestamp=timestamp,
            observations=tuple(self.observe(latitude, longitude, altitude, timestamp))
        )

    def _observe_satellite(self, spec: ConstellationSpec, plane: int, slot: int,
                           orientation: np.ndarray, elapsed: float,
                           to_ecef: np.ndarray, observer: np.ndarray,
                           to_neu: np.ndarray) -> Optional[SatelliteObservation]:
        a = spec.semi_major_axis_m
        e = spec.eccentricity
        n = spec.mean_motion

        # Satellites are evenly phased within their plane
        phase = slot * (2.0 * math.pi / spec.satellites_per_plane)
        mean_anomaly = math.fmod(n * elapsed + phase, 2.0 * math.pi)

        E = solve_kepler(mean_anomaly, e)
        nu = 2.0 * math.atan2(math.sqrt(1.0 + e) * math.sin(E / 2.0),
                              math.sqrt(1.0 - e) * math.cos(E / 2.0))
        radius = a * (1.0 - e * math.cos(E))

        # Perifocal position and velocity, argument of perigee fixed at zero
        p = a * (1.0 - e * e)
        r_pqw = radius * np.array([math.cos(nu), math.sin(nu), 0.0])
        v_pqw = math.sqrt(EARTH_MU / p) * np.array([-math.sin(nu), e + math.cos(nu), 0.0])

        r_ecef = to_ecef @ (orientation @ r_pqw)
        v_ecef = to_ecef @ (orientation @ v_pqw)

        line_of_sight = r_ecef - observer
        range_m = float(np.linalg.norm(line_of_sight))
        if not range_m > 0.0:
            return None

        north, east, up = to_neu @ line_of_sight
        elevation = math.degrees(math.asin(max(-1.0, min(1.0, up / range_m))))
        azimuth = normalize_heading(math.degrees(math.atan2(east, north)))

        # Simplified Doppler, Earth rotation ignored
        range_rate = float(np.dot(v_ecef, line_of_sight)) / range_m
        doppler = -range_rate * GPS_L1_FREQUENCY_HZ / SPEED_OF_LIGHT_MS

        return SatelliteObservation(
            id=f"{spec.name}-{plane}-{slot}",
            constellation=spec.name,
            azimuth=azimuth,
            elevation=elevation,
            range_m=range_m,
            signal_strength=signal_strength(elevation, range_m),
            plane=plane,
            slot=slot,
            doppler_hz=doppler
        )
