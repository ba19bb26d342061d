"""
Synthetic constellation table for the satellite geometry model.

These parameters drive a deterministic, plausible-looking sky, not a real
ephemeris. semi_major_axis_m is used directly as the orbit's semi-major axis.
"""

import math
from dataclasses import dataclass
from typing import Dict, Tuple

from ..math.constants import EARTH_MU


@dataclass(frozen=True)
class ConstellationSpec:
    """Orbital parameters shared by every satellite of one constellation."""

    name: str
    count: int                  # total satellites
    inclination_deg: float
    semi_major_axis_m: float
    period_hours: float         # nominal, informational
    eccentricity: float
    planes: int
    raan_deg: Tuple[float, ...]  # right ascension of ascending node, per plane

    def __post_init__(self):
        if self.count < 1 or self.planes < 1:
            raise ValueError(f"{self.name}: count and planes must be positive")
        if len(self.raan_deg) != self.planes:
            raise ValueError(f"{self.name}: expected {self.planes} RAAN values, "
                             f"got {len(self.raan_deg)}")
        if not 0.0 <= self.eccentricity < 1.0:
            raise ValueError(f"{self.name}: eccentricity must be in [0, 1)")

    @property
    def satellites_per_plane(self) -> int:
        return math.ceil(self.count / self.planes)

    @property
    def mean_motion(self) -> float:
        """Mean motion in rad/s."""
        return math.sqrt(EARTH_MU / self.semi_major_axis_m ** 3)

    def slots(self):
        """Yield (plane, slot) pairs for every satellite, at most count of them."""
        produced = 0
        for plane in range(self.planes):
            for slot in range(self.satellites_per_plane):
                if produced >= self.count:
                    return
                produced += 1
                yield plane, slot


DEFAULT_CONSTELLATIONS: Dict[str, ConstellationSpec] = {
    spec.name: spec for spec in (
        ConstellationSpec("GPS", count=24, inclination_deg=55.0, semi_major_axis_m=20182000.0,
                          period_hours=11.967, eccentricity=0.02, planes=6,
                          raan_deg=(0.0, 60.0, 120.0, 180.0, 240.0, 300.0)),
        ConstellationSpec("GLONASS", count=24, inclination_deg=64.8, semi_major_axis_m=19130000.0,
                          period_hours=11.25, eccentricity=0.01, planes=3,
                          raan_deg=(0.0, 120.0, 240.0)),
        ConstellationSpec("Galileo", count=24, inclination_deg=56.0, semi_major_axis_m=23222000.0,
                          period_hours=14.08, eccentricity=0.001, planes=3,
                          raan_deg=(0.0, 120.0, 240.0)),
        ConstellationSpec("BeiDou", count=24, inclination_deg=55.0, semi_major_axis_m=21150000.0,
                          period_hours=12.63, eccentricity=0.01, planes=3,
                          raan_deg=(0.0, 120.0, 240.0)),
        ConstellationSpec("QZSS", count=4, inclination_deg=43.0, semi_major_axis_m=35786000.0,
                          period_hours=24.0, eccentricity=0.075, planes=1,
                          raan_deg=(0.0,)),
        ConstellationSpec("IRNSS", count=7, inclination_deg=29.0, semi_major_axis_m=35786000.0,
                          period_hours=24.0, eccentricity=0.05, planes=1,
                          raan_deg=(0.0,)),
    )
}
