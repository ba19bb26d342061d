"""
Heuristic quality models.

None of these are physically validated: the DOP figures, geometry score and
magnetic declination are simple closed-form approximations intended for
display and relative comparison only. Each is a plain function so a caller can
substitute a real model without touching the pipeline.
"""

import datetime
import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from ..math.constants import MIN_SATELLITES


def geometry_pdop(elevations: Sequence[float]) -> float:
    """
    PDOP-like figure from satellite count and mean elevation.

    Args:
        elevations: Satellite elevations in degrees

    Returns:
        max(1, 4 / (n * sin(mean elevation))), or 99.0 with fewer than 4
        satellites or a non-positive mean elevation
    """
    n = len(elevations)
    if n < MIN_SATELLITES:
        return 99.0
    elevation_factor = math.sin(math.radians(sum(elevations) / n))
    if elevation_factor <= 0.0:
        return 99.0
    return max(1.0, 4.0 / (n * elevation_factor))


def geometry_score(satellites) -> float:
    """
    Composite geometry quality score (0 for fewer than 4 satellites).

    Sum of an elevation term, an elevation/azimuth spread term and a PDOP
    term. Azimuth spread is max - min over raw azimuths.

    Args:
        satellites: Objects with azimuth and elevation attributes (degrees)
    """
    if len(satellites) < MIN_SATELLITES:
        return 0.0

    elevations = [s.elevation for s in satellites]
    azimuths = [s.azimuth for s in satellites]

    avg_elevation = sum(elevations) / len(elevations)
    elevation_spread = max(elevations) - min(elevations)
    azimuth_spread = max(azimuths) - min(azimuths)
    pdop = geometry_pdop(elevations)

    elevation_score = min(100.0, avg_elevation / 45.0 * 30.0)
    spread_score = min(100.0, elevation_spread / 60.0 * 25.0 + azimuth_spread / 360.0 * 25.0)
    pdop_score = min(100.0, max(0.0, (5.0 - pdop) / 5.0 * 20.0))

    return elevation_score + spread_score + pdop_score


@dataclass(frozen=True)
class DopEstimate:
    """Accuracy-derived dilution of precision."""

    pdop: float
    quality: str


def accuracy_dop(accuracy: float, satellite_count: int) -> Optional[DopEstimate]:
    """
    Rough PDOP from horizontal accuracy and an estimated satellite count.

    Args:
        accuracy: Horizontal accuracy (m)
        satellite_count: Estimated satellites in view

    Returns:
        DopEstimate, or None for non-positive counts
    """
    if satellite_count <= 0 or not math.isfinite(accuracy):
        return None
    pdop = accuracy * 4.0 / satellite_count
    if pdop < 1.0:
        quality = 'Excellent'
    elif pdop < 2.0:
        quality = 'Good'
    elif pdop < 5.0:
        quality = 'Fair'
    else:
        quality = 'Poor'
    return DopEstimate(pdop=pdop, quality=quality)


def fix_quality(accuracy: float) -> str:
    """Quality label for a horizontal accuracy in meters."""
    if accuracy < 3:
        return 'Exceptional'
    if accuracy < 5:
        return 'Excellent'
    if accuracy < 10:
        return 'Good'
    if accuracy < 20:
        return 'Fair'
    return 'Poor'


def satellite_count_label(accuracy: float) -> str:
    """Band of satellites in view typically needed for a given accuracy."""
    if accuracy < 3:
        return 'Excellent (12+)'
    if accuracy < 5:
        return 'Very Good (8-12)'
    if accuracy < 10:
        return 'Good (6-8)'
    if accuracy < 20:
        return 'Fair (4-6)'
    return 'Poor (3-4)'


@dataclass(frozen=True)
class ConstellationAvailability:
    """Constellations likely contributing to a fix of the given accuracy."""

    estimated_satellites: int
    constellations: Dict[str, bool]

    @property
    def active(self):
        return [name for name, used in self.constellations.items() if used]


def analyze_constellations(accuracy: float) -> ConstellationAvailability:
    """
    Guess constellation usage from horizontal accuracy.

    Better accuracy implies more satellites and more constellations in use.
    """
    factor = min(3.0 / max(accuracy, 0.5), 2.0)
    return ConstellationAvailability(
        estimated_satellites=min(int(math.floor(factor * 10)), 32),
        constellations={
            'GPS': True,
            'GLONASS': factor > 0.8,
            'Galileo': factor > 1.0,
            'BeiDou': factor > 0.9,
            'QZSS': factor > 1.2,
            'IRNSS': factor > 1.1,
        }
    )


def magnetic_declination(latitude: float, longitude: float,
                         year: Optional[int] = None) -> float:
    """
    Linear magnetic declination approximation centred on the UK.

    Not a geomagnetic model; outside roughly 49-61N, 8W-2E the value is
    meaningless. Never applied to headings implicitly.

    Args:
        latitude, longitude: Position in degrees
        year: Calendar year (defaults to the current year)

    Returns:
        Declination in degrees
    """
    if year is None:
        year = datetime.date.today().year
    return (0.3
            + (year - 2020) * 0.08
            + (latitude - 54.0) * 0.015
            + (longitude + 2.0) * 0.025)
