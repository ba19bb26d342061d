"""Synthetic satellite geometry and satellite-derived heading references."""

from .constellations import ConstellationSpec, DEFAULT_CONSTELLATIONS
from .geometry import (
    SatelliteObservation,
    SatelliteSnapshot,
    SatelliteGeometryModel,
    julian_day,
    greenwich_sidereal_time,
    solve_kepler,
    signal_strength,
)
from .triangulation import (
    HeadingEstimate,
    GeometricHeadingTriangulator,
    TrajectoryHeadingPredictor,
)
from .heuristics import (
    geometry_pdop,
    geometry_score,
    accuracy_dop,
    fix_quality,
    satellite_count_label,
    analyze_constellations,
    magnetic_declination,
)

__all__ = [
    'ConstellationSpec', 'DEFAULT_CONSTELLATIONS',
    'SatelliteObservation', 'SatelliteSnapshot', 'SatelliteGeometryModel',
    'julian_day', 'greenwich_sidereal_time', 'solve_kepler', 'signal_strength',
    'HeadingEstimate', 'GeometricHeadingTriangulator', 'TrajectoryHeadingPredictor',
    'geometry_pdop', 'geometry_score', 'accuracy_dop', 'fix_quality',
    'satellite_count_label', 'analyze_constellations', 'magnetic_declination',
]
