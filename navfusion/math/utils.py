"""
Mathematical utility functions for heading and position fusion.

Headings are compass bearings in degrees, 0 = north, increasing clockwise,
normalized to [0, 360). Quaternions are numpy arrays in [w, x, y, z] order.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np

from .constants import METERS_PER_DEGREE_LAT


@dataclass(frozen=True)
class CircularMean:
    """Result of a weighted circular mean."""

    heading: float          # degrees, [0, 360)
    resultant: float        # mean resultant length, [0, 1]
    total_weight: float
    count: int


def normalize_heading(heading: float) -> float:
    """
    Normalize a heading to the [0, 360) range.

    Args:
        heading (float): Heading in degrees

    Returns:
        float: Heading in [0, 360)

    Raises:
        ValueError: If the heading is NaN or infinite
    """
    if not math.isfinite(heading):
        raise ValueError(f"Cannot normalize non-finite heading: {heading}")

    wrapped = math.fmod(heading, 360.0)
    if wrapped < 0.0:
        wrapped += 360.0
    # -1e-15 + 360.0 rounds to 360.0
    if wrapped >= 360.0:
        wrapped = 0.0
    return wrapped


def heading_difference(a: float, b: float) -> float:
    """
    Signed smallest angular difference a - b.

    Args:
        a, b: Headings in degrees

    Returns:
        float: Difference in [-180, 180)
    """
    return (a - b + 180.0) % 360.0 - 180.0


def weighted_circular_mean(angles: Iterable[float],
                           weights: Optional[Iterable[float]] = None,
                           min_resultant: float = 0.0) -> Optional[CircularMean]:
    """
    Weighted circular mean of headings by unit-vector accumulation.

    Angles or weights that are not finite, and non-positive weights, are
    ignored.

    Args:
        angles: Headings in degrees
        weights: Per-angle weights (equal weights if None)
        min_resultant: Mean resultant length below which the geometry is
            considered degenerate

    Returns:
        CircularMean, or None if nothing usable remains or the resultant is
        below min_resultant
    """
    angles = np.asarray(list(angles), dtype=np.float64)
    if weights is None:
        weights = np.ones_like(angles)
    else:
        weights = np.asarray(list(weights), dtype=np.float64)

    if angles.size == 0:
        return None
    if angles.shape != weights.shape:
        raise ValueError("angles and weights must have the same length")

    mask = np.isfinite(angles) & np.isfinite(weights) & (weights > 0.0)
    if not np.any(mask):
        return None

    w = weights[mask]
    rad = np.radians(angles[mask])
    total = float(np.sum(w))

    cos_mean = float(np.sum(w * np.cos(rad))) / total
    sin_mean = float(np.sum(w * np.sin(rad))) / total
    resultant = math.hypot(cos_mean, sin_mean)

    if resultant <= 0.0 or resultant < min_resultant:
        return None

    heading = normalize_heading(math.degrees(math.atan2(sin_mean, cos_mean)))
    return CircularMean(heading=heading, resultant=min(resultant, 1.0),
                        total_weight=total, count=int(np.count_nonzero(mask)))


def circular_std(angles: Iterable[float]) -> float:
    """
    Standard deviation of headings around their circular mean.

    Deviations are wrapped to [-180, 180) before squaring so that readings
    either side of north do not inflate the spread.

    Args:
        angles: Headings in degrees

    Returns:
        float: Standard deviation in degrees (0.0 for fewer than 2 readings)
    """
    values = [a for a in angles if a is not None and math.isfinite(a)]
    if len(values) < 2:
        return 0.0

    mean = weighted_circular_mean(values, min_resultant=1e-9)
    if mean is None:
        # Readings cancel out entirely, spread is maximal
        return 180.0

    deviations = np.array([heading_difference(a, mean.heading) for a in values])
    return float(np.sqrt(np.mean(deviations ** 2)))


def meters_per_degree(latitude: float) -> Tuple[float, float]:
    """
    Local equirectangular scale factors.

    Args:
        latitude (float): Latitude in degrees

    Returns:
        (meters per degree latitude, meters per degree longitude)
    """
    return (METERS_PER_DEGREE_LAT,
            METERS_PER_DEGREE_LAT * math.cos(math.radians(latitude)))


def rot_x(angle: float) -> np.ndarray:
    """Rotation matrix about the X axis (angle in radians)."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [1.0, 0.0, 0.0],
        [0.0,   c,  -s],
        [0.0,   s,   c]
    ])


def rot_z(angle: float) -> np.ndarray:
    """Rotation matrix about the Z axis (angle in radians)."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [  c,  -s, 0.0],
        [  s,   c, 0.0],
        [0.0, 0.0, 1.0]
    ])


def quat_from_rotvec(rv: np.ndarray) -> np.ndarray:
    """
    Convert a rotation vector to a quaternion using the half-angle formula.

    Args:
        rv: 3D rotation vector (axis * angle) in radians

    Returns:
        Unit quaternion [w, x, y, z]
    """
    rv = np.asarray(rv, dtype=np.float64)
    angle = float(np.linalg.norm(rv))
    if angle < 1e-12:
        return np.array([1.0, 0.0, 0.0, 0.0])
    axis = rv / angle
    half_angle = 0.5 * angle
    return np.concatenate(([math.cos(half_angle)], axis * math.sin(half_angle)))


def quat_mult(q: np.ndarray, r: np.ndarray) -> np.ndarray:
    """
    Hamilton product q * r.

    Args:
        q: First quaternion [w, x, y, z]
        r: Second quaternion [w, x, y, z]

    Returns:
        Product quaternion [w, x, y, z]
    """
    w1, x1, y1, z1 = q
    w2, x2, y2, z2 = r
    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2
    ])


def quat_conjugate(q: np.ndarray) -> np.ndarray:
    """Quaternion conjugate."""
    return np.array([q[0], -q[1], -q[2], -q[3]])


def quat_normalize(q: np.ndarray) -> np.ndarray:
    """Return q scaled to unit norm (identity if the norm vanished)."""
    q = np.asarray(q, dtype=np.float64)
    norm = float(np.linalg.norm(q))
    if norm <= 0.0 or not math.isfinite(norm):
        return np.array([1.0, 0.0, 0.0, 0.0])
    return q / norm


def quat_rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """
    Rotate a 3D vector from body to world frame: q * [0, v] * conj(q).

    Args:
        q: Quaternion [w, x, y, z]
        v: 3D vector in body frame

    Returns:
        Rotated 3D vector
    """
    v = np.asarray(v, dtype=np.float64)
    v_q = np.array([0.0, v[0], v[1], v[2]])
    return quat_mult(quat_mult(q, v_q), quat_conjugate(q))[1:]


def heading_from_quaternion(q: np.ndarray) -> float:
    """
    Extract the yaw heading from a quaternion.

    Args:
        q: Quaternion [w, x, y, z]

    Returns:
        float: Heading in degrees, [0, 360)
    """
    w, x, y, z = q
    yaw = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
    return normalize_heading(math.degrees(yaw))


def yaw_to_quaternion(heading: float) -> np.ndarray:
    """
    Quaternion for a pure rotation about the vertical axis.

    Args:
        heading (float): Heading in degrees; heading_from_quaternion of the
            result returns the same value

    Returns:
        Unit quaternion [w, x, y, z]
    """
    half = math.radians(heading) / 2.0
    return np.array([math.cos(half), 0.0, 0.0, math.sin(half)])
