"""
Mathematical utilities for heading and position fusion.
"""

from .utils import (
    normalize_heading,
    heading_difference,
    weighted_circular_mean,
    circular_std,
    CircularMean,
)
from .constants import *

__all__ = [
    "normalize_heading",
    "heading_difference",
    "weighted_circular_mean",
    "circular_std",
    "CircularMean",
]
