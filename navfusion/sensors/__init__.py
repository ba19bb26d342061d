"""
Sensor data processing modules.
"""

from .gps import RawFix, SmoothedPosition, SmoothingOutcome, PositionFilter
from .movement import (
    MovementEstimate,
    MovementEstimator,
    PredictedPosition,
    DeadReckoningPredictor,
    NO_MOVEMENT,
)
from .compass import OrientationSample, DeviceCompass
from .imu import MotionSample, OrientationState, InertialOrientationFilter

__all__ = [
    "RawFix", "SmoothedPosition", "SmoothingOutcome", "PositionFilter",
    "MovementEstimate", "MovementEstimator", "PredictedPosition",
    "DeadReckoningPredictor", "NO_MOVEMENT",
    "OrientationSample", "DeviceCompass",
    "MotionSample", "OrientationState", "InertialOrientationFilter",
]
