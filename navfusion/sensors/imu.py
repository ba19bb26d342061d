"""
Inertial heading from angular-rate integration.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ..history import RingBuffer
from ..math.constants import (
    GRAVITY_MS2,
    IMU_UPDATE_INTERVAL_S,
    GRAVITY_GAIN,
    GRAVITY_MIN_MS2,
    GRAVITY_MAX_MS2,
    MIN_ROTATION_RAD,
    CALIBRATION_WINDOW,
    CALIBRATION_STD_DEG,
    IMU_HISTORY_CAPACITY,
    MIN_CALIBRATION_SAMPLES,
)
from ..math.utils import (
    circular_std,
    heading_from_quaternion,
    quat_conjugate,
    quat_from_rotvec,
    quat_mult,
    quat_normalize,
    quat_rotate,
    yaw_to_quaternion,
)

logger = logging.getLogger(__name__)


@dataclass
class MotionSample:
    """Raw inertial sample."""

    # Accelerometer data (m/s²)
    accel_x: float
    accel_y: float
    accel_z: float

    # Gyroscope data (rad/s)
    gyro_x: float
    gyro_y: float
    gyro_z: float

    # Timestamp
    timestamp: Optional[float] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = time.monotonic()

    @property
    def acceleration(self) -> np.ndarray:
        """Get acceleration as numpy array."""
        return np.array([self.accel_x, self.accel_y, self.accel_z], dtype=np.float64)

    @property
    def angular_velocity(self) -> np.ndarray:
        """Get angular velocity as numpy array."""
        return np.array([self.gyro_x, self.gyro_y, self.gyro_z], dtype=np.float64)


@dataclass
class OrientationState:
    """
    Orientation estimate for one tracking session.

    quaternion rotates body-frame vectors into the local level frame.
    gravity is the low-pass filtered unit gravity direction in body frame
    (None until a plausible accelerometer sample arrives).
    """

    quaternion: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))
    gyro_bias: np.ndarray = field(default_factory=lambda: np.zeros(3))
    accel_bias: np.ndarray = field(default_factory=lambda: np.zeros(3))
    gravity: Optional[np.ndarray] = None
    calibrated: bool = False

    @property
    def heading(self) -> float:
        return heading_from_quaternion(self.quaternion)

    def copy(self) -> 'OrientationState':
        """Create a copy of the state."""
        return OrientationState(
            quaternion=self.quaternion.copy(),
            gyro_bias=self.gyro_bias.copy(),
            accel_bias=self.accel_bias.copy(),
            gravity=None if self.gravity is None else self.gravity.copy(),
            calibrated=self.calibrated
        )


class InertialOrientationFilter:
    """
    Quaternion integration of angular rate with gravity-vector tilt correction.

    Each sample advances the orientation by one fixed update interval. The
    gravity reference bounds roll/pitch drift; heading itself is only as good
    as the gyro, so calibration status is judged from recent heading spread.
    """

    def __init__(self,
                 update_interval: float = IMU_UPDATE_INTERVAL_S,
                 gravity_gain: float = GRAVITY_GAIN,
                 gravity_range: tuple = (GRAVITY_MIN_MS2, GRAVITY_MAX_MS2),
                 calibration_window: int = CALIBRATION_WINDOW,
                 calibration_std: float = CALIBRATION_STD_DEG,
                 history_capacity: int = IMU_HISTORY_CAPACITY):
        """
        Initialize inertial filter.

        Args:
            update_interval: Integration step per sample (s)
            gravity_gain: Low-pass gain for the gravity reference
            gravity_range: Accelerometer magnitudes (m/s²) accepted as gravity
            calibration_window: Number of recent headings judged for calibration
            calibration_std: Heading std (deg) below which the filter is calibrated
            history_capacity: Number of headings kept
        """
        self.update_interval = update_interval
        self.gravity_gain = gravity_gain
        self.gravity_min, self.gravity_max = gravity_range
        self.calibration_window = calibration_window
        self.calibration_std = calibration_std

        self.state = OrientationState()
        self.heading_history: RingBuffer[float] = RingBuffer(history_capacity)

        self.is_aligned = False
        self.bias_calibrated = False

        # Statistics
        self.sample_count = 0
        self.rejected_count = 0

    def update(self, sample: MotionSample) -> Optional[float]:
        """
        Integrate one motion sample.

        Args:
            sample: Motion sample

        Returns:
            Heading in degrees, or None if the sample carried nothing usable
        """
        gyro = sample.angular_velocity
        accel = sample.acceleration
        gyro_ok = bool(np.all(np.isfinite(gyro)))
        accel_ok = bool(np.all(np.isfinite(accel)))

        if not gyro_ok and not accel_ok:
            self.rejected_count += 1
            logger.warning("Rejected motion sample with no finite values")
            return None

        if gyro_ok:
            self._integrate_rate(gyro - self.state.gyro_bias)

        if accel_ok:
            self._update_gravity(accel - self.state.accel_bias)

        heading = self.state.heading
        self.heading_history.append(heading)
        self.sample_count += 1
        self._update_calibration()

        return heading

    def _integrate_rate(self, rate: np.ndarray):
        rotation = rate * self.update_interval
        if np.linalg.norm(rotation) <= MIN_ROTATION_RAD:
            return
        dq = quat_from_rotvec(rotation)
        self.state.quaternion = quat_normalize(quat_mult(self.state.quaternion, dq))

    def _update_gravity(self, accel: np.ndarray):
        norm = float(np.linalg.norm(accel))
        if not self.gravity_min < norm < self.gravity_max:
            return

        measured = accel / norm
        if self.state.gravity is None:
            self.state.gravity = measured
        else:
            blended = (1 - self.gravity_gain) * self.state.gravity + self.gravity_gain * measured
            blended_norm = float(np.linalg.norm(blended))
            if blended_norm > 0:
                self.state.gravity = blended / blended_norm

        # Nudge the estimated up direction toward the gravity reference
        q = self.state.quaternion
        estimated = quat_rotate(quat_conjugate(q), np.array([0.0, 0.0, 1.0]))
        error = np.cross(self.state.gravity, estimated)
        correction = self.gravity_gain * error
        if np.linalg.norm(correction) > 0:
            self.state.quaternion = quat_normalize(quat_mult(q, quat_from_rotvec(correction)))

    def _update_calibration(self):
        if len(self.heading_history) < self.calibration_window:
            self.state.calibrated = False
            return
        spread = circular_std(self.heading_history.latest(self.calibration_window))
        self.state.calibrated = spread < self.calibration_std

    @property
    def heading(self) -> Optional[float]:
        """Most recent heading, or None before the first sample."""
        return self.heading_history.last()

    def align(self, heading: float):
        """
        Reset orientation to level with the given heading.

        Args:
            heading: Reference heading in degrees
        """
        self.state.quaternion = yaw_to_quaternion(heading)
        self.is_aligned = True
        logger.info("Inertial heading aligned to %.1f°", heading)

    def calibrate(self, samples: List[MotionSample],
                  static_threshold: float = 0.5) -> bool:
        """
        Estimate gyro and accelerometer biases from stationary samples.

        Args:
            samples: Motion samples recorded while stationary and level
            static_threshold: Max accelerometer std (m/s²) for a static record

        Returns:
            True if calibration succeeded
        """
        if len(samples) < MIN_CALIBRATION_SAMPLES:
            logger.warning("Need at least %d samples for calibration, got %d",
                           MIN_CALIBRATION_SAMPLES, len(samples))
            return False

        accels = np.array([s.acceleration for s in samples])
        gyros = np.array([s.angular_velocity for s in samples])

        if not (np.all(np.isfinite(accels)) and np.all(np.isfinite(gyros))):
            logger.warning("Calibration data contains non-finite values")
            return False

        accel_std = np.std(accels, axis=0)
        if np.max(accel_std) > static_threshold:
            logger.warning("Calibration data appears to be from moving condition")
            return False

        self.state.gyro_bias = np.mean(gyros, axis=0)

        # Level device should read +1g on the vertical axis
        accel_bias = np.mean(accels, axis=0)
        accel_bias[2] -= GRAVITY_MS2
        self.state.accel_bias = accel_bias

        self.bias_calibrated = True

        logger.info("IMU calibration complete: accel bias [%.3f, %.3f, %.3f] m/s², "
                    "gyro bias [%.4f, %.4f, %.4f] rad/s", *self.state.accel_bias, *self.state.gyro_bias)
        return True

    def reset(self):
        """Return to the initial, unaligned orientation."""
        self.state = OrientationState()
        self.heading_history.clear()
        self.is_aligned = False
        self.bias_calibrated = False

    def get_statistics(self) -> dict:
        """Get filter statistics."""
        return {
            'sample_count': self.sample_count,
            'rejected_count': self.rejected_count,
            'calibrated': self.state.calibrated,
            'bias_calibrated': self.bias_calibrated,
            'aligned': self.is_aligned,
            'heading_std': circular_std(self.heading_history.latest(self.calibration_window)),
            'gyro_bias': self.state.gyro_bias.tolist(),
            'accel_bias': self.state.accel_bias.tolist()
        }
