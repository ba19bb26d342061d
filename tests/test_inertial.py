#!/usr/bin/env python3
"""
Unit tests for the inertial orientation filter.
"""

import math
import unittest
import numpy as np
import sys
import os

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from navfusion.math.constants import GRAVITY_MS2
from navfusion.math.utils import quat_from_rotvec
from navfusion.sensors import MotionSample, OrientationState, InertialOrientationFilter


def level_sample(gyro_z=0.0, timestamp=0.0):
    """Stationary level device, optionally turning about the vertical."""
    return MotionSample(accel_x=0.0, accel_y=0.0, accel_z=GRAVITY_MS2,
                        gyro_x=0.0, gyro_y=0.0, gyro_z=gyro_z, timestamp=timestamp)


def tilt_angle(q):
    """Rotation angle of a unit quaternion, radians."""
    return 2.0 * math.acos(min(1.0, abs(float(q[0]))))


class TestMotionSample(unittest.TestCase):
    """Test MotionSample class."""

    def test_vectors(self):
        """Test vector properties."""
        sample = MotionSample(1.0, 2.0, 3.0, 0.1, 0.2, 0.3, timestamp=5.0)
        np.testing.assert_array_equal(sample.acceleration, [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(sample.angular_velocity, [0.1, 0.2, 0.3])
        self.assertEqual(sample.timestamp, 5.0)

    def test_default_timestamp(self):
        """Test timestamp defaults to the monotonic clock."""
        self.assertIsNotNone(MotionSample(0, 0, 0, 0, 0, 0).timestamp)


class TestOrientationState(unittest.TestCase):
    """Test OrientationState class."""

    def test_initial_state(self):
        """Identity orientation points north."""
        state = OrientationState()
        np.testing.assert_array_equal(state.quaternion, [1.0, 0.0, 0.0, 0.0])
        self.assertEqual(state.heading, 0.0)
        self.assertFalse(state.calibrated)
        self.assertIsNone(state.gravity)

    def test_copy(self):
        """Copies do not share arrays."""
        original = OrientationState()
        copy = original.copy()
        copy.quaternion[0] = 0.0
        copy.gyro_bias[0] = 1.0
        self.assertEqual(original.quaternion[0], 1.0)
        self.assertEqual(original.gyro_bias[0], 0.0)


class TestInertialOrientationFilter(unittest.TestCase):
    """Test InertialOrientationFilter class."""

    def setUp(self):
        self.filter = InertialOrientationFilter()

    def test_stationary(self):
        """No rotation keeps the heading at zero."""
        heading = self.filter.update(level_sample())
        self.assertEqual(heading, 0.0)
        self.assertEqual(self.filter.heading, 0.0)

    def test_yaw_integration(self):
        """Ten steps of 1 rad/s at 100 ms make one radian of yaw."""
        for i in range(10):
            heading = self.filter.update(level_sample(gyro_z=1.0, timestamp=i * 0.1))
        self.assertAlmostEqual(heading, math.degrees(1.0), places=6)

    def test_negative_yaw_wraps(self):
        """Negative rotation wraps into [0, 360)."""
        heading = self.filter.update(level_sample(gyro_z=-1.0))
        self.assertAlmostEqual(heading, 360.0 - math.degrees(0.1), places=6)

    def test_tiny_rotation_ignored(self):
        """Increments below the rotation threshold are skipped."""
        for _ in range(20):
            heading = self.filter.update(level_sample(gyro_z=0.005))
        self.assertEqual(heading, 0.0)

    def test_quaternion_norm_preserved(self):
        """The orientation stays a unit quaternion under arbitrary rates."""
        rng = np.random.default_rng(7)
        for _ in range(2000):
            gyro = rng.normal(0.0, 2.0, 3)
            accel = rng.normal(0.0, 6.0, 3)
            self.filter.update(MotionSample(*accel, *gyro, timestamp=0.0))
            norm = float(np.linalg.norm(self.filter.state.quaternion))
            self.assertAlmostEqual(norm, 1.0, places=9)
            self.assertGreaterEqual(self.filter.heading, 0.0)
            self.assertLess(self.filter.heading, 360.0)

    def test_rejects_non_finite_sample(self):
        """A sample with nothing finite is rejected."""
        nan = float('nan')
        self.assertIsNone(self.filter.update(MotionSample(nan, nan, nan, nan, nan, nan)))
        self.assertEqual(self.filter.rejected_count, 1)
        self.assertIsNone(self.filter.heading)

    def test_gravity_band(self):
        """Accelerations outside the plausible band do not update gravity."""
        self.filter.update(MotionSample(0.0, 0.0, 20.0, 0.0, 0.0, 0.0))
        self.assertIsNone(self.filter.state.gravity)
        self.filter.update(MotionSample(0.0, 0.0, 0.1, 0.0, 0.0, 0.0))
        self.assertIsNone(self.filter.state.gravity)

        self.filter.update(level_sample())
        np.testing.assert_allclose(self.filter.state.gravity, [0.0, 0.0, 1.0])

    def test_gravity_low_pass(self):
        """The gravity reference moves slowly toward new measurements."""
        self.filter.update(level_sample())
        self.filter.update(MotionSample(GRAVITY_MS2, 0.0, 0.0, 0.0, 0.0, 0.0))
        gravity = self.filter.state.gravity
        self.assertAlmostEqual(float(np.linalg.norm(gravity)), 1.0, places=12)
        self.assertGreater(gravity[2], 0.99)
        self.assertGreater(gravity[0], 0.0)

    def test_gravity_corrects_tilt(self):
        """A tilted estimate is pulled back to level by the gravity reference."""
        self.filter.state.quaternion = quat_from_rotvec([0.3, 0.0, 0.0])
        for _ in range(300):
            self.filter.update(level_sample())
        self.assertLess(tilt_angle(self.filter.state.quaternion), 0.05)

    def test_calibration_status(self):
        """Steady headings mark the filter calibrated, spinning does not."""
        for _ in range(9):
            self.filter.update(level_sample())
        self.assertFalse(self.filter.state.calibrated)

        self.filter.update(level_sample())
        self.assertTrue(self.filter.state.calibrated)

        for _ in range(10):
            self.filter.update(level_sample(gyro_z=1.0))
        self.assertFalse(self.filter.state.calibrated)

    def test_align(self):
        """Alignment sets the heading."""
        self.filter.align(123.0)
        self.assertTrue(self.filter.is_aligned)
        heading = self.filter.update(level_sample())
        self.assertAlmostEqual(heading, 123.0, places=9)

    def test_bias_calibration(self):
        """Static samples give gyro and accelerometer biases."""
        samples = [MotionSample(0.1, -0.05, GRAVITY_MS2 + 0.2, 0.01, -0.02, 0.005)
                   for _ in range(60)]
        self.assertTrue(self.filter.calibrate(samples))

        np.testing.assert_allclose(self.filter.state.gyro_bias, [0.01, -0.02, 0.005], atol=1e-12)
        np.testing.assert_allclose(self.filter.state.accel_bias, [0.1, -0.05, 0.2], atol=1e-9)
        self.assertTrue(self.filter.bias_calibrated)

        # Gyro reading equal to its bias produces no rotation
        heading = self.filter.update(MotionSample(0.1, -0.05, GRAVITY_MS2 + 0.2,
                                                  0.01, -0.02, 0.005))
        self.assertEqual(heading, 0.0)

    def test_bias_calibration_rejected(self):
        """Too few or moving samples are rejected."""
        self.assertFalse(self.filter.calibrate([level_sample()] * 10))

        moving = [MotionSample(0.0, 0.0, GRAVITY_MS2 + (3.0 if i % 2 else -3.0), 0.0, 0.0, 0.0)
                  for i in range(60)]
        self.assertFalse(self.filter.calibrate(moving))
        self.assertFalse(self.filter.bias_calibrated)

    def test_reset(self):
        """Test reset returns to the initial state."""
        self.filter.align(90.0)
        self.filter.update(level_sample())
        self.filter.reset()

        self.assertIsNone(self.filter.heading)
        self.assertFalse(self.filter.is_aligned)
        stats = self.filter.get_statistics()
        self.assertFalse(stats['calibrated'])
        self.assertEqual(stats['heading_std'], 0.0)


if __name__ == '__main__':
    unittest.main()
