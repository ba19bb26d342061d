#!/usr/bin/env python3
"""
Integration tests for the complete tracking session.
"""

import threading
import time
import unittest
import sys
import os

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from navfusion import (
    AcquisitionUnavailableError,
    Config,
    ErrorKind,
    HeadingSourceKind,
    MotionSample,
    OrientationSample,
    RawFix,
    SessionStateError,
    TrackingSession,
    TrackingState,
)
from navfusion.math.constants import GRAVITY_MS2
from navfusion.math.utils import heading_difference

EPOCH = 1700000000.0


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class SessionHarness:
    """Session wired to recording callbacks."""

    def __init__(self, config=None):
        self.clock = FakeClock()
        self.positions = []
        self.headings = []
        self.errors = []
        self.states = []
        self.session = TrackingSession(
            config=config,
            on_position_update=lambda pos, meta: self.positions.append((pos, meta)),
            on_heading_update=self.headings.append,
            on_error=self.errors.append,
            on_state_change=lambda old, new: self.states.append((old, new)),
            clock=self.clock,
            wall_clock=lambda: EPOCH + self.clock.now
        )

    def fix(self, lat, lon, accuracy, t):
        self.clock.now = t
        self.session.on_raw_fix(RawFix(lat, lon, accuracy=accuracy, timestamp=t))

    def tick(self, t):
        self.clock.now = t
        self.session.tick()


class TestEndToEnd(unittest.TestCase):
    """Fix stream through smoothing, movement and dead reckoning."""

    def setUp(self):
        self.h = SessionHarness()
        self.h.session.start(timer=False)

    def tearDown(self):
        self.h.session.stop()

    def test_two_fix_scenario(self):
        """Two fixes one second apart give northeast movement."""
        self.h.fix(51.5007, -0.1246, 5.0, 0.0)
        self.h.fix(51.5008, -0.1245, 4.0, 1.0)

        self.assertEqual(len(self.h.positions), 2)
        position, meta = self.h.positions[-1]

        self.assertTrue(meta.is_real_fix)
        self.assertFalse(meta.predicted)
        self.assertEqual(meta.update_count, 2)
        self.assertGreater(position.latitude, 51.5007)
        self.assertLess(position.latitude, 51.5008)

        movement = meta.movement
        self.assertGreater(movement.speed, 0.0)
        self.assertGreaterEqual(movement.heading, 30.0)
        self.assertLessEqual(movement.heading, 60.0)
        self.assertIs(self.h.session.state, TrackingState.TRACKING)

    def test_dead_reckoning_between_fixes(self):
        """Ticks extrapolate once the last fix is no longer fresh."""
        self.h.fix(51.5007, -0.1246, 5.0, 0.0)
        self.h.fix(51.5008, -0.1245, 4.0, 1.0)
        last_real = self.h.positions[-1][0]

        self.h.tick(1.05)
        self.assertEqual(len(self.h.positions), 2)

        self.h.tick(1.5)
        self.assertEqual(len(self.h.positions), 3)
        predicted, meta = self.h.positions[-1]

        self.assertTrue(meta.predicted)
        self.assertFalse(meta.is_real_fix)
        self.assertTrue(predicted.predicted)
        self.assertGreater(predicted.latitude, last_real.latitude)
        self.assertGreaterEqual(predicted.accuracy, last_real.accuracy)

        counts = [meta.update_count for _, meta in self.h.positions]
        self.assertEqual(counts, sorted(counts))
        self.assertEqual(len(set(counts)), len(counts))

    def test_heading_updates(self):
        """Ticks fuse every available source."""
        self.h.fix(51.5007, -0.1246, 5.0, 0.0)
        self.h.fix(51.5008, -0.1245, 4.0, 1.0)
        for i in range(1, 6):
            self.h.tick(1.0 + i * 0.1)

        self.assertTrue(self.h.headings)
        for result in self.h.headings:
            self.assertGreaterEqual(result.heading, 0.0)
            self.assertLess(result.heading, 360.0)
            self.assertGreaterEqual(result.confidence, 0.0)
            self.assertLessEqual(result.confidence, 1.0)
            self.assertIsNotNone(result.source(HeadingSourceKind.GPS))
            self.assertIn('declination', result.details)
            self.assertIn('satellites', result.details)

    def test_invalid_fix_recovered(self):
        """An invalid fix is absorbed without output or error."""
        self.h.fix(51.5007, -0.1246, 5.0, 0.0)
        self.h.fix(float('nan'), -0.1246, 5.0, 1.0)

        self.assertEqual(len(self.h.positions), 1)
        self.assertEqual(self.h.errors, [])
        self.assertEqual(self.h.session.get_statistics()['rejected_fixes'], 1)

    def test_invalid_first_fix(self):
        """An invalid first fix leaves the session acquiring."""
        self.h.fix(None, None, 5.0, 0.0)
        self.assertEqual(self.h.positions, [])
        self.assertIs(self.h.session.state, TrackingState.ACQUIRING)


class TestStateMachine(unittest.TestCase):
    """Session lifecycle."""

    def setUp(self):
        self.h = SessionHarness(Config.from_dict({"satellites": {"enabled": False}}))

    def tearDown(self):
        self.h.session.stop()

    def test_lifecycle(self):
        """Uninitialized, acquiring, tracking, degraded, tracking, stopped."""
        session = self.h.session
        self.assertIs(session.state, TrackingState.UNINITIALIZED)

        session.start(timer=False)
        self.assertIs(session.state, TrackingState.ACQUIRING)

        self.h.fix(10.0, 20.0, 5.0, 0.0)
        self.h.fix(10.0001, 20.0, 5.0, 1.0)
        self.assertIs(session.state, TrackingState.TRACKING)

        self.h.tick(3.5)
        self.assertIs(session.state, TrackingState.TRACKING)

        self.h.tick(4.5)
        self.assertIs(session.state, TrackingState.DEGRADED)
        self.assertTrue(self.h.positions[-1][1].predicted)

        self.h.fix(10.0003, 20.0, 5.0, 5.0)
        self.assertIs(session.state, TrackingState.TRACKING)

        session.stop()
        self.assertIs(session.state, TrackingState.STOPPED)

        self.assertEqual([new for _, new in self.h.states], [
            TrackingState.ACQUIRING,
            TrackingState.TRACKING,
            TrackingState.DEGRADED,
            TrackingState.TRACKING,
            TrackingState.STOPPED,
        ])

    def test_input_before_start_ignored(self):
        """Nothing is processed before start()."""
        self.h.fix(10.0, 20.0, 5.0, 0.0)
        self.h.tick(1.0)
        self.assertEqual(self.h.positions, [])
        self.assertIs(self.h.session.state, TrackingState.UNINITIALIZED)

    def test_stop_is_idempotent_and_final(self):
        """No output after stop, and a stopped session cannot restart."""
        session = self.h.session
        session.start(timer=False)
        self.h.fix(10.0, 20.0, 5.0, 0.0)
        self.h.fix(10.0001, 20.0, 5.0, 1.0)

        session.stop()
        session.stop()
        emitted = (len(self.h.positions), len(self.h.headings), len(self.h.states))

        self.h.fix(10.0002, 20.0, 5.0, 2.0)
        self.h.tick(5.0)
        session.on_raw_orientation(OrientationSample(alpha=10.0))
        session.on_acquisition_error(ErrorKind.ACQUISITION_TIMEOUT, "late")

        self.assertEqual((len(self.h.positions), len(self.h.headings), len(self.h.states)),
                         emitted)
        self.assertEqual(self.h.errors, [])
        with self.assertRaises(SessionStateError):
            session.start(timer=False)

    def test_timeout_is_not_fatal(self):
        """A timeout is reported and tracking continues."""
        session = self.h.session
        session.start(timer=False)
        self.h.fix(10.0, 20.0, 5.0, 0.0)
        self.h.fix(10.0001, 20.0, 5.0, 1.0)

        session.on_acquisition_error("acquisition_timeout", "no fix within 10 s")
        self.assertEqual(len(self.h.errors), 1)
        self.assertEqual(self.h.errors[0].kind, ErrorKind.ACQUISITION_TIMEOUT)
        self.assertFalse(self.h.errors[0].fatal)
        self.assertIs(session.state, TrackingState.TRACKING)

        self.h.tick(2.0)
        self.assertTrue(self.h.positions[-1][1].predicted)

    def test_unavailable_is_fatal(self):
        """Permission denial stops the session."""
        session = self.h.session
        session.start(timer=False)
        self.h.fix(10.0, 20.0, 5.0, 0.0)

        session.on_acquisition_error(ErrorKind.ACQUISITION_UNAVAILABLE, "permission denied")

        self.assertEqual(len(self.h.errors), 1)
        self.assertTrue(self.h.errors[0].fatal)
        self.assertIs(session.state, TrackingState.STOPPED)
        self.assertIsInstance(session.fatal_error, AcquisitionUnavailableError)

        count = len(self.h.positions)
        self.h.fix(10.0001, 20.0, 5.0, 1.0)
        self.assertEqual(len(self.h.positions), count)

    def test_statistics(self):
        """Test session statistics."""
        session = self.h.session
        session.start(timer=False)
        self.h.fix(10.0, 20.0, 5.0, 0.0)
        self.h.fix(10.0001, 20.0, 5.0, 1.0)
        self.h.tick(2.0)

        stats = session.get_statistics()
        self.assertEqual(stats['state'], 'tracking')
        self.assertEqual(stats['fix_count'], 2)
        self.assertEqual(stats['prediction_count'], 1)
        self.assertEqual(stats['update_count'], 3)
        self.assertAlmostEqual(stats['last_fix_age'], 1.0)
        self.assertIn(stats['fix_quality'], ('Exceptional', 'Excellent', 'Good', 'Fair', 'Poor'))
        self.assertTrue(stats['constellations'])


class TestOrientationFusion(unittest.TestCase):
    """Compass and inertial sources through the session."""

    def setUp(self):
        self.h = SessionHarness(Config.from_dict({"satellites": {"enabled": False}}))
        self.h.session.start(timer=False)

    def tearDown(self):
        self.h.session.stop()

    def test_compass_and_inertial(self):
        """The inertial filter aligns to the first compass heading."""
        session = self.h.session
        session.on_raw_orientation(OrientationSample(alpha=None, compass_heading=90.0))
        self.assertTrue(session.inertial.is_aligned)

        for _ in range(3):
            session.on_raw_motion(MotionSample(0.0, 0.0, GRAVITY_MS2, 0.0, 0.0, 0.0))
        self.h.tick(0.1)

        result = self.h.headings[-1]
        self.assertLess(abs(heading_difference(result.heading, 90.0)), 1e-6)
        kinds = {src.kind for src in result.sources}
        self.assertEqual(kinds, {HeadingSourceKind.DEVICE, HeadingSourceKind.INERTIAL})
        self.assertAlmostEqual(result.confidence, (0.25 * 0.8 + 0.15 * 0.6) / 0.5)

    def test_compass_calibration_reported(self):
        """Compass agreement shows up in heading details and statistics."""
        session = self.h.session
        session.on_raw_orientation(OrientationSample(alpha=None, compass_heading=90.0))
        self.h.tick(0.1)
        self.assertFalse(self.h.headings[-1].details['compass_calibrated'])
        self.assertFalse(session.get_statistics()['compass_calibrated'])

        for _ in range(10):
            session.on_raw_orientation(OrientationSample(alpha=270.0))
        self.h.tick(0.2)
        self.assertTrue(self.h.headings[-1].details['compass_calibrated'])
        self.assertTrue(session.get_statistics()['compass_calibrated'])

    def test_no_sources_no_heading(self):
        """Without any heading source no heading is emitted."""
        self.h.tick(0.1)
        self.assertEqual(self.h.headings, [])


class TestTimerThread(unittest.TestCase):
    """Background tick thread."""

    def test_timer_emits_predictions_and_stops(self):
        """The timer drives dead reckoning until stop()."""
        predicted = threading.Event()

        def on_position(position, meta):
            if meta.predicted:
                predicted.set()

        config = Config.from_dict({
            "satellites": {"enabled": False},
            "timing": {"tick_interval_s": 0.02}
        })
        session = TrackingSession(config=config, on_position_update=on_position)
        session.start()
        try:
            now = time.monotonic()
            session.on_raw_fix(RawFix(10.0, 20.0, accuracy=5.0, timestamp=now - 2.0))
            session.on_raw_fix(RawFix(10.0001, 20.0, accuracy=5.0, timestamp=now - 1.0))
            self.assertTrue(predicted.wait(2.0))
        finally:
            session.stop()

        self.assertIs(session.state, TrackingState.STOPPED)
        count = session.update_count
        time.sleep(0.1)
        self.assertEqual(session.update_count, count)


if __name__ == '__main__':
    unittest.main()
