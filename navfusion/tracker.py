"""
Tracking session: serialises sensor inputs and the periodic tick through the
fusion pipeline and reports position and heading updates to the consumer.
"""

import datetime
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .config import Config
from .errors import AcquisitionError, ErrorKind, ErrorNotification, SessionStateError
from .fusion import FusionResult, HeadingFusionEngine, HeadingSourceKind, TrackingState
from .math.constants import (
    DEVICE_CONFIDENCE,
    GPS_CONFIDENCE,
    INERTIAL_CALIBRATED_CONFIDENCE,
    INERTIAL_UNCALIBRATED_CONFIDENCE,
)
from .satellites import (
    GeometricHeadingTriangulator,
    SatelliteGeometryModel,
    TrajectoryHeadingPredictor,
    accuracy_dop,
    analyze_constellations,
    fix_quality,
    geometry_pdop,
    magnetic_declination,
    satellite_count_label,
)
from .sensors import (
    DeadReckoningPredictor,
    DeviceCompass,
    InertialOrientationFilter,
    MotionSample,
    MovementEstimate,
    MovementEstimator,
    OrientationSample,
    PositionFilter,
    PredictedPosition,
    RawFix,
    SmoothedPosition,
)

logger = logging.getLogger(__name__)

_ACTIVE_STATES = (TrackingState.ACQUIRING, TrackingState.TRACKING, TrackingState.DEGRADED)


@dataclass(frozen=True)
class PositionMetadata:
    """Metadata delivered with every position update."""

    update_count: int
    is_real_fix: bool
    predicted: bool
    timestamp: float
    movement: Optional[MovementEstimate] = None


class TrackingSession:
    """
    One tracking session.

    Position fixes, orientation samples, motion samples, acquisition errors
    and timer ticks are all processed under a single lock, so callbacks see
    outputs in the order their inputs were handled. Fusion is re-evaluated on
    every tick.
    """

    def __init__(self,
                 config: Optional[Config] = None,
                 geometry_model: Optional[SatelliteGeometryModel] = None,
                 on_position_update: Optional[Callable] = None,
                 on_heading_update: Optional[Callable[[FusionResult], None]] = None,
                 on_error: Optional[Callable[[ErrorNotification], None]] = None,
                 on_state_change: Optional[Callable] = None,
                 clock: Callable[[], float] = time.monotonic,
                 wall_clock: Callable[[], float] = time.time):
        """
        Initialize the session.

        Args:
            config: Configuration (defaults used if None)
            geometry_model: Satellite sky model (SatelliteGeometryModel if None)
            on_position_update: Called with (position, PositionMetadata)
            on_heading_update: Called with a FusionResult
            on_error: Called with an ErrorNotification
            on_state_change: Called with (old_state, new_state)
            clock: Monotonic clock, same time base as sample timestamps
            wall_clock: Epoch seconds, drives the satellite model
        """
        self.config = config or Config()
        self.clock = clock
        self.wall_clock = wall_clock

        self.on_position_update = on_position_update
        self.on_heading_update = on_heading_update
        self.on_error = on_error
        self.on_state_change = on_state_change

        pos = self.config.position
        sats = self.config.satellites
        imu = self.config.inertial
        compass = self.config.compass
        fusion = self.config.fusion

        # Position pipeline
        self.position_filter = PositionFilter(
            smoothing_gain=pos["smoothing_gain"],
            max_factor=pos["max_smoothing_factor"],
            history_capacity=pos["history_capacity"]
        )
        self.movement_estimator = MovementEstimator(min_distance=pos["min_movement_m"])
        self.predictor = DeadReckoningPredictor(min_age=pos["min_prediction_age_s"])

        # Heading sources
        self.satellites_enabled = bool(sats["enabled"])
        self.geometry_model = geometry_model or SatelliteGeometryModel(
            elevation_mask=sats["elevation_mask_deg"]
        )
        self.triangulator = GeometricHeadingTriangulator(
            min_elevation=sats["good_elevation_deg"],
            min_signal=sats["good_signal"],
            min_satellites=sats["min_satellites"],
            min_resultant=fusion["min_resultant"]
        )
        self.trajectory = TrajectoryHeadingPredictor(
            horizon=sats["prediction_horizon_s"],
            min_elevation=sats["good_elevation_deg"],
            predicted_elevation_mask=sats["trajectory_elevation_mask_deg"],
            min_satellites=sats["min_satellites"],
            min_resultant=fusion["min_resultant"],
            history_capacity=sats["history_capacity"]
        )
        self.inertial = InertialOrientationFilter(
            update_interval=imu["update_interval_s"],
            gravity_gain=imu["gravity_gain"],
            gravity_range=(imu["gravity_min_ms2"], imu["gravity_max_ms2"]),
            calibration_window=imu["calibration_window"],
            calibration_std=imu["calibration_std_deg"],
            history_capacity=imu["history_capacity"]
        )
        self.align_to_compass = bool(imu["align_to_compass"])
        self.compass = DeviceCompass(window=compass["window"],
                                     agreement_deg=compass["agreement_deg"])
        self.engine = HeadingFusionEngine(
            weights=fusion["weights"],
            reference_weight=fusion["reference_weight"],
            min_resultant=fusion["min_resultant"]
        )

        self.tick_interval = self.config.tick_interval
        self.staleness_threshold = self.config.staleness_threshold

        # Threading control
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._timer_thread: Optional[threading.Thread] = None

        # Data storage
        self._state = TrackingState.UNINITIALIZED
        self.last_movement: Optional[MovementEstimate] = None
        self.last_heading: Optional[FusionResult] = None
        self.last_fix_time: Optional[float] = None
        self.fatal_error: Optional[AcquisitionError] = None

        # Statistics
        self.update_count = 0
        self.prediction_count = 0
        self.fusion_count = 0
        self.error_count = 0
        self.start_time: Optional[float] = None

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state in _ACTIVE_STATES

    def start(self, timer: bool = True):
        """
        Start the session.

        Args:
            timer: Run the periodic tick on a background thread. With False
                the caller drives tick() itself.

        Raises:
            SessionStateError: If the session was already stopped
        """
        with self._lock:
            if self._state is TrackingState.STOPPED:
                raise SessionStateError("A stopped session cannot be restarted")
            if self.running:
                logger.info("Session already running")
                return

            self.start_time = self.clock()
            self._set_state(TrackingState.ACQUIRING)

            if timer:
                self._stop_event.clear()
                self._timer_thread = threading.Thread(target=self._timer_loop,
                                                      name="navfusion-tick", daemon=True)
                self._timer_thread.start()

        logger.info("Tracking session started (tick %.0f ms)", self.tick_interval * 1000)

    def stop(self):
        """Stop the timer and ignore all further input. Idempotent."""
        with self._lock:
            halted = self._halt()

        thread = self._timer_thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self._timer_thread = None

        if halted:
            logger.info("Tracking session stopped")

    def _halt(self) -> bool:
        """Enter STOPPED under the lock. Returns False if already stopped."""
        if self._state is TrackingState.STOPPED:
            return False
        self._stop_event.set()
        self._set_state(TrackingState.STOPPED)
        return True

    def _timer_loop(self):
        """Periodic tick loop."""
        while not self._stop_event.wait(self.tick_interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Tick failed")

    def on_raw_fix(self, fix: RawFix):
        """Handle a position fix from the location provider."""
        with self._lock:
            if not self.running:
                logger.debug("Fix ignored, session is %s", self._state.value)
                return

            previous = self.position_filter.current
            outcome = self.position_filter.update(fix)
            if not outcome.accepted:
                # Invalid samples are recovered locally, the previous estimate stands
                return

            position = outcome.position
            self.last_movement = self.movement_estimator.estimate(position, previous)
            self.last_fix_time = position.timestamp

            self._set_state(TrackingState.TRACKING)
            self._emit_position(position, is_real_fix=True, movement=self.last_movement)

    def on_raw_orientation(self, sample: OrientationSample):
        """Handle an orientation sample."""
        with self._lock:
            if not self.running:
                return
            heading = self.compass.update(sample)
            if heading is not None and self.align_to_compass and not self.inertial.is_aligned:
                self.inertial.align(heading)

    def on_raw_motion(self, sample: MotionSample):
        """Handle an inertial sample."""
        with self._lock:
            if not self.running:
                return
            self.inertial.update(sample)

    def on_acquisition_error(self, kind: Union[ErrorKind, str], message: str):
        """
        Handle an error reported by a sample provider.

        ACQUISITION_UNAVAILABLE stops the session; timeouts are reported and
        the session keeps serving dead-reckoned output.
        """
        kind = ErrorKind(kind)
        with self._lock:
            if not self.running:
                return

            self.error_count += 1
            notification = ErrorNotification(kind=kind, message=message, fatal=kind.is_fatal)

            if kind.is_fatal:
                logger.error("Acquisition unavailable: %s", message)
                self.fatal_error = AcquisitionError.from_kind(kind, message)
            else:
                logger.warning("Acquisition error (%s): %s", kind.value, message)

            if self.on_error is not None:
                self.on_error(notification)

            if not kind.is_fatal:
                return
            self._halt()

        self.stop()

    def tick(self, now: Optional[float] = None):
        """
        Periodic update: staleness check, dead reckoning and heading fusion.

        Args:
            now: Current monotonic time (defaults to clock())
        """
        with self._lock:
            if not self.running:
                return
            if now is None:
                now = self.clock()

            self._check_staleness(now)

            prediction = self.predictor.predict(self.position_filter.history, now)
            if prediction is not None:
                self.prediction_count += 1
                self._emit_position(prediction, is_real_fix=False)

            result = self._fuse(now)
            if result is not None:
                self.fusion_count += 1
                self.last_heading = result
                if self.on_heading_update is not None:
                    self.on_heading_update(result)

    def _check_staleness(self, now: float):
        if self._state is not TrackingState.TRACKING or self.last_fix_time is None:
            return
        age = now - self.last_fix_time
        if age > self.staleness_threshold:
            logger.warning("No fresh fix for %.1f s, serving predicted positions", age)
            self._set_state(TrackingState.DEGRADED)

    def _fuse(self, now: float) -> Optional[FusionResult]:
        """Collect every available heading source and fuse them."""
        engine = self.engine
        sources = []
        details = {}

        device = self.compass.heading
        if device is not None:
            sources.append(engine.make_source(HeadingSourceKind.DEVICE, device, DEVICE_CONFIDENCE))
        details['device'] = device
        details['compass_calibrated'] = self.compass.is_calibrated

        position = self.position_filter.current
        details['satellite'] = details['trajectory'] = None
        if self.satellites_enabled and position is not None:
            wall = self.wall_clock()
            snapshot = self.geometry_model.snapshot(position.latitude, position.longitude,
                                                    position.altitude, wall)

            triangulated = self.triangulator.estimate(snapshot.observations)
            if triangulated is not None:
                sources.append(engine.make_source(HeadingSourceKind.SATELLITE,
                                                  triangulated.heading, triangulated.confidence))
                details['satellite'] = triangulated.heading

            predicted = self.trajectory.update(snapshot)
            if predicted is not None:
                sources.append(engine.make_source(HeadingSourceKind.TRAJECTORY,
                                                  predicted.heading, predicted.confidence))
                details['trajectory'] = predicted.heading

            year = datetime.datetime.fromtimestamp(wall, tz=datetime.timezone.utc).year
            details['declination'] = magnetic_declination(position.latitude,
                                                          position.longitude, year)
            details['satellites'] = snapshot.summary()
            details['pdop'] = geometry_pdop([obs.elevation for obs in snapshot.observations])

        inertial = self.inertial.heading
        if inertial is not None:
            confidence = (INERTIAL_CALIBRATED_CONFIDENCE if self.inertial.state.calibrated
                          else INERTIAL_UNCALIBRATED_CONFIDENCE)
            sources.append(engine.make_source(HeadingSourceKind.INERTIAL, inertial, confidence))
        details['inertial'] = inertial

        movement = self.last_movement
        if movement is not None and movement.has_heading:
            sources.append(engine.make_source(HeadingSourceKind.GPS, movement.heading,
                                              GPS_CONFIDENCE))
            details['gps'] = movement.heading
        else:
            details['gps'] = None

        return engine.fuse(sources, details=details, timestamp=now)

    def _emit_position(self, position: Union[SmoothedPosition, PredictedPosition],
                       is_real_fix: bool, movement: Optional[MovementEstimate] = None):
        self.update_count += 1
        if self.on_position_update is None:
            return
        metadata = PositionMetadata(
            update_count=self.update_count,
            is_real_fix=is_real_fix,
            predicted=not is_real_fix,
            timestamp=position.timestamp,
            movement=movement
        )
        self.on_position_update(position, metadata)

    def _set_state(self, new_state: TrackingState):
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.info("Session state %s -> %s", old_state.value, new_state.value)
        if self.on_state_change is not None:
            self.on_state_change(old_state, new_state)

    def get_statistics(self) -> dict:
        """Get session statistics."""
        with self._lock:
            now = self.clock()
            filter_stats = self.position_filter.get_statistics()
            stats = {
                'state': self._state.value,
                'update_count': self.update_count,
                'fix_count': filter_stats['fix_count'],
                'rejected_fixes': filter_stats['rejected_count'],
                'rejected_motion_samples': self.inertial.rejected_count,
                'prediction_count': self.prediction_count,
                'fusion_count': self.fusion_count,
                'error_count': self.error_count,
                'last_fix_age': None if self.last_fix_time is None else now - self.last_fix_time,
                'uptime': None if self.start_time is None else now - self.start_time,
                'compass_calibrated': self.compass.is_calibrated,
                'inertial': self.inertial.get_statistics()
            }

            current = self.position_filter.current
            if current is not None:
                availability = analyze_constellations(current.accuracy)
                dop = accuracy_dop(current.accuracy, availability.estimated_satellites)
                stats.update({
                    'fix_quality': fix_quality(current.accuracy),
                    'satellite_band': satellite_count_label(current.accuracy),
                    'constellations': availability.active,
                    'accuracy_pdop': None if dop is None else dop.pdop,
                    'dop_quality': None if dop is None else dop.quality
                })
            return stats
