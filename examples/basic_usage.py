#!/usr/bin/env python3
"""
Basic usage example of the tracking session.

This example drives a session with a simulated walk: noisy position fixes at
1 Hz, compass readings and motion samples at 10 Hz, and a manually advanced
clock in place of the background timer.
"""

import sys
import os
import time
import numpy as np

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from navfusion import Config, MotionSample, OrientationSample, RawFix, TrackingSession
from navfusion.math.constants import GRAVITY_MS2, METERS_PER_DEGREE_LAT
from navfusion.satellites import fix_quality


def simulate_walk(duration=30, dt=0.1, seed=42):
    """
    Simulate a pedestrian walking northeast with a slow left turn.

    Args:
        duration: Simulation duration in seconds
        dt: Time step in seconds
        seed: Random seed

    Yields:
        (t, fix, orientation, motion) tuples; fix is None between fixes
    """
    rng = np.random.default_rng(seed)

    # Walk parameters
    speed = 1.4                     # m/s
    heading = 45.0                  # degrees
    turn_rate = -1.0                # deg/s, counter-clockwise

    # Starting position (Westminster)
    lat = 51.5007
    lon = -0.1246

    # Noise parameters
    gps_noise_m = 3.0
    compass_noise = 4.0             # degrees
    gyro_noise = 0.005              # rad/s
    accel_noise = 0.05              # m/s²

    steps = int(round(duration / dt))
    for step in range(steps):
        t = step * dt

        heading = (heading + turn_rate * dt) % 360.0
        north = speed * dt * np.cos(np.radians(heading))
        east = speed * dt * np.sin(np.radians(heading))
        lat += north / METERS_PER_DEGREE_LAT
        lon += east / (METERS_PER_DEGREE_LAT * np.cos(np.radians(lat)))

        fix = None
        if step % int(round(1.0 / dt)) == 0:
            accuracy = float(rng.uniform(3.0, 8.0))
            meters_per_degree_lon = METERS_PER_DEGREE_LAT * np.cos(np.radians(lat))
            fix = RawFix(
                latitude=lat + rng.normal(0, gps_noise_m) / METERS_PER_DEGREE_LAT,
                longitude=lon + rng.normal(0, gps_noise_m) / meters_per_degree_lon,
                accuracy=accuracy,
                altitude=15.0,
                timestamp=t
            )

        orientation = OrientationSample(
            alpha=(360.0 - heading + rng.normal(0, compass_noise)) % 360.0,
            timestamp=t
        )

        motion = MotionSample(
            accel_x=rng.normal(0, accel_noise),
            accel_y=rng.normal(0, accel_noise),
            accel_z=GRAVITY_MS2 + rng.normal(0, accel_noise),
            gyro_x=rng.normal(0, gyro_noise),
            gyro_y=rng.normal(0, gyro_noise),
            gyro_z=np.radians(turn_rate) + rng.normal(0, gyro_noise),
            timestamp=t
        )

        yield t, fix, orientation, motion


def main():
    """Main example function."""
    print("Position and Heading Fusion - Basic Usage Example")
    print("=" * 50)

    config = Config()
    config.configure_logging()

    clock = {'now': 0.0}
    wall_start = time.time()
    last = {'position': None, 'heading': None}

    def on_position(position, meta):
        last['position'] = (position, meta)

    def on_heading(result):
        last['heading'] = result

    def on_error(error):
        print(f"Error: {error}")

    session = TrackingSession(
        config=config,
        on_position_update=on_position,
        on_heading_update=on_heading,
        on_error=on_error,
        clock=lambda: clock['now'],
        wall_clock=lambda: wall_start + clock['now']
    )
    session.start(timer=False)

    print("Starting simulation (walk with slow left turn, 30 seconds)...")

    last_print_time = -1.0
    print_interval = 5.0

    for t, fix, orientation, motion in simulate_walk():
        clock['now'] = t

        if fix is not None:
            session.on_raw_fix(fix)
        session.on_raw_orientation(orientation)
        session.on_raw_motion(motion)
        session.tick()

        if t - last_print_time >= print_interval:
            print_status(t, last['position'], last['heading'])
            last_print_time = t

    session.stop()
    print("\nSimulation completed!")

    stats = session.get_statistics()
    print("\n=== Final Statistics ===")
    print(f"Fixes: {stats['fix_count']} ({stats['rejected_fixes']} rejected)")
    print(f"Predicted positions: {stats['prediction_count']}")
    print(f"Fused headings: {stats['fusion_count']}")
    print(f"Inertial calibrated: {stats['inertial']['calibrated']}")


def print_status(t, position_update, heading):
    """Print current session status."""
    print(f"Time: {t:.1f}s")
    if position_update is not None:
        position, meta = position_update
        kind = "predicted" if meta.predicted else "fix"
        print(f"  Position: {position.latitude:.6f}, {position.longitude:.6f} ({kind})")
        print(f"  Accuracy: {position.accuracy:5.1f} m ({fix_quality(position.accuracy)})")
        if meta.movement is not None and meta.movement.has_heading:
            print(f"  Movement: {meta.movement.heading:6.1f}° at {meta.movement.speed:4.2f} m/s")
    if heading is not None:
        sources = ", ".join(src.kind.value for src in heading.sources)
        print(f"  Heading:  {heading.heading:6.1f}° (confidence {heading.confidence:.2f}; {sources})")
    print()


if __name__ == "__main__":
    main()
