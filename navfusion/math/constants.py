"""
Mathematical and physical constants for heading and position fusion.
"""

# Earth parameters
EARTH_RADIUS_M = 6371000.0          # Mean Earth radius in meters
EARTH_MU = 3.986004418e14           # Gravitational parameter (m³/s²)
GRAVITY_MS2 = 9.80665               # Standard gravity in m/s²
METERS_PER_DEGREE_LAT = 111320.0    # Local equirectangular scale

# Time
SECONDS_PER_DAY = 86400.0
UNIX_EPOCH_JULIAN_DAY = 2440587.5
J2000_JULIAN_DAY = 2451545.0

# Signal model
GPS_L1_FREQUENCY_HZ = 1575.42e6
SPEED_OF_LIGHT_MS = 299792458.0
MAX_SIGNAL_RANGE_M = 25000000.0

# Position filter
SMOOTHING_GAIN = 5.0                # k in f = k / max(accuracy, 1)
MAX_SMOOTHING_FACTOR = 0.3
POSITION_HISTORY_CAPACITY = 20
MIN_MOVEMENT_M = 0.3
DEFAULT_FIX_ACCURACY_M = 10.0        # used when a fix reports no accuracy

# Dead reckoning / session timing
TICK_INTERVAL_S = 0.1
MIN_PREDICTION_AGE_S = 0.1
STALENESS_THRESHOLD_S = 3.0

# Satellite geometry
ELEVATION_MASK_DEG = 5.0
TRAJECTORY_ELEVATION_MASK_DEG = 10.0
GOOD_SATELLITE_ELEVATION_DEG = 15.0
GOOD_SATELLITE_SIGNAL = 0.3
MIN_SATELLITES = 4
MIN_RESULTANT = 0.1
GEOMETRY_SEPARATION_NORM_DEG = 30.0
PREDICTION_HORIZON_S = 1.0
SATELLITE_HISTORY_CAPACITY = 30
KEPLER_TOLERANCE = 1e-6
KEPLER_MAX_ITERATIONS = 20

# Inertial filter
IMU_UPDATE_INTERVAL_S = 0.1
GRAVITY_GAIN = 0.02
GRAVITY_MIN_MS2 = 0.5
GRAVITY_MAX_MS2 = 15.0
MIN_ROTATION_RAD = 0.001
CALIBRATION_WINDOW = 10
CALIBRATION_STD_DEG = 5.0
IMU_HISTORY_CAPACITY = 50
MIN_CALIBRATION_SAMPLES = 50

# Device compass
COMPASS_WINDOW = 10
COMPASS_AGREEMENT_DEG = 5.0

# Fusion
FUSION_REFERENCE_WEIGHT = 0.5
DEVICE_WEIGHT = 0.25
SATELLITE_WEIGHT = 0.30
TRAJECTORY_WEIGHT = 0.25
INERTIAL_WEIGHT = 0.15
GPS_WEIGHT = 0.05
DEVICE_CONFIDENCE = 0.8
GPS_CONFIDENCE = 0.7
INERTIAL_CALIBRATED_CONFIDENCE = 0.9
INERTIAL_UNCALIBRATED_CONFIDENCE = 0.6
