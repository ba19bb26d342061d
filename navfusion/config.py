"""
Configuration manager for a tracking session.
"""

import copy
import json
import logging
import os
from typing import Any, Dict, Optional

from .math.constants import (
    SMOOTHING_GAIN,
    MAX_SMOOTHING_FACTOR,
    POSITION_HISTORY_CAPACITY,
    MIN_MOVEMENT_M,
    TICK_INTERVAL_S,
    MIN_PREDICTION_AGE_S,
    STALENESS_THRESHOLD_S,
    ELEVATION_MASK_DEG,
    TRAJECTORY_ELEVATION_MASK_DEG,
    GOOD_SATELLITE_ELEVATION_DEG,
    GOOD_SATELLITE_SIGNAL,
    MIN_SATELLITES,
    MIN_RESULTANT,
    PREDICTION_HORIZON_S,
    SATELLITE_HISTORY_CAPACITY,
    IMU_UPDATE_INTERVAL_S,
    GRAVITY_GAIN,
    GRAVITY_MIN_MS2,
    GRAVITY_MAX_MS2,
    CALIBRATION_WINDOW,
    CALIBRATION_STD_DEG,
    IMU_HISTORY_CAPACITY,
    COMPASS_WINDOW,
    COMPASS_AGREEMENT_DEG,
    FUSION_REFERENCE_WEIGHT,
    DEVICE_WEIGHT,
    SATELLITE_WEIGHT,
    TRAJECTORY_WEIGHT,
    INERTIAL_WEIGHT,
    GPS_WEIGHT,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Config:
    """Configuration manager for the fusion pipeline."""

    DEFAULT_CONFIG = {
        # Position smoothing and extrapolation
        "position": {
            "smoothing_gain": SMOOTHING_GAIN,
            "max_smoothing_factor": MAX_SMOOTHING_FACTOR,
            "history_capacity": POSITION_HISTORY_CAPACITY,
            "min_movement_m": MIN_MOVEMENT_M,
            "min_prediction_age_s": MIN_PREDICTION_AGE_S
        },

        # Session timing
        "timing": {
            "tick_interval_s": TICK_INTERVAL_S,
            "staleness_threshold_s": STALENESS_THRESHOLD_S
        },

        # Satellite geometry
        "satellites": {
            "enabled": True,
            "elevation_mask_deg": ELEVATION_MASK_DEG,
            "trajectory_elevation_mask_deg": TRAJECTORY_ELEVATION_MASK_DEG,
            "good_elevation_deg": GOOD_SATELLITE_ELEVATION_DEG,
            "good_signal": GOOD_SATELLITE_SIGNAL,
            "min_satellites": MIN_SATELLITES,
            "prediction_horizon_s": PREDICTION_HORIZON_S,
            "history_capacity": SATELLITE_HISTORY_CAPACITY
        },

        # Inertial filter
        "inertial": {
            "update_interval_s": IMU_UPDATE_INTERVAL_S,
            "gravity_gain": GRAVITY_GAIN,
            "gravity_min_ms2": GRAVITY_MIN_MS2,
            "gravity_max_ms2": GRAVITY_MAX_MS2,
            "calibration_window": CALIBRATION_WINDOW,
            "calibration_std_deg": CALIBRATION_STD_DEG,
            "history_capacity": IMU_HISTORY_CAPACITY,
            "align_to_compass": True
        },

        # Device compass
        "compass": {
            "window": COMPASS_WINDOW,
            "agreement_deg": COMPASS_AGREEMENT_DEG
        },

        # Heading fusion
        "fusion": {
            "weights": {
                "device": DEVICE_WEIGHT,
                "satellite": SATELLITE_WEIGHT,
                "trajectory": TRAJECTORY_WEIGHT,
                "inertial": INERTIAL_WEIGHT,
                "gps": GPS_WEIGHT
            },
            "reference_weight": FUSION_REFERENCE_WEIGHT,
            "min_resultant": MIN_RESULTANT
        },

        # Logging
        "logging": {
            "level": "INFO",
            "file": None
        }
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to a JSON file whose values override the
                defaults. None uses defaults only.
        """
        self.config_file = config_file
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file is not None:
            if os.path.exists(config_file):
                self.load_config()
            else:
                logger.info("Config file %s not found, using defaults", config_file)

    @classmethod
    def from_dict(cls, overrides: Dict[str, Any]) -> 'Config':
        """Defaults with the given nested overrides applied."""
        config = cls()
        config._merge_config(config.config, overrides)
        return config

    def load_config(self) -> bool:
        """
        Load configuration from file.

        Returns:
            True if loaded successfully
        """
        try:
            with open(self.config_file, 'r') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load config %s: %s", self.config_file, e)
            return False

        if not isinstance(file_config, dict):
            logger.error("Config %s must contain a JSON object", self.config_file)
            return False

        # File config overrides defaults
        self._merge_config(self.config, file_config)

        logger.info("Configuration loaded from %s", self.config_file)
        return True

    def save_config(self, path: Optional[str] = None) -> bool:
        """
        Save current configuration to file.

        Args:
            path: Destination (defaults to the file it was loaded from)

        Returns:
            True if saved successfully
        """
        path = path or self.config_file
        if path is None:
            raise ValueError("No config file path given")

        try:
            with open(path, 'w') as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            logger.error("Failed to save config %s: %s", path, e)
            return False

        logger.info("Configuration saved to %s", path)
        return True

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]):
        """Recursively merge configuration dictionaries."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default=None):
        """Get configuration value by dotted key with optional default."""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """Set configuration value by dotted key."""
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def configure_logging(self):
        """Apply the logging section to the root logger."""
        level_name = str(self.config["logging"]["level"]).upper()
        level = getattr(logging, level_name, None)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level_name}")

        handlers = [logging.StreamHandler()]
        log_file = self.config["logging"].get("file")
        if log_file:
            handlers.append(logging.FileHandler(log_file))

        logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # Property accessors for common configuration values
    @property
    def position(self) -> Dict[str, Any]:
        return self.config["position"]

    @property
    def satellites(self) -> Dict[str, Any]:
        return self.config["satellites"]

    @property
    def inertial(self) -> Dict[str, Any]:
        return self.config["inertial"]

    @property
    def compass(self) -> Dict[str, Any]:
        return self.config["compass"]

    @property
    def fusion(self) -> Dict[str, Any]:
        return self.config["fusion"]

    @property
    def source_weights(self) -> Dict[str, float]:
        return self.config["fusion"]["weights"]

    @property
    def tick_interval(self) -> float:
        return self.config["timing"]["tick_interval_s"]

    @property
    def staleness_threshold(self) -> float:
        return self.config["timing"]["staleness_threshold_s"]

    @property
    def log_level(self) -> str:
        return self.config["logging"]["level"]

    def __str__(self) -> str:
        return json.dumps(self.config, indent=2)
