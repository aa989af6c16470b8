import copy
import json
import logging
import os

logger = logging.getLogger(__name__)


DEFAULTS = {
    "camera": {
        "type": "kinect",
        "kinect": {
            "color_resolution": "RES_720P",
            "fps": 30,
            "depth_mode": "NFOV_UNBINNED",
        },
    },
    "body": {
        "model_complexity": 1,
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
        "depth_window": 5,
        "min_depth_m": 0.15,
        "max_depth_m": 6.0,
    },
    "capture": {
        "delay_ms": 3000,
        "snapshot_dir": ".",
        "min_confidence": 1,
        "manual_policy": "reset_countdown",
    },
    "stream": {
        "enabled": True,
        "host": "127.0.0.1",
        "port": 8888,
        "connect_timeout_s": None,
    },
}


def load_config(config_path="config.json"):
    """
    Loads configuration from a JSON file.
    If the file doesn't exist, returns default configuration.
    """
    defaults = copy.deepcopy(DEFAULTS)

    if not os.path.exists(config_path):
        # Try looking in parent directories or typical locations
        possible_paths = [
            os.path.join("..", config_path),
            os.path.join(os.path.dirname(__file__), "..", "..", "..", config_path)
        ]
        for p in possible_paths:
            if os.path.exists(p):
                config_path = p
                break
        else:
            logger.info("Config file %s not found. Using defaults.", config_path)
            return defaults

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            user_config = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Error loading config %s: %s. Using defaults.", config_path, e)
        return defaults

    if not isinstance(user_config, dict):
        logger.warning("Config %s is not a JSON object. Using defaults.", config_path)
        return defaults

    # Shallow merge per top-level section
    config = defaults
    for key, value in user_config.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value
    return config
