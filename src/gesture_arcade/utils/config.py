"""
Configuration loading.

Reads the YAML config file and turns it into typed session configuration.
A missing file is not an error: defaults reproduce the tuned constants.
"""

import os
import logging
from typing import Optional

import yaml

from ..core.session import SessionConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join("config", "config.yaml")

# Sections and their expected types, checked on load
_CONFIG_SCHEMA = {
    "camera": {
        "width": int,
        "height": int,
        "fps": int,
    },
    "filter": {
        "min_cutoff": float,
        "beta": float,
        "derivative_cutoff": float,
    },
    "tracking": {
        "lost_track_hold_ms": float,
        "frame_delivery": str,
    },
    "preview": {
        "throttle_ms": float,
        "process_width": int,
        "jpeg_quality": int,
    },
}


def load_config(config_path: Optional[str] = None) -> dict:
    """Load configuration from a YAML file; returns {} if it does not exist."""
    config_path = config_path or DEFAULT_CONFIG_PATH
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file not found: %s, using defaults", config_path)
        return {}

    if not isinstance(data, dict):
        logger.warning("Config file %s does not contain a mapping, using defaults", config_path)
        return {}

    logger.info("Loaded config from %s", config_path)
    validate_config(data)
    return data


def validate_config(data: dict) -> list:
    """Log (and return) type mismatches in known config fields."""
    warnings = []
    for section_name, fields in _CONFIG_SCHEMA.items():
        section = data.get(section_name)
        if section is None:
            continue
        if not isinstance(section, dict):
            warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
            continue
        for field_name, expected_type in fields.items():
            if field_name not in section:
                continue
            value = section[field_name]
            # Allow int where float is expected
            if expected_type is float and isinstance(value, (int, float)) and not isinstance(value, bool):
                continue
            if not isinstance(value, expected_type):
                warnings.append(
                    f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                    f"got {type(value).__name__} ({value!r})"
                )

    for w in warnings:
        logger.warning("Config validation: %s", w)
    return warnings


def create_session_config(config_dict: dict, profile: Optional[str] = None) -> SessionConfig:
    """Create SessionConfig from a configuration dictionary."""
    return SessionConfig.from_dict(config_dict, profile=profile)
