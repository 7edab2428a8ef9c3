"""
Configuration loader for session policy settings.

Handles loading and validating session configuration files.
"""

import json
import sys
from pathlib import Path
from typing import Optional

from .errors import ConfigError
from .models import SessionConfig


def default_config_path() -> Path:
    """config.json next to the executable, or in the project root."""
    if getattr(sys, 'frozen', False):
        exe_dir = Path(sys.executable).parent
    else:
        exe_dir = Path(__file__).parent.parent
    return exe_dir / "config.json"


def config_from_dict(data: dict) -> SessionConfig:
    """
    Build and validate a SessionConfig.

    Raises:
        ConfigError: If the values are inconsistent
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    try:
        config = SessionConfig.from_dict(data)
    except (TypeError, AttributeError) as e:
        raise ConfigError(f"Malformed configuration: {e}") from e

    is_valid, error_message = config.validate()
    if not is_valid:
        raise ConfigError(f"Invalid configuration: {error_message}")

    return config


def load_config(config_path: Optional[Path] = None, session_logger=None) -> SessionConfig:
    """
    Load session configuration from a JSON file.

    Args:
        config_path: Path to the configuration file. If None, looks for
                    'config.json' next to the executable/script.
        session_logger: Optional event logger notified when defaults are used

    Returns:
        SessionConfig object with validated configuration

    Raises:
        ConfigError: If config is invalid or unreadable
    """
    if config_path is None:
        config_path = default_config_path()
    config_path = Path(config_path)

    if not config_path.exists():
        if session_logger:
            session_logger("CONFIG_DEFAULT", f"Config file '{config_path}' not found, using defaults")
        return SessionConfig.default()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error reading config file: {e}") from e

    return config_from_dict(data)


def create_sample_config(output_path: Path):
    """
    Create a sample configuration file for exam operators.

    Args:
        output_path: Path where to save the sample config
    """
    sample_config = {
        "violation_limit": 3,
        "tick_seconds": 1,
        "resume_clock_policy": "wall_clock",
        "coding_grace_seconds": 600,
        "checkpoint_dir": "checkpoints",
        "encrypt_checkpoints": False,
        "require_fullscreen": True,
        "autosave": True,
        "network_monitoring": {
            "enabled": False,
            "check_interval_seconds": 15
        },
        "_comment": "This is a sample session configuration. Adjust values as needed.",
        "_instructions": {
            "violation_limit": "Tab-switch violations that force the session forward",
            "tick_seconds": "Real seconds per clock tick",
            "resume_clock_policy": "wall_clock: deadline keeps running across reloads; "
                                   "snapshot: resume from the saved remaining time; "
                                   "reset: restart the full duration",
            "coding_grace_seconds": "Coding time granted when the clock forces the jump into coding "
                                    "(0 = no clock in the coding phase)",
            "checkpoint_dir": "Directory where progress checkpoints are stored",
            "encrypt_checkpoints": "Encrypt checkpoints so candidates cannot edit them "
                                   "(requires --checkpoint-key)",
            "require_fullscreen": "Request fullscreen when the session starts",
            "autosave": "Checkpoint after every answer/navigation, not only on exit",
            "network_monitoring": "Count coming online during an offline exam as a violation"
        }
    }

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(sample_config, f, indent=2)
