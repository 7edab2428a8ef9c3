"""
Tests for config_loader module.

Tests loading of session configuration files including:
- Defaults when no file exists
- Invalid JSON and invalid values
- The generated sample config
"""

import pytest
import json
from unittest.mock import Mock
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from proctor.config_loader import config_from_dict, create_sample_config, load_config
from proctor.errors import ConfigError
from proctor.models import SessionConfig


class TestLoadConfig:
    """Test load_config."""

    def test_missing_file_uses_defaults(self, tmp_path):
        logger = Mock()

        config = load_config(tmp_path / "config.json", session_logger=logger)

        assert config == SessionConfig.default()
        logger.assert_called_once()
        assert logger.call_args.args[0] == "CONFIG_DEFAULT"

    def test_reads_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"violation_limit": 2, "encrypt_checkpoints": True}), encoding="utf-8")

        config = load_config(path)

        assert config.violation_limit == 2
        assert config.encrypt_checkpoints is True

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{violation_limit: 2", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"resume_clock_policy": "freeze"}), encoding="utf-8")

        with pytest.raises(ConfigError, match="resume_clock_policy"):
            load_config(path)

    def test_sample_config_is_valid(self, tmp_path):
        path = tmp_path / "sample.json"

        create_sample_config(path)
        config = load_config(path)

        assert config.autosave is True
        assert config.violation_limit == 3


class TestConfigFromDict:
    """Test config_from_dict."""

    def test_non_object(self):
        with pytest.raises(ConfigError, match="JSON object"):
            config_from_dict(["violation_limit", 3])

    def test_malformed_network_section(self):
        with pytest.raises(ConfigError, match="Malformed"):
            config_from_dict({"network_monitoring": "on"})
