"""
Unit tests for config.loaders module.

Tests cover:
- Path resolution (relative vs absolute)
- YAML loading with environment variable expansion
- Error handling (missing files, invalid YAML)
"""

import os

import pytest
import yaml

from voice_receptionist.config.loaders import resolve_config_path, load_yaml_with_env_expansion


class TestResolveConfigPath:
    """Tests for resolve_config_path function."""

    def test_absolute_path_unchanged(self):
        abs_path = "/etc/receptionist/test.yaml"
        assert resolve_config_path(abs_path) == abs_path

    def test_relative_path_resolved(self):
        """Relative paths should be resolved against the project root."""
        result = resolve_config_path("config/receptionist.yaml")

        assert os.path.isabs(result)
        assert result.endswith(os.path.join("config", "receptionist.yaml"))
        assert os.path.exists(result)


class TestLoadYamlWithEnvExpansion:
    """Tests for load_yaml_with_env_expansion function."""

    def test_load_simple_yaml(self, tmp_path):
        config_file = tmp_path / "test.yaml"
        config_file.write_text("session:\n  connect_timeout_sec: 20\n  default_mode: patient\n")

        result = load_yaml_with_env_expansion(str(config_file))

        assert result == {"session": {"connect_timeout_sec": 20, "default_mode": "patient"}}

    def test_env_var_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_CLINIC", "Harbor Trials")
        monkeypatch.setenv("TEST_VOICE", "Puck")
        config_file = tmp_path / "test.yaml"
        config_file.write_text("receptionist:\n  clinic_name: ${TEST_CLINIC}\ngemini:\n  staff_voice: $TEST_VOICE\n")

        result = load_yaml_with_env_expansion(str(config_file))

        assert result["receptionist"]["clinic_name"] == "Harbor Trials"
        assert result["gemini"]["staff_voice"] == "Puck"

    def test_undefined_var_left_unchanged(self, tmp_path, monkeypatch):
        monkeypatch.delenv("UNDEFINED_RECEPTIONIST_VAR", raising=False)
        config_file = tmp_path / "test.yaml"
        config_file.write_text("value: ${UNDEFINED_RECEPTIONIST_VAR}\n")

        result = load_yaml_with_env_expansion(str(config_file))

        assert result["value"] == "${UNDEFINED_RECEPTIONIST_VAR}"

    def test_empty_file_returns_empty_dict(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert load_yaml_with_env_expansion(str(config_file)) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_yaml_with_env_expansion(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("gemini: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_yaml_with_env_expansion(str(config_file))
