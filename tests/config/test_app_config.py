"""
Integration tests: load_config end to end and validate_config.
"""

import pytest

from voice_receptionist.config import (
    AppConfig,
    GeminiLiveConfig,
    SessionConfig,
    load_config,
    validate_config,
)


@pytest.fixture
def clean_env(monkeypatch):
    for var in (
        "GEMINI_API_KEY", "GOOGLE_API_KEY", "CLINIC_NAME", "RECEPTIONIST_GREETING", "EMERGENCY_CONTACT",
        "CONNECT_TIMEOUT_SEC", "AUDIO_INPUT_DEVICE", "AUDIO_OUTPUT_DEVICE", "GEMINI_MODEL",
    ):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestLoadConfig:

    def test_bundled_config(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "AIza-test")

        config = load_config()

        assert config.gemini.api_key == "AIza-test"
        assert config.audio.input_sample_rate_hz == 16000
        assert config.audio.output_sample_rate_hz == 24000
        assert config.session.default_mode in ("staff", "patient")
        assert config.seed_data

    def test_full_pipeline(self, clean_env, tmp_path):
        clean_env.setenv("GOOGLE_API_KEY", "g-key")
        clean_env.setenv("CLINIC_NAME", "Harbor Trials")
        clean_env.setenv("CONNECT_TIMEOUT_SEC", "9")
        config_file = tmp_path / "receptionist.yaml"
        config_file.write_text(
            "gemini:\n"
            "  api_key: should-be-ignored\n"
            "  patient_voice: Aoede\n"
            "receptionist:\n"
            "  tone: Empathetic\n"
            "tools:\n"
            "  register_new_patient:\n"
            "    site_id: SITE-042\n"
        )

        config = load_config(str(config_file))

        assert config.gemini.api_key == "g-key"
        assert config.gemini.patient_voice == "Aoede"
        assert config.receptionist.clinic_name == "Harbor Trials"
        assert config.receptionist.tone == "Empathetic"
        assert config.session.connect_timeout_sec == 9.0
        assert config.tools["register_new_patient"]["site_id"] == "SITE-042"


class TestValidateConfig:

    def test_valid(self):
        errors, warnings = validate_config(AppConfig(gemini=GeminiLiveConfig(api_key="k")))
        assert errors == []
        assert warnings == []

    def test_missing_key_is_error(self):
        errors, _ = validate_config(AppConfig())
        assert any("API key" in e for e in errors)

    def test_bad_mode_and_timeout(self):
        config = AppConfig(
            gemini=GeminiLiveConfig(api_key="k"),
            session=SessionConfig(connect_timeout_sec=0, default_mode="kiosk"),
        )

        errors, _ = validate_config(config)

        assert len(errors) == 2

    def test_short_timeout_warns(self):
        config = AppConfig(gemini=GeminiLiveConfig(api_key="k"), session=SessionConfig(connect_timeout_sec=1))
        errors, warnings = validate_config(config)
        assert errors == []
        assert any("connect_timeout_sec" in w for w in warnings)
