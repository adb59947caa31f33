"""
Configuration system for the voice receptionist.

Uses Pydantic v2 for validation and type safety. Sub-modules:
- loaders: YAML file loading and parsing
- security: API key injection (environment only)
- defaults: environment-driven default values
"""

from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, Field

from voice_receptionist.config.loaders import resolve_config_path, load_yaml_with_env_expansion
from voice_receptionist.config.security import inject_gemini_api_key, inject_receptionist_persona
from voice_receptionist.config.defaults import (
    apply_session_defaults,
    apply_audio_defaults,
    apply_gemini_defaults,
)

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/receptionist.yaml"


class GeminiLiveConfig(BaseModel):
    api_key: Optional[str] = None
    endpoint: str = Field(
        default="wss://generativelanguage.googleapis.com/ws/"
                "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
    )
    model: str = Field(default="gemini-2.5-flash-native-audio-preview-09-2025")
    response_modalities: List[str] = Field(default_factory=lambda: ["AUDIO"])
    staff_voice: str = Field(default="Kore")
    patient_voice: str = Field(default="Fenrir")
    enable_input_transcription: bool = Field(default=False)
    enable_output_transcription: bool = Field(default=False)
    max_message_bytes: int = Field(default=10 * 1024 * 1024)


class AudioConfig(BaseModel):
    input_sample_rate_hz: int = Field(default=16000)  # wire rate sent to the model
    input_block_size: int = Field(default=4096)
    output_sample_rate_hz: int = Field(default=24000)  # wire rate received from the model
    output_block_size: int = Field(default=1024)
    input_device: Optional[Union[int, str]] = None
    output_device: Optional[Union[int, str]] = None
    # Hardware rates; when set and different from the wire rates, audio is resampled
    device_input_sample_rate_hz: Optional[int] = None
    device_output_sample_rate_hz: Optional[int] = None


class SessionConfig(BaseModel):
    connect_timeout_sec: float = Field(default=15.0)
    default_mode: str = Field(default="staff")  # staff | patient


class ReceptionistConfig(BaseModel):
    clinic_name: str = "Nexus Clinical Trials"
    bot_name: str = "Nexus"
    tone: str = "Professional"  # Professional | Empathetic | Energetic | Strict
    custom_greeting: str = "Thank you for calling Nexus Clinical. How can I help you today?"
    emergency_contact: str = "911"
    enable_after_hours: bool = False


class LoggingConfig(BaseModel):
    level: str = Field(default="info")  # debug|info|warning|error|critical


class AppConfig(BaseModel):
    gemini: GeminiLiveConfig = Field(default_factory=GeminiLiveConfig)
    audio: AudioConfig = Field(default_factory=AudioConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    receptionist: ReceptionistConfig = Field(default_factory=ReceptionistConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    # Per-tool options, looked up with dot notation (e.g. "tools.register_new_patient.site_id")
    tools: Dict[str, Any] = Field(default_factory=dict)
    seed_data: Optional[str] = None


def load_config(path: str = DEFAULT_CONFIG_PATH) -> AppConfig:
    """
    Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file (absolute or relative to project root)

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    # Phase 1: Load YAML file with environment variable expansion
    path = resolve_config_path(path)
    config_data = load_yaml_with_env_expansion(path)

    # Phase 2: Security - credentials from environment variables only
    inject_gemini_api_key(config_data)
    inject_receptionist_persona(config_data)

    # Phase 3: Apply default values
    apply_session_defaults(config_data)
    apply_audio_defaults(config_data)
    apply_gemini_defaults(config_data)

    # Phase 4: Validate and return
    return AppConfig(**config_data)


def validate_config(config: AppConfig) -> tuple[list[str], list[str]]:
    """Validate configuration before a session may start.

    Returns:
        (errors, warnings): errors block startup, warnings are logged only.
    """
    errors = []
    warnings = []

    if not (config.gemini.api_key or "").strip():
        errors.append("Gemini API key not configured (set GEMINI_API_KEY or GOOGLE_API_KEY)")

    if config.audio.input_sample_rate_hz != 16000:
        warnings.append(
            f"Input wire rate {config.audio.input_sample_rate_hz} Hz; the live model expects 16000 Hz"
        )
    if config.audio.output_sample_rate_hz != 24000:
        warnings.append(
            f"Output wire rate {config.audio.output_sample_rate_hz} Hz; the live model emits 24000 Hz"
        )
    if config.audio.input_block_size <= 0:
        errors.append(f"Invalid input_block_size: {config.audio.input_block_size}")

    timeout = config.session.connect_timeout_sec
    if timeout <= 0:
        errors.append(f"connect_timeout_sec must be positive, got {timeout}")
    elif timeout < 3:
        warnings.append(f"connect_timeout_sec very short: {timeout}s (network setup may not finish)")

    if config.session.default_mode not in ("staff", "patient"):
        errors.append(f"Invalid session.default_mode: {config.session.default_mode} (must be staff or patient)")

    if config.receptionist.tone not in ("Professional", "Empathetic", "Energetic", "Strict"):
        warnings.append(f"Unrecognised receptionist tone: {config.receptionist.tone}")

    return errors, warnings


__all__ = [
    'GeminiLiveConfig',
    'AudioConfig',
    'SessionConfig',
    'ReceptionistConfig',
    'LoggingConfig',
    'AppConfig',
    'DEFAULT_CONFIG_PATH',
    'load_config',
    'validate_config',
]
