"""
Default value application for configuration.

This module handles:
- Session defaults (connect timeout) with environment overrides
- Audio device selection with environment overrides
- Gemini model override
"""

import os
from typing import Any, Dict


def apply_session_defaults(config_data: Dict[str, Any]) -> None:
    """
    Apply session defaults from environment variables.

    Environment variables:
    - CONNECT_TIMEOUT_SEC: bounded wait for the live connection to open
    """
    session_cfg = config_data.get('session') or {}

    raw = os.getenv('CONNECT_TIMEOUT_SEC')
    if raw is not None:
        try:
            session_cfg['connect_timeout_sec'] = float(raw)
        except ValueError:
            session_cfg.setdefault('connect_timeout_sec', 15.0)
    else:
        session_cfg.setdefault('connect_timeout_sec', 15.0)

    config_data['session'] = session_cfg


def apply_audio_defaults(config_data: Dict[str, Any]) -> None:
    """
    Apply audio device defaults with environment variable overrides.

    Environment variables:
    - AUDIO_INPUT_DEVICE: sounddevice input device (index or name substring)
    - AUDIO_OUTPUT_DEVICE: sounddevice output device (index or name substring)
    """
    audio_cfg = config_data.get('audio') or {}

    for key, env_var in (('input_device', 'AUDIO_INPUT_DEVICE'), ('output_device', 'AUDIO_OUTPUT_DEVICE')):
        value = os.getenv(env_var, '').strip()
        if not value:
            continue
        audio_cfg[key] = int(value) if value.isdigit() else value

    config_data['audio'] = audio_cfg


def apply_gemini_defaults(config_data: Dict[str, Any]) -> None:
    """
    Environment variables:
    - GEMINI_MODEL: override the live model name
    """
    gemini_cfg = config_data.get('gemini') or {}
    model = os.getenv('GEMINI_MODEL', '').strip()
    if model:
        gemini_cfg['model'] = model
    config_data['gemini'] = gemini_cfg
