"""
Security-critical configuration injection.

SECURITY POLICY:
- The model API key MUST NEVER be in YAML files
- It is read from environment variables only, overwriting any YAML value
"""

import os
from typing import Any, Dict


def _is_nonempty_string(val: Any) -> bool:
    """
    Check if value is a non-empty string.

    Args:
        val: Value to check

    Returns:
        True if val is a string with non-whitespace content
    """
    return isinstance(val, str) and val.strip() != ""


def expand_string_tokens(value: str) -> str:
    """
    Expand environment variable tokens in a string.

    Supports ${VAR} and $VAR syntax. If variable is undefined,
    it is left unchanged.
    """
    return os.path.expandvars(value or "")


def inject_gemini_api_key(config_data: Dict[str, Any]) -> None:
    """
    Inject the Gemini Live API key from environment variables ONLY.

    Environment variables (first non-empty wins):
    - GEMINI_API_KEY
    - GOOGLE_API_KEY

    Args:
        config_data: Configuration dictionary to modify in-place
    """
    gemini_block = config_data.get('gemini') or {}
    if not isinstance(gemini_block, dict):
        gemini_block = {}

    api_key = None
    for var in ("GEMINI_API_KEY", "GOOGLE_API_KEY"):
        candidate = os.getenv(var)
        if _is_nonempty_string(candidate):
            api_key = candidate.strip()
            break

    gemini_block['api_key'] = api_key
    config_data['gemini'] = gemini_block


def inject_receptionist_persona(config_data: Dict[str, Any]) -> None:
    """
    Expand ${VAR} placeholders in the receptionist persona strings.

    Precedence: YAML receptionist.* (if non-empty) > env vars > model defaults.

    Environment variables:
    - CLINIC_NAME
    - RECEPTIONIST_GREETING
    - EMERGENCY_CONTACT
    """
    persona = config_data.get('receptionist') or {}
    if not isinstance(persona, dict):
        persona = {}

    env_fallbacks = {
        'clinic_name': 'CLINIC_NAME',
        'custom_greeting': 'RECEPTIONIST_GREETING',
        'emergency_contact': 'EMERGENCY_CONTACT',
    }
    for key, env_var in env_fallbacks.items():
        value = persona.get(key)
        if not _is_nonempty_string(value):
            value = os.getenv(env_var)
        if _is_nonempty_string(value):
            persona[key] = expand_string_tokens(value)
        else:
            persona.pop(key, None)

    config_data['receptionist'] = persona
