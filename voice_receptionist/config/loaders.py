"""
Locating and reading the receptionist YAML files.

Relative paths (the main config and the seed roster it points at) are
anchored at the project root, so the runner behaves the same from any
working directory. ${VAR} / $VAR references are expanded before parsing;
unknown variables are left as written.
"""

import os
from pathlib import Path

import yaml

# Directory holding voice_receptionist/ and config/
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def resolve_config_path(path: str) -> str:
    """Absolute paths pass through; relative ones are joined to PROJECT_ROOT."""
    if os.path.isabs(path):
        return path
    return str(PROJECT_ROOT / path)


def load_yaml_with_env_expansion(path: str) -> dict:
    """
    Read ``path``, expand environment references and parse it.

    An empty document yields {}.

    Raises:
        FileNotFoundError: no file at ``path``
        yaml.YAMLError: the expanded text is not valid YAML
    """
    try:
        raw = Path(path).read_text()
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found at: {path}")

    try:
        data = yaml.safe_load(os.path.expandvars(raw))
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Error parsing YAML configuration {path}: {e}")

    return data or {}
