from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


WHITESPACE_RUN = re.compile(r"\s+")

# Boolean true/false string values
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def normalize_show_name(name: str, separator: str = ".") -> str:
    """Replace each whitespace run in a display name with ``separator``."""
    return WHITESPACE_RUN.sub(separator, name.strip())


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return expand_env(data)


def parse_env_bool(value: Optional[str]) -> Optional[bool]:
    """Parse a boolean from an environment variable string.

    Returns None if value is None or not a recognized boolean string.
    """
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def env_bool(name: str) -> Optional[bool]:
    return parse_env_bool(os.getenv(name))


def env_str(name: str) -> Optional[str]:
    """Get a stripped string from an environment variable, None when unset or blank."""
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def env_list(name: str, separator: str = ",") -> Optional[List[str]]:
    """Get a list of strings from an environment variable.

    Returns None if not set, empty list if set but empty.
    """
    raw = os.getenv(name)
    if raw is None:
        return None
    return [part.strip() for part in raw.split(separator) if part.strip()]
