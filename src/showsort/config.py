from __future__ import annotations

from collections.abc import Iterable
from copy import deepcopy
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .pattern_templates import (
    PatternSetData,
    load_builtin_pattern_sets,
    normalize_template_entries,
    parse_pattern_set,
)
from .utils import env_bool, env_list, env_str, load_yaml_file

DEFAULT_SOURCE_DIR = Path("/data/btn-dump")
DEFAULT_CONFIG_PATH = Path("showsort.yaml")
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass
class TemplateConfig:
    template: str
    priority: int = 0


@dataclass
class ShowConfig:
    name: str
    directory_patterns: list[TemplateConfig] = field(default_factory=list)
    file_patterns: list[TemplateConfig] = field(default_factory=list)
    skip_patterns: list[str] = field(default_factory=list)
    exact_directories: dict[str, int] = field(default_factory=dict)
    enabled: bool = True


@dataclass
class Settings:
    source_dir: Path = DEFAULT_SOURCE_DIR
    separator: str = "."
    skip_patterns: list[str] = field(default_factory=list)
    use_default_skip_patterns: bool = True
    log_level: str = "INFO"
    log_file: Path | None = None


@dataclass
class AppConfig:
    settings: Settings
    shows: list[ShowConfig]

    @property
    def enabled_shows(self) -> list[ShowConfig]:
        return [show for show in self.shows if show.enabled]


def _ensure_string_list(value: Any, *, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be provided as a list of strings")
    result: list[str] = []
    for index, item in enumerate(value):
        if not isinstance(item, str):
            raise ValueError(f"'{field_name}[{index}]' must be a string")
        result.append(item)
    return result


def _build_templates(entries: Iterable[dict[str, Any]]) -> list[TemplateConfig]:
    return [TemplateConfig(template=str(entry["template"]), priority=int(entry.get("priority", 0))) for entry in entries]


def _build_exact_directories(value: Any, *, field_name: str) -> dict[str, int]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{field_name}' must be a mapping of directory name -> season number")
    result: dict[str, int] = {}
    for key, season in value.items():
        if isinstance(season, bool):
            raise ValueError(f"'{field_name}.{key}' must be an integer season number")
        try:
            number = int(season)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"'{field_name}.{key}' must be an integer season number") from exc
        if number < 0:
            raise ValueError(f"'{field_name}.{key}' must not be negative")
        result[str(key)] = number
    return result


def _build_show_config(data: Any, index: int, pattern_sets: dict[str, PatternSetData]) -> ShowConfig:
    if not isinstance(data, dict):
        raise ValueError(f"'shows[{index}]' must be a mapping")
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"'shows[{index}].name' must be a non-empty string")
    name = name.strip()
    prefix = f"shows[{name}]"

    directory_entries: list[dict[str, Any]] = []
    file_entries: list[dict[str, Any]] = []
    for set_name in _ensure_string_list(data.get("pattern_sets"), field_name=f"{prefix}.pattern_sets"):
        if set_name not in pattern_sets:
            raise ValueError(f"Unknown pattern set '{set_name}' referenced by show '{name}'")
        directory_entries.extend(deepcopy(pattern_sets[set_name].directory))
        file_entries.extend(deepcopy(pattern_sets[set_name].file))

    directory_entries.extend(
        normalize_template_entries(data.get("directory_patterns"), field_name=f"{prefix}.directory_patterns")
    )
    file_entries.extend(normalize_template_entries(data.get("file_patterns"), field_name=f"{prefix}.file_patterns"))

    return ShowConfig(
        name=name,
        directory_patterns=_build_templates(directory_entries),
        file_patterns=_build_templates(file_entries),
        skip_patterns=_ensure_string_list(data.get("skip_patterns"), field_name=f"{prefix}.skip_patterns"),
        exact_directories=_build_exact_directories(
            data.get("exact_directories"), field_name=f"{prefix}.exact_directories"
        ),
        enabled=bool(data.get("enabled", True)),
    )


def _build_settings(data: Any) -> Settings:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("'settings' must be provided as a mapping when specified")

    separator = data.get("separator", ".")
    if not isinstance(separator, str) or len(separator) != 1:
        raise ValueError("'settings.separator' must be a single character")

    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"'settings.log_level' must be one of {', '.join(sorted(_LOG_LEVELS))}")

    log_file_raw = data.get("log_file")
    return Settings(
        source_dir=Path(data.get("source_dir", DEFAULT_SOURCE_DIR)).expanduser(),
        separator=separator,
        skip_patterns=_ensure_string_list(data.get("skip_patterns"), field_name="settings.skip_patterns"),
        use_default_skip_patterns=bool(data.get("use_default_skip_patterns", True)),
        log_level=log_level,
        log_file=Path(log_file_raw).expanduser() if log_file_raw else None,
    )


def apply_env_overrides(settings: Settings) -> Settings:
    """Return ``settings`` with ``SHOWSORT_*`` environment overrides applied."""
    updates: dict[str, Any] = {}
    source_dir = env_str("SHOWSORT_SOURCE_DIR")
    if source_dir:
        updates["source_dir"] = Path(source_dir).expanduser()
    log_level = env_str("SHOWSORT_LOG_LEVEL")
    if log_level:
        if log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"SHOWSORT_LOG_LEVEL must be one of {', '.join(sorted(_LOG_LEVELS))}")
        updates["log_level"] = log_level.upper()
    use_defaults = env_bool("SHOWSORT_DEFAULT_SKIP_PATTERNS")
    if use_defaults is not None:
        updates["use_default_skip_patterns"] = use_defaults
    extra_skips = env_list("SHOWSORT_SKIP_PATTERNS")
    if extra_skips:
        updates["skip_patterns"] = [*settings.skip_patterns, *extra_skips]
    if not updates:
        return settings
    return replace(settings, **updates)


def build_config(data: dict[str, Any]) -> AppConfig:
    """Build an AppConfig from an already-parsed rule table mapping."""
    pattern_sets = load_builtin_pattern_sets()
    user_pattern_sets = data.get("pattern_sets", {}) or {}
    if not isinstance(user_pattern_sets, dict):
        raise ValueError("'pattern_sets' must be defined as a mapping of name -> pattern set")
    for name, value in user_pattern_sets.items():
        pattern_sets[str(name)] = parse_pattern_set(str(name), value)

    settings = _build_settings(data.get("settings"))

    shows_raw = data.get("shows", []) or []
    if not isinstance(shows_raw, list):
        raise ValueError("'shows' must be provided as a list of show rule groups")

    shows: list[ShowConfig] = []
    seen: set[str] = set()
    for index, show_data in enumerate(shows_raw):
        show = _build_show_config(show_data, index, pattern_sets)
        if show.name in seen:
            raise ValueError(f"Duplicate show name '{show.name}' in 'shows'")
        seen.add(show.name)
        shows.append(show)

    return AppConfig(settings=settings, shows=shows)


def load_config(path: Path) -> AppConfig:
    config = build_config(load_yaml_file(path))
    config.settings = apply_env_overrides(config.settings)
    return config


def resolve_config_path(explicit: Path | None) -> Path:
    if explicit is not None:
        return explicit
    from_env = env_str("SHOWSORT_CONFIG")
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_CONFIG_PATH
