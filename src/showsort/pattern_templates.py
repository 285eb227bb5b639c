from __future__ import annotations

import re
from copy import deepcopy
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from typing import Any

from .utils import load_yaml_file

PLACEHOLDER_RE = re.compile(r"(?<!\?P)<([A-Za-z0-9_]+)>")
RESERVED_PLACEHOLDERS = frozenset({"show", "season", "episode"})


@dataclass
class PatternSetData:
    """Parsed pattern set: directory and file template definitions."""

    directory: list[dict[str, Any]] = field(default_factory=list)
    file: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class BuiltinTemplates:
    tokens: dict[str, str]
    pattern_sets: dict[str, PatternSetData]
    default_skip_patterns: list[str]


def _resolve_regex_tokens(raw_tokens: dict[str, str]) -> dict[str, str]:
    resolved: dict[str, str] = {}

    def resolve(name: str, stack: list[str]) -> str:
        if name in resolved:
            return resolved[name]
        if name not in raw_tokens:
            raise ValueError(f"Unknown regex token <{name}> referenced")
        if name in stack:
            cycle = " -> ".join(stack + [name])
            raise ValueError(f"Circular regex token reference detected: {cycle}")
        pattern = raw_tokens[name]

        def replace(match: re.Match[str]) -> str:
            return resolve(match.group(1), stack + [name])

        expanded = PLACEHOLDER_RE.sub(replace, pattern)
        resolved[name] = expanded
        return expanded

    for token_name in raw_tokens:
        if token_name in RESERVED_PLACEHOLDERS:
            raise ValueError(f"Regex token <{token_name}> is reserved and cannot be redefined")
        resolve(token_name, [])

    return resolved


def expand_placeholders(text: str, tokens: dict[str, str]) -> str:
    """Substitute every ``<name>`` in ``text`` from ``tokens`` in a single pass."""

    def replace(match: re.Match[str]) -> str:
        token_name = match.group(1)
        if token_name not in tokens:
            raise ValueError(f"Unknown regex token <{token_name}> referenced in template: {text}")
        return tokens[token_name]

    return PLACEHOLDER_RE.sub(replace, text)


def placeholders_in(text: str) -> list[str]:
    return [match.group(1) for match in PLACEHOLDER_RE.finditer(text)]


def normalize_template_entries(raw: Any, *, field_name: str) -> list[dict[str, Any]]:
    """Coerce a list of templates (strings or ``{template, priority}`` mappings) to mappings."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"'{field_name}' must be provided as a list of templates")
    entries: list[dict[str, Any]] = []
    for index, item in enumerate(raw):
        if isinstance(item, str):
            entries.append({"template": item, "priority": 0})
            continue
        if not isinstance(item, dict) or not isinstance(item.get("template"), str):
            raise ValueError(f"'{field_name}[{index}]' must be a string or a mapping with a 'template' string")
        try:
            priority = int(item.get("priority", 0))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"'{field_name}[{index}].priority' must be an integer") from exc
        entries.append({"template": item["template"], "priority": priority})
    return entries


def parse_pattern_set(name: str, value: Any) -> PatternSetData:
    if value is None:
        return PatternSetData()
    if not isinstance(value, dict):
        raise ValueError(f"Pattern set '{name}' must be a mapping with 'directory' and/or 'file' lists")
    return PatternSetData(
        directory=normalize_template_entries(value.get("directory"), field_name=f"pattern_sets.{name}.directory"),
        file=normalize_template_entries(value.get("file"), field_name=f"pattern_sets.{name}.file"),
    )


@lru_cache
def _load_builtin_templates() -> BuiltinTemplates:
    """Load and parse the pattern templates file shipped with the package."""
    with resources.as_file(resources.files(__package__) / "pattern_templates.yaml") as path:
        data = load_yaml_file(path)

    raw_tokens = data.get("regex_tokens") or {}
    if not isinstance(raw_tokens, dict):
        raise ValueError("'regex_tokens' must be a mapping of token -> regex fragment when provided")
    tokens = _resolve_regex_tokens({str(key): str(value) for key, value in raw_tokens.items()})

    raw_pattern_sets = data.get("pattern_sets", {}) or {}
    if not isinstance(raw_pattern_sets, dict):
        raise ValueError("Builtin pattern templates must define a mapping of pattern sets")
    pattern_sets = {str(name): parse_pattern_set(str(name), value) for name, value in raw_pattern_sets.items()}

    raw_skips = data.get("default_skip_patterns", []) or []
    if not isinstance(raw_skips, list):
        raise ValueError("'default_skip_patterns' must be a list of templates")

    return BuiltinTemplates(
        tokens=tokens,
        pattern_sets=pattern_sets,
        default_skip_patterns=[str(item) for item in raw_skips],
    )


def load_regex_tokens() -> dict[str, str]:
    return dict(_load_builtin_templates().tokens)


def load_builtin_pattern_sets() -> dict[str, PatternSetData]:
    """Return a copy of the curated pattern sets shipped with showsort."""
    return deepcopy(_load_builtin_templates().pattern_sets)


def load_default_skip_patterns() -> list[str]:
    return list(_load_builtin_templates().default_skip_patterns)
