from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from jsonschema import Draft7Validator

from .compiler import PatternCompileError, compile_pattern
from .models import DIRECTORY, FILE, SKIP
from .pattern_templates import PatternSetData, load_builtin_pattern_sets, load_regex_tokens, parse_pattern_set


@dataclass(slots=True)
class ValidationIssue:
    """Represents a single validation problem."""

    severity: str
    path: str
    message: str
    code: str


@dataclass(slots=True)
class ValidationReport:
    """Aggregates validation warnings and errors."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error(self, path: str, message: str, code: str) -> None:
        self.errors.append(ValidationIssue(severity="error", path=path, message=message, code=code))

    def warning(self, path: str, message: str, code: str) -> None:
        self.warnings.append(ValidationIssue(severity="warning", path=path, message=message, code=code))


_LOG_LEVELS = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

_STRING_OR_LIST = {
    "oneOf": [
        {"type": "array", "items": {"type": "string"}},
        {"type": "string"},
    ]
}

_TEMPLATE_LIST = {
    "type": "array",
    "items": {
        "oneOf": [
            {"type": "string"},
            {
                "type": "object",
                "properties": {
                    "template": {"type": "string"},
                    "priority": {"type": "integer"},
                },
                "required": ["template"],
                "additionalProperties": False,
            },
        ]
    },
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "settings": {
            "type": "object",
            "properties": {
                "source_dir": {"type": "string"},
                "separator": {"type": "string", "minLength": 1, "maxLength": 1},
                "skip_patterns": _STRING_OR_LIST,
                "use_default_skip_patterns": {"type": "boolean"},
                "log_level": {"type": "string"},
                "log_file": {"type": "string"},
            },
            "additionalProperties": False,
        },
        "pattern_sets": {
            "type": "object",
            "additionalProperties": {
                "oneOf": [
                    {"type": "null"},
                    {
                        "type": "object",
                        "properties": {
                            "directory": _TEMPLATE_LIST,
                            "file": _TEMPLATE_LIST,
                        },
                        "additionalProperties": False,
                    },
                ]
            },
        },
        "shows": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "enabled": {"type": "boolean"},
                    "pattern_sets": _STRING_OR_LIST,
                    "directory_patterns": _TEMPLATE_LIST,
                    "file_patterns": _TEMPLATE_LIST,
                    "skip_patterns": _STRING_OR_LIST,
                    "exact_directories": {
                        "type": "object",
                        "additionalProperties": {"type": "integer", "minimum": 0},
                    },
                },
                "required": ["name"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["shows"],
    "additionalProperties": False,
}


def _format_jsonschema_path(path: Sequence[Any]) -> str:
    if not path:
        return "<root>"
    tokens: List[str] = []
    for part in path:
        if isinstance(part, int):
            if tokens:
                tokens[-1] = f"{tokens[-1]}[{part}]"
            else:
                tokens.append(f"[{part}]")
        else:
            tokens.append(str(part))
    return ".".join(tokens) if tokens else "<root>"


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _template_text(entry: Any) -> Optional[str]:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict) and isinstance(entry.get("template"), str):
        return entry["template"]
    return None


def validate_config_data(data: Dict[str, Any]) -> ValidationReport:
    """Validate a rule table against the schema and the compile-time rules.

    Args:
        data: The parsed configuration mapping

    Returns:
        ValidationReport containing any errors or warnings found
    """
    report = ValidationReport()
    validator = Draft7Validator(CONFIG_SCHEMA)
    for error in sorted(validator.iter_errors(data), key=lambda exc: list(exc.absolute_path)):
        report.error(_format_jsonschema_path(error.absolute_path), error.message, "schema")

    if report.errors:
        return report

    _validate_semantics(data, report)
    return report


def _validate_semantics(data: Dict[str, Any], report: ValidationReport) -> None:
    settings = data.get("settings") or {}
    separator = settings.get("separator", ".")
    log_level = settings.get("log_level")
    if isinstance(log_level, str) and log_level.upper() not in _LOG_LEVELS:
        report.error("settings.log_level", f"Unknown log level '{log_level}'", "log-level")

    tokens = load_regex_tokens()
    for index, template in enumerate(_as_list(settings.get("skip_patterns"))):
        _check_template(report, "", template, SKIP, separator, tokens, f"settings.skip_patterns[{index}]")

    known_sets = set(load_builtin_pattern_sets())
    user_sets: Dict[str, PatternSetData] = {}
    for name, value in (data.get("pattern_sets") or {}).items():
        known_sets.add(str(name))
        try:
            user_sets[str(name)] = parse_pattern_set(str(name), value)
        except ValueError as exc:
            report.error(f"pattern_sets.{name}", str(exc), "pattern-set")

    seen_shows: Dict[str, int] = {}
    exact_owners: Dict[str, str] = {}
    for index, show in enumerate(data.get("shows") or []):
        name = show["name"].strip()
        base = f"shows[{index}]"
        if not name:
            report.error(f"{base}.name", "Show name must not be blank", "show-name")
            continue
        if name in seen_shows:
            report.error(
                f"{base}.name",
                f"Duplicate show name '{name}' also defined at index {seen_shows[name]}",
                "duplicate-show",
            )
        else:
            seen_shows[name] = index

        set_names = _as_list(show.get("pattern_sets"))
        for set_index, set_name in enumerate(set_names):
            if set_name not in known_sets:
                report.error(
                    f"{base}.pattern_sets[{set_index}]",
                    f"Unknown pattern set '{set_name}'",
                    "unknown-pattern-set",
                )
            elif set_name in user_sets:
                pattern_set = user_sets[set_name]
                for kind, entries in ((DIRECTORY, pattern_set.directory), (FILE, pattern_set.file)):
                    for entry_index, entry in enumerate(entries):
                        _check_template(
                            report,
                            name,
                            entry["template"],
                            kind,
                            separator,
                            tokens,
                            f"pattern_sets.{set_name}.{kind}[{entry_index}]",
                        )

        for key, kind in (("directory_patterns", DIRECTORY), ("file_patterns", FILE)):
            for pattern_index, entry in enumerate(show.get(key) or []):
                path = f"{base}.{key}[{pattern_index}]"
                _check_template(report, name, _template_text(entry), kind, separator, tokens, path)
        for pattern_index, template in enumerate(_as_list(show.get("skip_patterns"))):
            _check_template(report, name, template, SKIP, separator, tokens, f"{base}.skip_patterns[{pattern_index}]")

        for directory_name in show.get("exact_directories") or {}:
            owner = exact_owners.get(directory_name)
            if owner is not None and owner != name:
                report.error(
                    f"{base}.exact_directories.{directory_name}",
                    f"Exact directory '{directory_name}' is already claimed by show '{owner}'",
                    "duplicate-exact-directory",
                )
            else:
                exact_owners[directory_name] = name

        if not (set_names or show.get("directory_patterns") or show.get("file_patterns") or show.get("exact_directories")):
            report.warning(base, f"Show '{name}' defines no directory or file patterns", "no-patterns")


def _check_template(
    report: ValidationReport,
    show: str,
    template: Optional[str],
    kind: str,
    separator: str,
    tokens: Dict[str, str],
    path: str,
) -> None:
    if template is None:
        return
    try:
        compile_pattern(show, template, kind, separator=separator, tokens=tokens)
    except PatternCompileError as exc:
        report.error(path, exc.detail, "pattern-compile")
