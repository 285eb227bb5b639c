"""Rule template compilation.

Turns the declarative rule table into an immutable :class:`RuleBook`. Every
template is expanded, compiled case-insensitively and checked for the number
of numeric capture groups its kind requires. Any failure raises
:class:`PatternCompileError` so that a broken rule table is rejected before a
single entry is classified.
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Mapping

from .config import AppConfig, ShowConfig, TemplateConfig
from .models import DIRECTORY, EPISODE, FILE, SEASON, SKIP, RuleBook, RuleGroup, RulePattern
from .pattern_templates import expand_placeholders, load_default_skip_patterns, load_regex_tokens, placeholders_in
from .utils import normalize_show_name

LOGGER = logging.getLogger(__name__)

NUMERIC_FIELDS = (SEASON, EPISODE)
FIELD_PATTERNS = {
    SEASON: r"(?P<season>\d+)",
    EPISODE: r"(?P<episode>\d+)",
}
GLOBAL_SHOW = ""


class PatternCompileError(ValueError):
    """Raised when a rule template cannot be turned into a valid matcher."""

    def __init__(self, show: str, kind: str, template: str, message: str) -> None:
        owner = f"show '{show}'" if show else "global settings"
        super().__init__(f"Invalid {kind} template for {owner}: {message} (template: {template!r})")
        self.show = show
        self.kind = kind
        self.template = template
        self.detail = message


def _show_token(show: str, separator: str) -> str:
    return re.escape(normalize_show_name(show, separator))


def _assign_fields(regex: re.Pattern[str], declared: list[str]) -> tuple[str, ...]:
    """Map every capture group, in group order, to a numeric field name."""
    by_index: dict[int, str] = {index: name for name, index in regex.groupindex.items() if name in NUMERIC_FIELDS}
    remaining = [name for name in NUMERIC_FIELDS if name not in declared]
    fields: list[str] = []
    for index in range(1, regex.groups + 1):
        if index in by_index:
            fields.append(by_index[index])
        elif remaining:
            fields.append(remaining.pop(0))
        else:
            fields.append("")
    return tuple(fields)


def compile_pattern(
    show: str,
    template: str,
    kind: str,
    *,
    separator: str = ".",
    priority: int = 0,
    tokens: Mapping[str, str] | None = None,
) -> RulePattern:
    """Compile one rule template for ``show``.

    Directory templates must capture exactly one numeric field (the season).
    File templates capture season then episode, or exactly one of them when it
    is named through a ``<season>``/``<episode>`` placeholder. Skip templates
    may not reference numeric fields.
    """
    if kind not in (DIRECTORY, FILE, SKIP):
        raise PatternCompileError(show, kind, template, f"unknown template kind '{kind}'")

    names = placeholders_in(template)
    declared = [name for name in names if name in NUMERIC_FIELDS]
    if len(set(declared)) != len(declared):
        raise PatternCompileError(show, kind, template, "a numeric field placeholder is used more than once")
    if kind == SKIP and declared:
        raise PatternCompileError(show, kind, template, "skip templates cannot capture season or episode")
    if not show and "show" in names:
        raise PatternCompileError(show, kind, template, "<show> is only available inside a show rule group")

    available = dict(tokens if tokens is not None else load_regex_tokens())
    available.update(FIELD_PATTERNS)
    if show:
        available["show"] = _show_token(show, separator)

    try:
        expanded = expand_placeholders(template, available)
    except ValueError as exc:
        raise PatternCompileError(show, kind, template, str(exc)) from exc

    try:
        regex = re.compile(expanded, re.IGNORECASE)
    except re.error as exc:
        raise PatternCompileError(show, kind, template, f"regex does not compile: {exc}") from exc

    if kind == SKIP:
        return RulePattern(show=show, kind=kind, template=template, regex=regex, priority=priority)

    # Literal (?P<season>...) groups count the same as placeholders.
    declared = [name for name in NUMERIC_FIELDS if name in declared or name in regex.groupindex]
    if kind == DIRECTORY and EPISODE in declared:
        raise PatternCompileError(show, kind, template, "directory templates cannot capture an episode")

    if kind == DIRECTORY:
        valid = regex.groups == 1
        expected = "1 capture group"
    else:
        valid = regex.groups == 2 or (regex.groups == 1 and len(declared) == 1)
        expected = "2 capture groups (or 1 named <season>/<episode>)"
    if not valid:
        raise PatternCompileError(
            show,
            kind,
            template,
            f"expected {expected}, found {regex.groups}",
        )
    # Positional season/episode assignment only applies when no field is named.
    if declared and regex.groups != len(declared):
        raise PatternCompileError(
            show,
            kind,
            template,
            "every capture group must be a named <season>/<episode> field when any field is named",
        )

    fields = _assign_fields(regex, declared)
    return RulePattern(show=show, kind=kind, template=template, regex=regex, fields=fields, priority=priority)


def _compile_templates(
    show: str,
    templates: list[TemplateConfig],
    kind: str,
    separator: str,
    tokens: Mapping[str, str],
) -> tuple[RulePattern, ...]:
    return tuple(
        compile_pattern(show, entry.template, kind, separator=separator, priority=entry.priority, tokens=tokens)
        for entry in templates
    )


def build_rule_group(
    show_config: ShowConfig,
    *,
    separator: str = ".",
    tokens: Mapping[str, str] | None = None,
) -> RuleGroup:
    resolved_tokens = tokens if tokens is not None else load_regex_tokens()
    name = show_config.name
    return RuleGroup(
        show=name,
        directory_patterns=_compile_templates(
            name, show_config.directory_patterns, DIRECTORY, separator, resolved_tokens
        ),
        file_patterns=_compile_templates(name, show_config.file_patterns, FILE, separator, resolved_tokens),
        skip_patterns=tuple(
            compile_pattern(name, template, SKIP, separator=separator, tokens=resolved_tokens)
            for template in show_config.skip_patterns
        ),
        exact_directories=MappingProxyType(dict(show_config.exact_directories)),
    )


def build_rulebook(config: AppConfig) -> RuleBook:
    """Compile the enabled shows and global skip list of ``config``."""
    settings = config.settings
    tokens = load_regex_tokens()

    skip_templates: list[str] = []
    if settings.use_default_skip_patterns:
        skip_templates.extend(load_default_skip_patterns())
    skip_templates.extend(settings.skip_patterns)
    global_skips = tuple(
        compile_pattern(GLOBAL_SHOW, template, SKIP, separator=settings.separator, tokens=tokens)
        for template in skip_templates
    )

    groups: list[RuleGroup] = []
    seen_shows: set[str] = set()
    exact_owners: dict[str, str] = {}
    for show_config in config.enabled_shows:
        if show_config.name in seen_shows:
            raise PatternCompileError(show_config.name, "show", show_config.name, "duplicate show name")
        seen_shows.add(show_config.name)
        for directory_name in show_config.exact_directories:
            owner = exact_owners.get(directory_name)
            if owner is not None:
                raise PatternCompileError(
                    show_config.name,
                    DIRECTORY,
                    directory_name,
                    f"exact directory name is already claimed by show '{owner}'",
                )
            exact_owners[directory_name] = show_config.name
        groups.append(build_rule_group(show_config, separator=settings.separator, tokens=tokens))

    rulebook = RuleBook(groups=tuple(groups), skip_patterns=global_skips)
    LOGGER.debug(
        "Compiled %d rule group(s) with %d directory, %d file and %d skip pattern(s)",
        len(rulebook.groups),
        sum(len(group.directory_patterns) for group in rulebook.groups),
        sum(len(group.file_patterns) for group in rulebook.groups),
        len(global_skips) + sum(len(group.skip_patterns) for group in rulebook.groups),
    )
    return rulebook
