"""Directory and file classification against a compiled RuleBook.

Every pattern of every rule group is tried against the entry name. Patterns
that fire must agree with each other on the show and on each numeric field;
agreement between redundant patterns is fine, any disagreement is returned as
a :class:`Conflict`. Nothing here raises for bad input or exits the process,
the batch driver decides what a Conflict means for the run.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Union

from .models import (
    EPISODE,
    SEASON,
    ClassificationResult,
    Classified,
    Conflict,
    ListingEntry,
    RuleBook,
    RulePattern,
    Unclassified,
)

LOGGER = logging.getLogger(__name__)

NO_MATCH_REASON = "no rule matched"


class _MatchAccumulator:
    """Collects the show and numeric fields reported by every firing pattern."""

    def __init__(self, fields: Iterable[str]) -> None:
        self.show: Optional[str] = None
        self.values: dict[str, Optional[int]] = {name: None for name in fields}
        self.patterns: list[RulePattern] = []
        self.matched = False

    def add(self, show: str, values: dict[str, int], pattern: Optional[RulePattern] = None) -> Optional[Conflict]:
        if self.show is not None and show != self.show:
            return Conflict("matched two different shows", field="show", values=(self.show, show))
        for name, value in values.items():
            current = self.values.get(name)
            if current is not None and current != value:
                return Conflict(
                    f"mismatched {name} for same show",
                    field=name,
                    values=(str(current), str(value)),
                )
        self.show = show
        self.matched = True
        for name, value in values.items():
            self.values[name] = value
        if pattern is not None:
            self.patterns.append(pattern)
        return None

    def missing(self) -> list[str]:
        return [name for name, value in self.values.items() if value is None]

    def ranked_patterns(self) -> tuple[RulePattern, ...]:
        return tuple(sorted(self.patterns, key=lambda pattern: pattern.priority, reverse=True))


def _extract_fields(match: re.Match[str], pattern: RulePattern) -> Union[dict[str, int], Conflict]:
    captures = match.groups()
    if len(captures) != pattern.arity:
        return Conflict(
            "wrong number of match groups",
            field="groups",
            values=(str(pattern.arity), str(len(captures))),
        )

    values: dict[str, int] = {}
    for name, raw in zip(pattern.fields, captures):
        if raw is None:
            continue
        try:
            values[name] = int(raw, 10)
        except ValueError:
            return Conflict(f"cannot parse {name} number", field=name, values=(raw,))
    return values


def _sweep(
    name: str,
    patterns: Iterable[RulePattern],
    accumulator: _MatchAccumulator,
) -> Optional[Conflict]:
    for pattern in patterns:
        match = pattern.regex.search(name)
        if match is None:
            continue
        extracted = _extract_fields(match, pattern)
        if isinstance(extracted, Conflict):
            return extracted
        LOGGER.debug("Rule fired for %s: %s -> %s", name, pattern.describe(), extracted)
        conflict = accumulator.add(pattern.show, extracted, pattern)
        if conflict is not None:
            return conflict
    return None


def classify_directory(name: str, rulebook: RuleBook) -> ClassificationResult:
    """Classify a directory name into ``Classified(show, season)``."""
    LOGGER.debug("Processing dir: %s", name)
    accumulator = _MatchAccumulator((SEASON,))

    for group in rulebook.groups:
        season = group.exact_directories.get(name)
        if season is not None:
            conflict = accumulator.add(group.show, {SEASON: season})
            if conflict is not None:
                return conflict
        conflict = _sweep(name, group.directory_patterns, accumulator)
        if conflict is not None:
            return conflict

    if not accumulator.matched:
        return Unclassified(NO_MATCH_REASON)
    if accumulator.missing():
        return Unclassified(f"partial match for {accumulator.show}: no season captured")
    return Classified(
        show=accumulator.show,
        season=accumulator.values[SEASON],
        patterns=accumulator.ranked_patterns(),
    )


def find_skip_pattern(name: str, rulebook: RuleBook) -> Optional[RulePattern]:
    for pattern in rulebook.iter_skip_patterns():
        if pattern.regex.search(name):
            return pattern
    return None


def classify_file(name: str, rulebook: RuleBook) -> ClassificationResult:
    """Classify a file name into ``Classified(show, season, episode)``.

    Skip patterns are checked before any rule. A sweep that never assigns
    both season and episode is a miss, not a conflict.
    """
    LOGGER.debug("Processing file: %s", name)
    skip_pattern = find_skip_pattern(name, rulebook)
    if skip_pattern is not None:
        return Unclassified("matched skip pattern", skipped=True, skip_pattern=skip_pattern)

    accumulator = _MatchAccumulator((SEASON, EPISODE))
    for group in rulebook.groups:
        conflict = _sweep(name, group.file_patterns, accumulator)
        if conflict is not None:
            return conflict

    if not accumulator.matched:
        return Unclassified(NO_MATCH_REASON)
    missing = accumulator.missing()
    if missing:
        return Unclassified(f"partial match for {accumulator.show}: no {' or '.join(missing)} captured")
    return Classified(
        show=accumulator.show,
        season=accumulator.values[SEASON],
        episode=accumulator.values[EPISODE],
        patterns=accumulator.ranked_patterns(),
    )


def classify_entry(entry: ListingEntry, rulebook: RuleBook) -> ClassificationResult:
    if entry.is_dir:
        return classify_directory(entry.name, rulebook)
    return classify_file(entry.name, rulebook)
