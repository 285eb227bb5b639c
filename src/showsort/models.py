from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple, Union

DIRECTORY = "directory"
FILE = "file"
SKIP = "skip"

SEASON = "season"
EPISODE = "episode"


@dataclass(frozen=True, slots=True)
class RulePattern:
    """A compiled rule template belonging to one show.

    ``fields`` lists the numeric capture fields in group order, e.g.
    ``("season",)`` for a directory rule or ``("season", "episode")`` for a
    file rule. Skip patterns carry no fields.
    """

    show: str
    kind: str
    template: str
    regex: re.Pattern[str]
    fields: Tuple[str, ...] = ()
    priority: int = 0

    @property
    def arity(self) -> int:
        return len(self.fields)

    def describe(self) -> str:
        return f"{self.show} [{self.kind}] {self.template}"


@dataclass(frozen=True, slots=True)
class RuleGroup:
    show: str
    directory_patterns: Tuple[RulePattern, ...] = ()
    file_patterns: Tuple[RulePattern, ...] = ()
    skip_patterns: Tuple[RulePattern, ...] = ()
    exact_directories: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class RuleBook:
    """Immutable, fully compiled rule table handed to every classification call."""

    groups: Tuple[RuleGroup, ...] = ()
    skip_patterns: Tuple[RulePattern, ...] = ()

    @property
    def shows(self) -> List[str]:
        return [group.show for group in self.groups]

    def group(self, show: str) -> Optional[RuleGroup]:
        for group in self.groups:
            if group.show == show:
                return group
        return None

    def iter_skip_patterns(self):
        yield from self.skip_patterns
        for group in self.groups:
            yield from group.skip_patterns


@dataclass(frozen=True, slots=True)
class Classified:
    show: str
    season: int
    episode: Optional[int] = None
    patterns: Tuple[RulePattern, ...] = ()

    def label(self) -> str:
        if self.episode is None:
            return f"{self.show} S{self.season:02d}"
        return f"{self.show} S{self.season:02d}E{self.episode:02d}"


@dataclass(frozen=True, slots=True)
class Unclassified:
    reason: str = "no rule matched"
    skipped: bool = False
    skip_pattern: Optional[RulePattern] = None


@dataclass(frozen=True, slots=True)
class Conflict:
    reason: str
    field: Optional[str] = None
    values: Tuple[str, ...] = ()

    def describe(self) -> str:
        if len(self.values) == 2:
            return f"{self.reason}: {self.values[0]!s} vs {self.values[1]!s}"
        if self.values:
            return f"{self.reason}: {', '.join(str(value) for value in self.values)}"
        return self.reason


ClassificationResult = Union[Classified, Unclassified, Conflict]


@dataclass(frozen=True, slots=True)
class ListingEntry:
    name: str
    is_dir: bool = False


@dataclass(frozen=True, slots=True)
class EntryOutcome:
    entry: ListingEntry
    result: ClassificationResult


@dataclass(slots=True)
class BatchReport:
    outcomes: List[EntryOutcome] = field(default_factory=list)
    classified: int = 0
    unclassified: int = 0
    skipped: int = 0
    unclassified_details: List[str] = field(default_factory=list)
    conflict: Optional[EntryOutcome] = None

    @property
    def aborted(self) -> bool:
        return self.conflict is not None

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def register(self, outcome: EntryOutcome) -> None:
        self.outcomes.append(outcome)
        result = outcome.result
        if isinstance(result, Classified):
            self.classified += 1
        elif isinstance(result, Conflict):
            self.conflict = outcome
        elif result.skipped:
            self.skipped += 1
        else:
            self.unclassified += 1
            self.unclassified_details.append(f"{outcome.entry.name}: {result.reason}")
