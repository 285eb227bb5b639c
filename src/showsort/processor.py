from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from rich.progress import Progress

from .classifier import classify_entry
from .file_discovery import list_entries
from .logging_utils import render_fields_block, render_section_block
from .models import BatchReport, Classified, Conflict, EntryOutcome, ListingEntry, RuleBook

LOGGER = logging.getLogger(__name__)


class BatchProcessor:
    """Classifies a directory listing entry by entry, stopping at the first conflict."""

    def __init__(self, rulebook: RuleBook, *, show_progress: bool = False) -> None:
        self.rulebook = rulebook
        self.show_progress = show_progress

    @staticmethod
    def _format_log(event: str, fields: Mapping[str, object] | None = None) -> str:
        return render_fields_block(event, fields or {}, pad_top=True)

    def run(self, entries: Sequence[ListingEntry]) -> BatchReport:
        report = BatchReport()
        LOGGER.info("Processing %d entries against %d rule group(s)", len(entries), len(self.rulebook.groups))

        with Progress(disable=not (self.show_progress and LOGGER.isEnabledFor(logging.INFO))) as progress:
            task_id = progress.add_task("Classifying", total=len(entries))
            for entry in entries:
                outcome = EntryOutcome(entry=entry, result=classify_entry(entry, self.rulebook))
                report.register(outcome)
                self._log_outcome(outcome)
                progress.advance(task_id, 1)
                if report.aborted:
                    break

        if report.aborted:
            remaining = len(entries) - report.total
            LOGGER.error(
                self._format_log(
                    "Batch Aborted",
                    {"Entry": report.conflict.entry.name, "Unprocessed entries": remaining},
                )
            )
        elif report.unclassified_details:
            LOGGER.warning(
                render_section_block(
                    "Unclassified Entries",
                    [("Extend the rule table for", report.unclassified_details)],
                )
            )
        return report

    def run_directory(self, source_dir: Path) -> BatchReport:
        return self.run(list_entries(source_dir))

    def _log_outcome(self, outcome: EntryOutcome) -> None:
        entry = outcome.entry
        result = outcome.result
        kind = "directory" if entry.is_dir else "file"
        if isinstance(result, Classified):
            LOGGER.info("Classified %s %s: %s", kind, entry.name, result.label())
        elif isinstance(result, Conflict):
            LOGGER.error(
                self._format_log(
                    "Classification Conflict",
                    {
                        "Entry": entry.name,
                        "Kind": kind,
                        "Reason": result.reason,
                        "Field": result.field,
                        "Values": result.values,
                    },
                )
            )
        elif result.skipped:
            template = result.skip_pattern.template if result.skip_pattern else None
            LOGGER.debug("Skipped %s %s (pattern %s)", kind, entry.name, template)
        else:
            LOGGER.warning("Unclassified %s %s: %s", kind, entry.name, result.reason)
