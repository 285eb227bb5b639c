"""Reading the ingest folder listing.

The folder is listed once, non-recursively, and sorted by name so reports come
out in a stable order. Each child becomes a :class:`ListingEntry`; whether it
is classified as a directory or a file is decided here and nowhere else.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .logging_utils import render_fields_block
from .models import ListingEntry

LOGGER = logging.getLogger(__name__)


def skip_reason_for_entry(path: Path) -> str | None:
    """Return why a listing entry should be ignored, or None to keep it."""
    name = path.name
    if name.startswith("._") and len(name) > 2:
        return "macOS resource fork (._ prefix)"
    return None


def list_entries(source_dir: Path) -> list[ListingEntry]:
    """List the direct children of ``source_dir`` as classification entries.

    Raises:
        FileNotFoundError: if ``source_dir`` does not exist.
        NotADirectoryError: if ``source_dir`` is not a directory.
    """
    if not source_dir.exists():
        raise FileNotFoundError(f"Source directory does not exist: {source_dir}")
    if not source_dir.is_dir():
        raise NotADirectoryError(f"Source path is not a directory: {source_dir}")

    entries: list[ListingEntry] = []
    for path in sorted(source_dir.iterdir(), key=lambda item: item.name):
        skip_reason = skip_reason_for_entry(path)
        if skip_reason:
            LOGGER.debug(
                render_fields_block(
                    "Skipping Listing Entry",
                    {"Entry": path.name, "Reason": skip_reason},
                )
            )
            continue
        entries.append(ListingEntry(name=path.name, is_dir=path.is_dir()))

    LOGGER.info("Found %d files and directories in %s", len(entries), source_dir)
    return entries
