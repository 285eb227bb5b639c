from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from textwrap import wrap
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "
FILE_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _coerce_items(fields: FieldMapping) -> list[tuple[str, object]]:
    if isinstance(fields, Mapping):
        return list(fields.items())
    return list(fields)


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


def _wrap_text(text: str, width: int) -> list[str]:
    if not text:
        return [""]
    lines: list[str] = []
    for raw_line in text.splitlines() or [""]:
        lines.extend(wrap(raw_line, width=width) or [""])
    return lines


class LogBlockBuilder:
    """Builds the titled, aligned multi-line blocks used for diagnostics."""

    def __init__(self, title: str, *, wrap_width: int = DEFAULT_WRAP_WIDTH, pad_top: bool = True) -> None:
        self.title = title
        self.wrap_width = wrap_width
        self.lines: list[str] = [""] if pad_top else []
        self.lines.extend([title, "-" * len(title)])

    def add_fields(self, fields: FieldMapping | None) -> None:
        items = _coerce_items(fields) if fields else []
        if not items:
            return
        label_width = max(min(max(len(str(key)) for key, _ in items), DEFAULT_LABEL_WIDTH), 8)
        value_width = max(self.wrap_width - len(DEFAULT_INDENT) - label_width - 4, 32)
        for key, value in items:
            first, *rest = _wrap_text(_stringify(value), value_width)
            self.lines.append(f"{DEFAULT_INDENT}{str(key):<{label_width}}: {first}")
            self.lines.extend(f"{DEFAULT_INDENT}{'':<{label_width}}  {line}" for line in rest)

    def add_section(self, heading: str, items: Iterable[str], *, empty_label: str = "(none)") -> None:
        if self.lines and self.lines[-1] != "":
            self.lines.append("")
        self.lines.append(f"{heading}:")
        materialized = [item for item in items if item is not None]
        if not materialized:
            self.lines.append(f"{DEFAULT_INDENT}{empty_label}")
            return
        bullet_width = max(self.wrap_width - len(DEFAULT_INDENT) - 2, 24)
        for item in materialized:
            first, *rest = _wrap_text(_stringify(item), bullet_width)
            self.lines.append(f"{DEFAULT_INDENT}- {first}")
            self.lines.extend(f"{DEFAULT_INDENT}  {line}" for line in rest)

    def render(self) -> str:
        return "\n".join(self.lines).rstrip()


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    return builder.render()


def render_section_block(
    title: str,
    sections: Sequence[tuple[str, Sequence[str]]],
    *,
    pad_top: bool = True,
) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    for heading, items in sections:
        builder.add_section(heading, items)
    return builder.render()


def configure_logging(
    level: str = "INFO",
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    console: Console | None = None,
) -> None:
    """Install a Rich console handler and an optional plain file handler on the root logger."""
    console_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    rich_handler.setLevel(console_level)
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(rich_handler)

    root_level = console_level
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        root.addHandler(file_handler)
        root_level = logging.DEBUG

    root.setLevel(root_level)
