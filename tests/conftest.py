from __future__ import annotations

import logging
from typing import Callable

import pytest

from showsort.compiler import build_rulebook
from showsort.config import AppConfig, Settings, ShowConfig, TemplateConfig
from showsort.models import RuleBook


def make_show(
    name: str,
    *,
    directory: tuple[str, ...] | list[str] = (),
    file: tuple[str, ...] | list[str] = (),
    skip: tuple[str, ...] | list[str] = (),
    exact: dict[str, int] | None = None,
    enabled: bool = True,
) -> ShowConfig:
    return ShowConfig(
        name=name,
        directory_patterns=[TemplateConfig(template=template) for template in directory],
        file_patterns=[TemplateConfig(template=template) for template in file],
        skip_patterns=list(skip),
        exact_directories=dict(exact or {}),
        enabled=enabled,
    )


@pytest.fixture
def rulebook_factory() -> Callable[..., RuleBook]:
    """Build a RuleBook from ShowConfigs without the built-in skip list unless asked."""

    def factory(
        *shows: ShowConfig,
        skip_patterns: list[str] | None = None,
        use_default_skip_patterns: bool = False,
        separator: str = ".",
    ) -> RuleBook:
        settings = Settings(
            separator=separator,
            skip_patterns=list(skip_patterns or []),
            use_default_skip_patterns=use_default_skip_patterns,
        )
        return build_rulebook(AppConfig(settings=settings, shows=list(shows)))

    return factory


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def show_config() -> Callable[..., ShowConfig]:
    return make_show
