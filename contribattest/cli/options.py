"""Shared CLI plumbing: config overrides, logging setup and observer wiring."""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from contribattest.config import AttestConfig
from contribattest.routing.dispatcher import EventDispatcher
from contribattest.routing.sinks.jsonl_file import JsonlFileSink

LOG_FORMAT = "%(name)s: %(message)s"


def load_config(**overrides: Any) -> AttestConfig:
    """Load ``AttestConfig`` from env/.env, then apply non-None CLI overrides."""
    config = AttestConfig()
    update = {k: v for k, v in overrides.items() if v is not None}
    if update:
        config = config.model_copy(update=update)
    return config


def configure_logging(level: str, console: Console | None = None) -> None:
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def build_observer(config: AttestConfig) -> EventDispatcher:
    """Logging dispatcher, plus a JSONL sink when ``events_path`` is set."""
    observer = EventDispatcher.with_logging()
    if config.events_path is not None:
        observer.register_sink(JsonlFileSink(config.events_path))
    return observer
