"""Logging sink: forwards observations to stdlib ``logging``.

This is the default sink: a run with no explicit observer still reports
progress through the ``contribattest`` logger hierarchy.
"""

from __future__ import annotations

import logging

from contribattest.models.events import EventLevel, ObservationEvent

_LEVELS: dict[EventLevel, int] = {
    EventLevel.DEBUG: logging.DEBUG,
    EventLevel.INFO: logging.INFO,
    EventLevel.WARNING: logging.WARNING,
    EventLevel.ERROR: logging.ERROR,
}


class LoggingSink:
    """Writes each event to a logger named after its source component.

    Parameters
    ----------
    base_logger:
        Parent logger name.  Events from source ``"retry"`` go to
        ``"<base_logger>.retry"``.
    """

    def __init__(self, base_logger: str = "contribattest") -> None:
        self._base = base_logger

    @property
    def sink_name(self) -> str:
        return "logging"

    def accept(self, event: ObservationEvent) -> None:
        name = f"{self._base}.{event.source}" if event.source else self._base
        logging.getLogger(name).log(_LEVELS[event.level], "%s", event.message)
