"""Recording sink: buffers observations in memory.

Used by tests to inspect what a run reported
without capturing process-wide log output.
"""

from __future__ import annotations

from contribattest.models.events import EventLevel, ObservationEvent


class RecordingSink:
    """Keeps every accepted event, in order."""

    def __init__(self) -> None:
        self._events: list[ObservationEvent] = []

    @property
    def sink_name(self) -> str:
        return "recording"

    def accept(self, event: ObservationEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> list[ObservationEvent]:
        return list(self._events)

    def at_level(self, level: EventLevel) -> list[ObservationEvent]:
        return [e for e in self._events if e.level == level]

    def from_source(self, source: str) -> list[ObservationEvent]:
        return [e for e in self._events if e.source == source]

    def messages(self, level: EventLevel | None = None) -> list[str]:
        return [e.message for e in self._events if level is None or e.level == level]

    def clear(self) -> None:
        self._events.clear()
