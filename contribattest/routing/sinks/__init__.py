"""Sink protocol for contribattest observations.

All sinks implement the ``EventSink`` protocol: a ``sink_name`` property
and an ``accept(event)`` method.  The dispatcher calls ``accept`` on every
registered sink for every emitted event.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from contribattest.models.events import ObservationEvent


@runtime_checkable
class EventSink(Protocol):
    """Protocol that every observation sink must implement.

    Attributes
    ----------
    sink_name : str
        A unique human-readable identifier for this sink instance
        (e.g. ``"logging"``, ``"recording"``).
    """

    @property
    def sink_name(self) -> str:
        """Return the unique name of this sink."""
        ...

    def accept(self, event: ObservationEvent) -> None:
        """Accept and process an observation.

        Critical failures may raise; the dispatcher will log them and
        continue to the next sink.
        """
        ...
