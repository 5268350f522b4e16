"""EventDispatcher: routes observations to ALL configured sinks.

Every event emitted through this module is fanned out to every registered
sink.  Sink failures are logged but do not prevent delivery to the
remaining sinks, and never interrupt the attestation run itself unless
every sink fails.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from contribattest.models.events import EventLevel, ObservationEvent

if TYPE_CHECKING:
    from contribattest.routing.sinks import EventSink

logger = logging.getLogger(__name__)


class EventDispatchError(RuntimeError):
    """Raised when every registered sink fails for one event."""


class EventDispatcher:
    """Routes observation events to ALL configured sinks.

    Usage
    -----
    >>> dispatcher = EventDispatcher()
    >>> dispatcher.register_sink(LoggingSink())
    >>> dispatcher.info("Creating project subject", source="ensurer")
    """

    def __init__(self, sinks: list[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = []
        for sink in sinks or []:
            self.register_sink(sink)

    @classmethod
    def with_logging(cls) -> EventDispatcher:
        """Dispatcher with a single stdlib-logging sink."""
        from contribattest.routing.sinks.logging_sink import LoggingSink

        return cls([LoggingSink()])

    # ------------------------------------------------------------------
    # Sink management
    # ------------------------------------------------------------------

    def register_sink(self, sink: EventSink) -> None:
        """Register a sink.  Duplicate registration is silently ignored."""
        if sink not in self._sinks:
            self._sinks.append(sink)
            logger.debug("Registered sink: %s", sink.sink_name)

    def unregister_sink(self, sink: EventSink) -> None:
        try:
            self._sinks.remove(sink)
        except ValueError:
            pass

    @property
    def registered_sinks(self) -> list[EventSink]:
        """Return a copy of the registered sink list."""
        return list(self._sinks)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, event: ObservationEvent) -> list[str]:
        """Dispatch an event to ALL registered sinks.

        Returns the names of the sinks that accepted the event.

        Raises
        ------
        EventDispatchError
            If *all* sinks fail.  Individual failures are tolerated.
        """
        if not self._sinks:
            return []

        succeeded: list[str] = []
        errors: list[tuple[str, Exception]] = []

        for sink in self._sinks:
            try:
                sink.accept(event)
                succeeded.append(sink.sink_name)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Sink %s failed for event %s: %s",
                    sink.sink_name,
                    event.event_id,
                    exc,
                )
                errors.append((sink.sink_name, exc))

        if errors and not succeeded:
            raise EventDispatchError(
                f"All {len(errors)} sinks failed for event {event.event_id}: "
                + "; ".join(f"{name}: {exc}" for name, exc in errors)
            )

        return succeeded

    def emit(
        self,
        level: EventLevel,
        message: str,
        *,
        source: str = "",
        **details: Any,
    ) -> ObservationEvent:
        """Build an ``ObservationEvent`` and dispatch it."""
        event = ObservationEvent(
            level=level, message=message, source=source, details=details
        )
        self.dispatch(event)
        return event

    def debug(self, message: str, *, source: str = "", **details: Any) -> ObservationEvent:
        return self.emit(EventLevel.DEBUG, message, source=source, **details)

    def info(self, message: str, *, source: str = "", **details: Any) -> ObservationEvent:
        return self.emit(EventLevel.INFO, message, source=source, **details)

    def warning(self, message: str, *, source: str = "", **details: Any) -> ObservationEvent:
        return self.emit(EventLevel.WARNING, message, source=source, **details)

    def error(self, message: str, *, source: str = "", **details: Any) -> ObservationEvent:
        return self.emit(EventLevel.ERROR, message, source=source, **details)
