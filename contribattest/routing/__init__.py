"""contribattest event routing: dispatches observations to all configured sinks.

The attestation core never writes to process-wide logging directly.  It
emits ``ObservationEvent``s through an injected ``EventDispatcher``, which
fans each event out to every registered sink: stdlib logging, an in-memory
recorder, a JSON-lines file, or any custom sink implementing the
``EventSink`` protocol.
"""

from contribattest.routing.dispatcher import EventDispatchError, EventDispatcher
from contribattest.routing.sinks import EventSink

__all__ = ["EventDispatchError", "EventDispatcher", "EventSink"]
