"""JSON-lines file sink: appends each observation as canonical JSON.

One line per event, in emission order, so a run's observations can be
replayed or diffed after the process exits.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from contribattest.core.hasher import canonical_json_bytes
from contribattest.models.events import ObservationEvent

logger = logging.getLogger(__name__)


class JsonlFileSink:
    """Appends events to ``path`` (created with its parents if missing)."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def sink_name(self) -> str:
        return "jsonl_file"

    @property
    def path(self) -> Path:
        return self._path

    def accept(self, event: ObservationEvent) -> None:
        line = canonical_json_bytes(event.model_dump(mode="json"))
        with self._path.open("ab") as fh:
            fh.write(line + b"\n")
        logger.debug("JsonlFileSink: wrote %s to %s", event.event_id, self._path)

    def read_events(self) -> list[dict]:
        """Read back every event written so far."""
        if not self._path.exists():
            return []
        return [
            json.loads(line)
            for line in self._path.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
