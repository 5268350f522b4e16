"""Observation events emitted by the attestation core."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ObservationEvent(BaseModel):
    """A single progress, warning or error observation.

    ``details`` carries structured fields (attempt numbers, ids, costs) so
    sinks can render or persist them without parsing ``message``.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    level: EventLevel
    message: str
    source: str = ""  # emitting component, e.g. "retry", "ensurer"
    details: dict[str, Any] = {}
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
