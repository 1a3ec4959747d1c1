"""Domain event contracts for loudness measurement workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True, slots=True)
class DomainEvent:
    """Base domain event emitted by application services."""

    correlation_id: str
    payload_summary: dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


@dataclass(frozen=True, slots=True)
class MeasurementStarted(DomainEvent):
    """A PCM source was opened and a meter session started."""


@dataclass(frozen=True, slots=True)
class MeasurementCompleted(DomainEvent):
    """Integrated loudness was computed for a source."""


@dataclass(frozen=True, slots=True)
class MeasurementFailed(DomainEvent):
    """Decoding or measurement failed for a correlation id."""
