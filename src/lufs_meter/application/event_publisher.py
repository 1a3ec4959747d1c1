"""Port through which measurement runs report their lifecycle."""

from __future__ import annotations

from typing import Protocol

from lufs_meter.domain.events import DomainEvent


class EventPublisher(Protocol):
    """Receives the started / completed / failed events of each measurement."""

    def publish(self, event: DomainEvent) -> None:
        """Deliver ``event``; must not raise into the measurement."""


class NullEventPublisher:
    """Discard measurement events (library use without observability)."""

    def publish(self, event: DomainEvent) -> None:  # noqa: ARG002
        return None
