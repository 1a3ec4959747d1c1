"""Publish measurement events as structured log records."""

from __future__ import annotations

import logging

from lufs_meter.domain.events import DomainEvent, MeasurementFailed

LOGGER = logging.getLogger("lufs_meter.events")


class LoggingEventPublisher:
    """Log one ``measurement_event`` record per event.

    Failures are logged at WARNING so they surface at the CLI's default level;
    started and completed events stay at INFO.
    """

    def publish(self, event: DomainEvent) -> None:
        summary = event.payload_summary
        level = logging.WARNING if isinstance(event, MeasurementFailed) else logging.INFO
        LOGGER.log(
            level,
            "measurement_event",
            extra={
                "event_name": type(event).__name__,
                "correlation_id": event.correlation_id,
                "source_uri": summary.get("source_uri"),
                "stage": summary.get("stage"),
                "integrated_lufs": summary.get("integrated_lufs"),
                "payload_summary": summary,
                "occurred_at": event.occurred_at.isoformat(),
            },
        )
