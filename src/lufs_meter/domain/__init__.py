"""Domain layer exports."""

from .events import DomainEvent, MeasurementCompleted, MeasurementFailed, MeasurementStarted

__all__ = [
    "DomainEvent",
    "MeasurementCompleted",
    "MeasurementFailed",
    "MeasurementStarted",
]
