"""Application layer."""

from .event_publisher import EventPublisher, NullEventPublisher
from .measurement_service import LoudnessReport, MeasureLoudness
from .pcm_source import ArrayPcmSource, PcmSource

__all__ = [
    "ArrayPcmSource",
    "EventPublisher",
    "LoudnessReport",
    "MeasureLoudness",
    "NullEventPublisher",
    "PcmSource",
]
