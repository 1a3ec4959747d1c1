"""Application services orchestrating loudness measurement use-cases."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable
from uuid import uuid4

from lufs_meter.application.event_publisher import EventPublisher, NullEventPublisher
from lufs_meter.application.pcm_source import PcmSource
from lufs_meter.domain.events import MeasurementCompleted, MeasurementFailed, MeasurementStarted
from lufs_meter.infrastructure.sources import open_pcm_source
from lufs_meter.meter import LoudnessMeter, ProgressCallback
from lufs_meter.utils.config import MeterConfig


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


@dataclass(frozen=True, slots=True)
class LoudnessReport:
    """Integrated loudness of one source plus the gating statistics."""

    source_uri: str
    sample_rate_hz: int
    channel_count: int
    frames: int
    integrated_lufs: float
    relative_threshold_lufs: float
    total_blocks: int
    gated_blocks: int

    @property
    def duration_seconds(self) -> float:
        return self.frames / self.sample_rate_hz

    @property
    def is_silent(self) -> bool:
        return math.isinf(self.integrated_lufs)

    def as_dict(self) -> dict[str, Any]:
        """JSON-safe payload; ``-inf`` loudness values are rendered as ``None``."""

        return {
            "source_uri": self.source_uri,
            "sample_rate_hz": self.sample_rate_hz,
            "channel_count": self.channel_count,
            "frames": self.frames,
            "duration_seconds": self.duration_seconds,
            "integrated_lufs": _finite_or_none(self.integrated_lufs),
            "relative_threshold_lufs": _finite_or_none(self.relative_threshold_lufs),
            "total_blocks": self.total_blocks,
            "gated_blocks": self.gated_blocks,
            "is_silent": self.is_silent,
        }


@dataclass(slots=True)
class MeasureLoudness:
    """Use case that measures integrated loudness of a PCM source or file."""

    config: MeterConfig = field(default_factory=MeterConfig)
    event_publisher: EventPublisher = NullEventPublisher()
    source_opener: Callable[[Path, MeterConfig], PcmSource] = open_pcm_source

    def measure_source(
        self,
        source: PcmSource,
        source_uri: str = "memory://",
        correlation_id: str | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> LoudnessReport:
        run_correlation_id = correlation_id or str(uuid4())
        self.event_publisher.publish(
            MeasurementStarted(
                correlation_id=run_correlation_id,
                payload_summary={
                    "source_uri": source_uri,
                    "sample_rate_hz": source.sample_rate_hz,
                    "channel_count": source.channel_count,
                    "frames": source.frames,
                },
            )
        )

        meter = LoudnessMeter(self.config)
        try:
            meter.prepare(source.sample_rate_hz, source.channel_count)
            meter.start_integrated(expected_frames=source.frames)
            for buffer in source.buffers():
                meter.process_buffer(buffer, progress_callback)
            result = meter.stop_integrated()
        except Exception as error:  # noqa: BLE001
            self.event_publisher.publish(
                MeasurementFailed(
                    correlation_id=run_correlation_id,
                    payload_summary={"stage": "measure", "source_uri": source_uri, "error": str(error)},
                )
            )
            raise

        report = LoudnessReport(
            source_uri=source_uri,
            sample_rate_hz=meter.sample_rate_hz,
            channel_count=meter.channel_count,
            frames=meter.session.frames_processed,
            integrated_lufs=result.integrated_lufs,
            relative_threshold_lufs=result.relative_threshold_lufs,
            total_blocks=result.total_blocks,
            gated_blocks=result.relative_gated_blocks,
        )
        self.event_publisher.publish(
            MeasurementCompleted(
                correlation_id=run_correlation_id,
                payload_summary={
                    "source_uri": source_uri,
                    "integrated_lufs": _finite_or_none(report.integrated_lufs),
                    "duration_seconds": report.duration_seconds,
                    "gated_blocks": report.gated_blocks,
                },
            )
        )
        return report

    def measure_file(
        self,
        path: Path,
        correlation_id: str | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> LoudnessReport:
        run_correlation_id = correlation_id or str(uuid4())
        try:
            source = self.source_opener(path, self.config)
        except Exception as error:  # noqa: BLE001
            self.event_publisher.publish(
                MeasurementFailed(
                    correlation_id=run_correlation_id,
                    payload_summary={"stage": "decode", "source_uri": str(path), "error": str(error)},
                )
            )
            raise

        return self.measure_source(
            source,
            source_uri=path.resolve().as_uri(),
            correlation_id=run_correlation_id,
            progress_callback=progress_callback,
        )
