from __future__ import annotations

from enum import Enum
from pathlib import Path

import json

from pydantic import BaseModel, Field, field_validator, model_validator

from lufs_meter.audio_contract import (
    ABSOLUTE_GATE_LUFS,
    DEFAULT_CHUNK_FRAMES,
    MAX_SAMPLE_RATE_HZ,
    MIN_SAMPLE_RATE_HZ,
    RELATIVE_GATE_LU,
)


class DecoderKind(str, Enum):
    """PCM decoders available to the measurement use case."""

    AUTO = "auto"
    SOUNDFILE = "soundfile"
    PEDALBOARD = "pedalboard"
    FFMPEG = "ffmpeg"


class MeterConfig(BaseModel):
    min_sample_rate_hz: int = Field(MIN_SAMPLE_RATE_HZ, gt=0)
    max_sample_rate_hz: int = Field(MAX_SAMPLE_RATE_HZ, gt=0)
    absolute_gate_lufs: float = Field(ABSOLUTE_GATE_LUFS, le=0.0)
    relative_gate_lu: float = Field(RELATIVE_GATE_LU, le=0.0)
    channel_weights: list[float] | None = Field(None)
    chunk_frames: int = Field(DEFAULT_CHUNK_FRAMES, ge=1)
    decoder: DecoderKind = DecoderKind.AUTO
    ffmpeg_executable: str = "ffmpeg"
    ffprobe_executable: str = "ffprobe"

    @field_validator("channel_weights")
    @classmethod
    def _validate_channel_weights(cls, value: list[float] | None) -> list[float] | None:
        if value is None:
            return value
        if not value:
            raise ValueError("channel_weights must not be empty when provided.")
        if any(weight < 0.0 for weight in value):
            raise ValueError("channel_weights must be non-negative.")
        return value

    @model_validator(mode="after")
    def _validate_sample_rate_range(self) -> "MeterConfig":
        if self.min_sample_rate_hz >= self.max_sample_rate_hz:
            raise ValueError("min_sample_rate_hz must be lower than max_sample_rate_hz.")
        return self


def load_meter_config(path: Path) -> MeterConfig:
    data = _load_config_data(path)
    return MeterConfig.model_validate(data)


def _load_config_data(path: Path) -> dict:
    if path.suffix.lower() in {".yaml", ".yml"}:
        try:
            import yaml
        except ImportError as exc:
            raise ImportError("PyYAML is required to load YAML configs.") from exc

        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
