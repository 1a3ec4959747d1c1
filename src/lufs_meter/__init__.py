"""Public package exports for lufs_meter with lazy imports."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "BlockEnergy",
    "GatingResult",
    "LoudnessMeter",
    "LoudnessReport",
    "MeasureLoudness",
    "MeterConfig",
    "MeterState",
    "SILENCE_LUFS",
    "design_k_weighting",
    "measure_integrated_lufs",
    "ChannelCountMismatchError",
    "InvalidSampleRateError",
    "InvalidStateTransitionError",
    "LoudnessMeterError",
    "MalformedBufferError",
]

_EXPORT_MODULES: dict[str, str] = {
    "BlockEnergy": "lufs_meter.blocks",
    "GatingResult": "lufs_meter.gating",
    "LoudnessMeter": "lufs_meter.meter",
    "LoudnessReport": "lufs_meter.application.measurement_service",
    "MeasureLoudness": "lufs_meter.application.measurement_service",
    "MeterConfig": "lufs_meter.utils.config",
    "MeterState": "lufs_meter.meter",
    "SILENCE_LUFS": "lufs_meter.audio_contract",
    "design_k_weighting": "lufs_meter.k_weighting",
    "measure_integrated_lufs": "lufs_meter.meter",
    "ChannelCountMismatchError": "lufs_meter.errors",
    "InvalidSampleRateError": "lufs_meter.errors",
    "InvalidStateTransitionError": "lufs_meter.errors",
    "LoudnessMeterError": "lufs_meter.errors",
    "MalformedBufferError": "lufs_meter.errors",
}


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MODULES:
        raise AttributeError(f"module 'lufs_meter' has no attribute {name!r}")

    module = import_module(_EXPORT_MODULES[name])
    value = getattr(module, name)
    globals()[name] = value
    return value
