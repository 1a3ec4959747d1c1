from .config import DecoderKind, MeterConfig, load_meter_config

__all__ = [
    "DecoderKind",
    "MeterConfig",
    "load_meter_config",
]
