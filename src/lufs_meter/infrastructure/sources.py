"""Decoder selection for file-backed PCM sources."""

from __future__ import annotations

from pathlib import Path

from lufs_meter.application.pcm_source import PcmSource
from lufs_meter.audio_contract import PEDALBOARD_EXTENSIONS, SOUNDFILE_EXTENSIONS
from lufs_meter.infrastructure.ffmpeg_source import FFmpegPcmSource
from lufs_meter.infrastructure.pedalboard_source import PedalboardPcmSource
from lufs_meter.io.audio_file import SoundFilePcmSource
from lufs_meter.utils.config import DecoderKind, MeterConfig


def resolve_decoder(path: Path, decoder: DecoderKind) -> DecoderKind:
    """Pick a concrete decoder for ``path`` when ``decoder`` is ``auto``."""

    if decoder is not DecoderKind.AUTO:
        return decoder
    suffix = path.suffix.lower()
    if suffix in SOUNDFILE_EXTENSIONS:
        return DecoderKind.SOUNDFILE
    if suffix in PEDALBOARD_EXTENSIONS:
        return DecoderKind.PEDALBOARD
    return DecoderKind.FFMPEG


def open_pcm_source(path: Path, config: MeterConfig | None = None) -> PcmSource:
    """Open ``path`` with the decoder selected by ``config``."""

    config = config or MeterConfig()
    if not path.is_file():
        raise FileNotFoundError(f"Audio file not found: {path}")

    decoder = resolve_decoder(path, config.decoder)
    if decoder is DecoderKind.SOUNDFILE:
        return SoundFilePcmSource(path, chunk_frames=config.chunk_frames)
    if decoder is DecoderKind.PEDALBOARD:
        return PedalboardPcmSource(path, chunk_frames=config.chunk_frames)
    return FFmpegPcmSource.from_path(
        path,
        executable=config.ffmpeg_executable,
        ffprobe_executable=config.ffprobe_executable,
        chunk_frames=config.chunk_frames,
    )
