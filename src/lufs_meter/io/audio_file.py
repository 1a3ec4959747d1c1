from __future__ import annotations

from pathlib import Path
from typing import Iterator

import numpy as np
import soundfile as sf

from lufs_meter.audio_contract import DEFAULT_CHUNK_FRAMES
from lufs_meter.errors import DecoderError


class SoundFilePcmSource:
    """Stream WAV/FLAC/AIFF files block by block through libsndfile."""

    def __init__(self, path: Path, chunk_frames: int = DEFAULT_CHUNK_FRAMES):
        self.path = path
        self.chunk_frames = chunk_frames
        try:
            info = sf.info(str(path))
        except RuntimeError as exc:
            raise DecoderError(f"soundfile could not open '{path}': {exc}") from exc
        self.sample_rate_hz = int(info.samplerate)
        self.channel_count = int(info.channels)
        self.frames: int | None = int(info.frames) if info.frames >= 0 else None

    def buffers(self) -> Iterator[np.ndarray]:
        with sf.SoundFile(str(self.path), "r") as handle:
            for block in handle.blocks(blocksize=self.chunk_frames, dtype="float64", always_2d=True):
                yield block.T
