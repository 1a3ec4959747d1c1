"""PCM source adapter backed by pedalboard's audio file readers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import numpy as np
from pedalboard.io import AudioFile

from lufs_meter.audio_contract import DEFAULT_CHUNK_FRAMES
from lufs_meter.errors import DecoderError


class PedalboardPcmSource:
    """Decode compressed audio files in chunks."""

    def __init__(self, path: Path, chunk_frames: int = DEFAULT_CHUNK_FRAMES):
        self.path = path
        self.chunk_frames = chunk_frames
        try:
            with AudioFile(str(path), "r") as audio_file:
                self.sample_rate_hz = int(round(audio_file.samplerate))
                self.channel_count = int(audio_file.num_channels)
                self.frames: int | None = int(audio_file.frames)
        except (OSError, ValueError, RuntimeError) as exc:
            raise DecoderError(f"pedalboard could not open '{path}': {exc}") from exc

    def buffers(self) -> Iterator[np.ndarray]:
        with AudioFile(str(self.path), "r") as audio_file:
            while audio_file.tell() < audio_file.frames:
                chunk = audio_file.read(self.chunk_frames)
                if chunk.shape[-1] == 0:
                    break
                yield chunk
