"""Port for upstream PCM producers feeding the loudness meter.

A source announces its sample rate, channel count and (when known) total frame
count, then yields channel-first float buffers. Exhausting the iterator is the
terminal signal; decode failures surface as exceptions from the iterator.
"""

from __future__ import annotations

from typing import Iterator, Protocol

import numpy as np

from lufs_meter.audio_contract import DEFAULT_CHUNK_FRAMES


class PcmSource(Protocol):
    """Producer of decoded, channel-first PCM buffers."""

    sample_rate_hz: int
    channel_count: int
    frames: int | None

    def buffers(self) -> Iterator[np.ndarray]:
        """Yield successive ``(channels, frames)`` float buffers."""


class ArrayPcmSource:
    """Serve in-memory audio in fixed-size chunks."""

    def __init__(self, audio: np.ndarray, sample_rate_hz: int, chunk_frames: int = DEFAULT_CHUNK_FRAMES):
        audio = np.asarray(audio)
        if audio.ndim == 1:
            audio = audio[np.newaxis, :]
        if audio.ndim != 2:
            raise ValueError("Audio must be a 1D mono or 2D channel-first array.")
        if chunk_frames < 1:
            raise ValueError("chunk_frames must be >= 1.")
        self.audio = audio
        self.sample_rate_hz = sample_rate_hz
        self.channel_count = audio.shape[0]
        self.frames = audio.shape[1]
        self.chunk_frames = chunk_frames

    def buffers(self) -> Iterator[np.ndarray]:
        for start in range(0, self.frames, self.chunk_frames):
            yield self.audio[:, start : start + self.chunk_frames]
