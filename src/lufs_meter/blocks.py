"""Overlapping 400 ms block segmentation of the K-weighted energy stream."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

import numpy as np

from .audio_contract import block_frames, hop_frames


@dataclass(frozen=True, slots=True)
class BlockEnergy:
    """Per-channel mean square of one complete 400 ms block."""

    index: int
    mean_squares: tuple[float, ...]


@dataclass(slots=True)
class _OpenBlock:
    index: int
    sums: np.ndarray
    frames: int = 0


class BlockSegmenter:
    """Accumulate squared samples into overlapping gating blocks.

    A block opens at every hop boundary, so up to four accumulators are open
    at once. A block that has summed ``block_frames`` samples is emitted and
    retired; blocks still open when the stream ends are never emitted.
    """

    def __init__(self, sample_rate_hz: int, channel_count: int):
        self.channel_count = channel_count
        self.hop_frames = hop_frames(sample_rate_hz)
        self.block_frames = block_frames(sample_rate_hz)
        self._open: deque[_OpenBlock] = deque()
        self._frames_seen = 0
        self._next_index = 0

    @property
    def open_blocks(self) -> int:
        return len(self._open)

    @property
    def frames_seen(self) -> int:
        return self._frames_seen

    def reset(self) -> None:
        self._open.clear()
        self._frames_seen = 0
        self._next_index = 0

    def push(self, squared: np.ndarray) -> list[tuple[int, np.ndarray]]:
        """Consume ``(channels, frames)`` squared samples.

        Returns ``(block_index, mean_squares)`` for every block completed by
        this call, in stream order.
        """

        completed: list[tuple[int, np.ndarray]] = []
        total = squared.shape[-1]
        position = 0
        while position < total:
            phase = self._frames_seen % self.hop_frames
            if phase == 0:
                self._open.append(
                    _OpenBlock(
                        index=self._next_index,
                        sums=np.zeros(self.channel_count, dtype=np.float64),
                    )
                )
                self._next_index += 1

            take = min(self.hop_frames - phase, total - position)
            segment_sum = np.sum(squared[:, position : position + take], axis=-1, dtype=np.float64)
            for block in self._open:
                block.sums += segment_sum
                block.frames += take
            position += take
            self._frames_seen += take

            while self._open and self._open[0].frames >= self.block_frames:
                block = self._open.popleft()
                completed.append((block.index, block.sums / self.block_frames))
        return completed
