"""Two-stage BS.1770 gating of block energies into integrated loudness."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .audio_contract import (
    ABSOLUTE_GATE_LUFS,
    LOUDNESS_OFFSET_LUFS,
    RELATIVE_GATE_LU,
    SILENCE_LUFS,
)
from .blocks import BlockEnergy


@dataclass(frozen=True, slots=True)
class GatingResult:
    """Integrated loudness together with the gating statistics behind it."""

    integrated_lufs: float
    relative_threshold_lufs: float
    total_blocks: int
    absolute_gated_blocks: int
    relative_gated_blocks: int

    @property
    def is_silent(self) -> bool:
        return self.absolute_gated_blocks == 0


def _loudness(energy: np.ndarray | float) -> np.ndarray | float:
    with np.errstate(divide="ignore"):
        return LOUDNESS_OFFSET_LUFS + 10.0 * np.log10(energy)


def _weighted_energy(mean_squares: np.ndarray, gains: np.ndarray) -> np.ndarray:
    mean_squares = np.asarray(mean_squares, dtype=np.float64)
    if mean_squares.ndim != 2:
        raise ValueError("Block energies must be shaped (blocks, channels).")
    if mean_squares.shape[1] != gains.shape[0]:
        raise ValueError(
            f"Got {gains.shape[0]} channel weights for {mean_squares.shape[1]} channels."
        )
    return mean_squares @ gains


def block_loudness(mean_squares: np.ndarray, gains: np.ndarray) -> np.ndarray:
    """Loudness of every block; zero-energy blocks are ``-inf``."""

    return np.asarray(_loudness(_weighted_energy(mean_squares, np.asarray(gains, dtype=np.float64))))


def gate_blocks(
    mean_squares: np.ndarray,
    gains: np.ndarray,
    absolute_gate_lufs: float = ABSOLUTE_GATE_LUFS,
    relative_gate_lu: float = RELATIVE_GATE_LU,
) -> GatingResult:
    """Apply the absolute and relative gates and return integrated loudness.

    ``mean_squares`` is shaped ``(blocks, channels)``. When no block survives
    the absolute gate the integrated loudness is ``SILENCE_LUFS``.
    """

    gains = np.asarray(gains, dtype=np.float64)
    energies = _weighted_energy(mean_squares, gains) if len(mean_squares) else np.zeros(0)
    loudness = np.asarray(_loudness(energies))
    total_blocks = int(energies.size)

    above_absolute = loudness >= absolute_gate_lufs
    absolute_count = int(np.count_nonzero(above_absolute))
    if absolute_count == 0:
        return GatingResult(
            integrated_lufs=SILENCE_LUFS,
            relative_threshold_lufs=SILENCE_LUFS,
            total_blocks=total_blocks,
            absolute_gated_blocks=0,
            relative_gated_blocks=0,
        )

    relative_threshold = float(_loudness(np.mean(energies[above_absolute]))) + relative_gate_lu
    survivors = above_absolute & (loudness >= relative_threshold)
    integrated = float(_loudness(np.mean(energies[survivors])))

    return GatingResult(
        integrated_lufs=integrated,
        relative_threshold_lufs=relative_threshold,
        total_blocks=total_blocks,
        absolute_gated_blocks=absolute_count,
        relative_gated_blocks=int(np.count_nonzero(survivors)),
    )


def integrated_loudness(
    blocks: Sequence[BlockEnergy],
    gains: np.ndarray,
    absolute_gate_lufs: float = ABSOLUTE_GATE_LUFS,
    relative_gate_lu: float = RELATIVE_GATE_LU,
) -> float:
    """Integrated loudness in LUFS of a sequence of block records."""

    gains = np.asarray(gains, dtype=np.float64)
    if not blocks:
        return SILENCE_LUFS
    mean_squares = np.array([block.mean_squares for block in blocks], dtype=np.float64)
    return gate_blocks(mean_squares, gains, absolute_gate_lufs, relative_gate_lu).integrated_lufs
