"""Measurement contract shared by the engine and its PCM sources.

Invariants
----------
* Blocks are 400 ms long and start every 100 ms (75 % overlap).
* The hop length in frames is the 100 ms duration rounded to the nearest frame,
  and a block is always exactly four hops.
* Buffers handed to the engine are channel-first float PCM with full scale at
  ``1.0``.
"""

from __future__ import annotations

# Gating block geometry (ITU-R BS.1770-4).
HOPS_PER_BLOCK = 4

# Loudness scale offset and default gates.
LOUDNESS_OFFSET_LUFS = -0.691
ABSOLUTE_GATE_LUFS = -70.0
RELATIVE_GATE_LU = -10.0

# Output reported when no block survives the absolute gate.
SILENCE_LUFS = float("-inf")

# Sample rates accepted by ``prepare``. The K-weighting shelf corner must stay
# below Nyquist, so rates under about 3.4 kHz can never be measured.
MIN_SAMPLE_RATE_HZ = 8_000
MAX_SAMPLE_RATE_HZ = 400_000

# Source extensions (lower-case, with leading dot) read by each decoder in
# ``auto`` mode. Anything else is handed to the external ffmpeg decoder.
SOUNDFILE_EXTENSIONS: tuple[str, ...] = (".wav", ".wave", ".flac", ".aiff", ".aif", ".ogg")
PEDALBOARD_EXTENSIONS: tuple[str, ...] = (".mp3",)

DEFAULT_CHUNK_FRAMES = 65_536


def hop_frames(sample_rate_hz: int) -> int:
    """Return the 100 ms hop length in frames, rounded to the nearest frame."""

    return (sample_rate_hz + 5) // 10


def block_frames(sample_rate_hz: int) -> int:
    """Return the 400 ms block length in frames."""

    return HOPS_PER_BLOCK * hop_frames(sample_rate_hz)
