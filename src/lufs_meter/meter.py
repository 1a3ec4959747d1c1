"""Streaming integrated-loudness meter.

The meter is a small state machine::

    idle --prepare--> prepared --start_integrated--> integrating
    integrating --process_buffer--> integrating
    integrating --stop_integrated--> stopped --start_integrated--> integrating

``prepare`` derives the K-weighting coefficients for a sample rate and
allocates per-channel filter state. Each ``start_integrated`` opens an
independent measurement session; audio may then be fed in chunks of any size,
and the result does not depend on how the stream was chunked. The meter is
synchronous and must be confined to one thread; separate meters share nothing
but the read-only coefficient tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from numbers import Integral
from typing import Any, Callable

import numpy as np

from .blocks import BlockEnergy, BlockSegmenter
from .channel_weights import channel_gains
from .errors import (
    ChannelCountMismatchError,
    InvalidChannelCountError,
    InvalidStateTransitionError,
    LoudnessMeterError,
    MalformedBufferError,
)
from .gating import GatingResult, gate_blocks
from .k_weighting import KWeightingCoefficients, KWeightingFilter, design_k_weighting, validate_sample_rate
from .utils.config import MeterConfig

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[float, float], None]

_INITIAL_BLOCK_CAPACITY = 64


class MeterState(str, Enum):
    """Lifecycle states of a :class:`LoudnessMeter`."""

    IDLE = "idle"
    PREPARED = "prepared"
    INTEGRATING = "integrating"
    STOPPED = "stopped"


@dataclass(slots=True)
class IntegrationSession:
    """Blocks and counters accumulated by one integration run."""

    channel_count: int
    expected_frames: int | None = None
    frames_processed: int = 0
    _energies: np.ndarray = field(init=False, repr=False)
    _block_count: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self._energies = np.zeros((_INITIAL_BLOCK_CAPACITY, self.channel_count), dtype=np.float64)

    @property
    def block_count(self) -> int:
        return self._block_count

    @property
    def mean_squares(self) -> np.ndarray:
        """Read-only ``(blocks, channels)`` view of the completed blocks."""

        view = self._energies[: self._block_count]
        view.flags.writeable = False
        return view

    @property
    def blocks(self) -> tuple[BlockEnergy, ...]:
        return tuple(
            BlockEnergy(index=index, mean_squares=tuple(float(value) for value in row))
            for index, row in enumerate(self.mean_squares)
        )

    @property
    def fraction_complete(self) -> float:
        if not self.expected_frames:
            return float("nan")
        return min(1.0, self.frames_processed / self.expected_frames)

    def append(self, mean_squares: np.ndarray) -> None:
        if self._block_count == self._energies.shape[0]:
            grown = np.zeros((self._energies.shape[0] * 2, self.channel_count), dtype=np.float64)
            grown[: self._block_count] = self._energies[: self._block_count]
            self._energies = grown
        self._energies[self._block_count] = mean_squares
        self._block_count += 1


class LoudnessMeter:
    """Incremental ITU-R BS.1770 integrated loudness meter."""

    def __init__(self, config: MeterConfig | None = None):
        self.config = config or MeterConfig()
        self._state = MeterState.IDLE
        self._sample_rate_hz: int | None = None
        self._channel_count = 0
        self._coefficients: KWeightingCoefficients | None = None
        self._filter: KWeightingFilter | None = None
        self._segmenter: BlockSegmenter | None = None
        self._gains: np.ndarray | None = None
        self._session: IntegrationSession | None = None
        self._result: GatingResult | None = None
        self._estimate: tuple[int, float] | None = None

    @property
    def state(self) -> MeterState:
        return self._state

    @property
    def sample_rate_hz(self) -> int | None:
        return self._sample_rate_hz

    @property
    def channel_count(self) -> int:
        return self._channel_count

    @property
    def coefficients(self) -> KWeightingCoefficients | None:
        return self._coefficients

    @property
    def session(self) -> IntegrationSession | None:
        return self._session

    def prepare(self, sample_rate_hz: int, channel_count: int) -> None:
        """Derive filter coefficients and allocate per-channel state.

        A rejected rate or channel count leaves the meter idle; it must be
        prepared again before a new session can start.
        """

        self._require("prepare", MeterState.IDLE, MeterState.PREPARED, MeterState.STOPPED)
        try:
            rate = validate_sample_rate(
                sample_rate_hz,
                min_hz=self.config.min_sample_rate_hz,
                max_hz=self.config.max_sample_rate_hz,
            )
            if isinstance(channel_count, bool) or not isinstance(channel_count, Integral) or channel_count < 1:
                raise InvalidChannelCountError(f"Channel count must be a positive integer, got {channel_count!r}.")
            channels = int(channel_count)
            gains = channel_gains(channels, overrides=self.config.channel_weights)
        except LoudnessMeterError:
            self._reset()
            raise

        coefficients = design_k_weighting(rate)
        self._sample_rate_hz = rate
        self._channel_count = channels
        self._coefficients = coefficients
        self._filter = KWeightingFilter(coefficients, channels)
        self._segmenter = BlockSegmenter(rate, channels)
        self._gains = gains
        self._session = None
        self._result = None
        self._state = MeterState.PREPARED

    def start_integrated(self, expected_frames: int | None = None) -> None:
        """Begin a fresh measurement, optionally announcing the stream length."""

        self._require("start_integrated", MeterState.PREPARED, MeterState.STOPPED)
        if expected_frames is not None and expected_frames < 0:
            raise ValueError("expected_frames must be >= 0 when provided.")

        self._filter.reset()
        self._segmenter.reset()
        self._session = IntegrationSession(
            channel_count=self._channel_count,
            expected_frames=expected_frames,
        )
        self._result = None
        self._estimate = None
        self._state = MeterState.INTEGRATING
        LOGGER.debug(
            "integration_started",
            extra={
                "sample_rate_hz": self._sample_rate_hz,
                "channel_count": self._channel_count,
                "expected_frames": expected_frames,
            },
        )

    def process_buffer(self, samples: Any, progress_callback: ProgressCallback | None = None) -> None:
        """Feed one channel-first chunk of samples through the meter.

        ``progress_callback`` receives the loudness of the blocks completed so
        far and the completed fraction of ``expected_frames`` (NaN when the
        length is unknown). Errors raised by the callback are logged and do
        not affect the measurement.
        """

        self._require("process_buffer", MeterState.INTEGRATING)
        buffer = _as_channel_first(samples)
        if buffer.shape[0] != self._channel_count:
            self._session = None
            self._state = MeterState.PREPARED
            LOGGER.warning(
                "integration_aborted",
                extra={"reason": "channel_count_mismatch", "channel_count": buffer.shape[0]},
            )
            raise ChannelCountMismatchError(
                f"Buffer has {buffer.shape[0]} channels but the meter was prepared for {self._channel_count}."
            )

        filtered = self._filter.process(buffer)
        for _, mean_squares in self._segmenter.push(np.square(filtered)):
            self._session.append(mean_squares)
        self._session.frames_processed += buffer.shape[1]

        if progress_callback is not None:
            self._report_progress(progress_callback)

    def stop_integrated(self) -> GatingResult:
        """Finish the session: drop partial blocks and gate the complete ones."""

        self._require("stop_integrated", MeterState.INTEGRATING)
        self._segmenter.reset()
        self._result = self._gate()
        self._state = MeterState.STOPPED
        LOGGER.info(
            "integration_stopped",
            extra={
                "integrated_lufs": self._result.integrated_lufs,
                "total_blocks": self._result.total_blocks,
                "gated_blocks": self._result.relative_gated_blocks,
                "frames_processed": self._session.frames_processed,
            },
        )
        return self._result

    @property
    def gating_result(self) -> GatingResult:
        self._require("read the result", MeterState.STOPPED)
        return self._result

    @property
    def integrated_loudness(self) -> float:
        """Integrated loudness in LUFS; ``-inf`` when nothing passed the gates."""

        return self.gating_result.integrated_lufs

    def _gate(self) -> GatingResult:
        return gate_blocks(
            self._session.mean_squares,
            self._gains,
            absolute_gate_lufs=self.config.absolute_gate_lufs,
            relative_gate_lu=self.config.relative_gate_lu,
        )

    def _report_progress(self, progress_callback: ProgressCallback) -> None:
        # The estimate only changes when a block completes.
        block_count = self._session.block_count
        if self._estimate is None or self._estimate[0] != block_count:
            self._estimate = (block_count, self._gate().integrated_lufs)
        estimate = self._estimate[1]
        try:
            progress_callback(estimate, self._session.fraction_complete)
        except Exception:  # noqa: BLE001
            LOGGER.warning("progress_callback_failed", exc_info=True)

    def _require(self, operation: str, *states: MeterState) -> None:
        if self._state not in states:
            allowed = ", ".join(state.value for state in states)
            raise InvalidStateTransitionError(
                f"Cannot {operation} while the meter is {self._state.value} (allowed: {allowed})."
            )

    def _reset(self) -> None:
        self._state = MeterState.IDLE
        self._sample_rate_hz = None
        self._channel_count = 0
        self._coefficients = None
        self._filter = None
        self._segmenter = None
        self._gains = None
        self._session = None
        self._result = None
        self._estimate = None


def _as_channel_first(samples: Any) -> np.ndarray:
    try:
        buffer = np.asarray(samples, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise MalformedBufferError("Sample buffer must be a rectangular array of numbers.") from exc

    if buffer.ndim == 1:
        buffer = buffer[np.newaxis, :]
    elif buffer.ndim != 2:
        raise MalformedBufferError(f"Sample buffer must be 1-D or 2-D channel-first, got {buffer.ndim}-D.")
    if not np.all(np.isfinite(buffer)):
        raise MalformedBufferError("Sample buffer contains NaN or infinite samples.")
    return buffer


def measure_integrated_lufs(audio: Any, sample_rate_hz: int, config: MeterConfig | None = None) -> float:
    """Measure integrated loudness of in-memory channel-first audio in one pass."""

    buffer = _as_channel_first(audio)
    meter = LoudnessMeter(config)
    meter.prepare(sample_rate_hz, buffer.shape[0])
    meter.start_integrated(expected_frames=buffer.shape[1])
    meter.process_buffer(buffer)
    meter.stop_integrated()
    return meter.integrated_loudness
