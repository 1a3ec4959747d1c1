"""K-weighting pre-filter: a high-shelf stage cascaded with a high-pass stage.

Coefficients are derived for any sample rate from the analog prototypes of the
two BS.1770 stages using the bilinear transform with frequency pre-warping. At
48 kHz the result matches the coefficient tables published in the standard.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from numbers import Integral

import numpy as np
from scipy import signal

from .audio_contract import MAX_SAMPLE_RATE_HZ, MIN_SAMPLE_RATE_HZ
from .errors import InvalidChannelCountError, InvalidSampleRateError

# Stage 1: high shelf modelling the acoustic effect of the head.
_SHELF_F0_HZ = 1681.974450955533
_SHELF_GAIN_DB = 3.999843853973347
_SHELF_Q = 0.7071752369554196
_SHELF_BAND_EXPONENT = 0.4996667741545416

# Stage 2: RLB high-pass.
_HIGHPASS_F0_HZ = 38.13547087602444
_HIGHPASS_Q = 0.5003270373238773


@dataclass(frozen=True, slots=True)
class KWeightingCoefficients:
    """Biquad coefficients of both K-weighting stages for one sample rate."""

    sample_rate_hz: int
    shelf_b: tuple[float, float, float]
    shelf_a: tuple[float, float, float]
    highpass_b: tuple[float, float, float]
    highpass_a: tuple[float, float, float]

    @property
    def sos(self) -> np.ndarray:
        """Second-order sections matrix, one row per stage."""

        return np.array(
            [
                [*self.shelf_b, *self.shelf_a],
                [*self.highpass_b, *self.highpass_a],
            ],
            dtype=np.float64,
        )


def validate_sample_rate(
    sample_rate_hz: object,
    min_hz: int = MIN_SAMPLE_RATE_HZ,
    max_hz: int = MAX_SAMPLE_RATE_HZ,
) -> int:
    """Return ``sample_rate_hz`` as ``int`` or raise :class:`InvalidSampleRateError`."""

    if isinstance(sample_rate_hz, bool) or not isinstance(sample_rate_hz, Integral):
        raise InvalidSampleRateError(f"Sample rate must be an integer, got {sample_rate_hz!r}.")
    rate = int(sample_rate_hz)
    if rate <= 0:
        raise InvalidSampleRateError(f"Sample rate must be positive, got {rate}.")
    _require_stable_rate(rate)
    if rate < min_hz or rate > max_hz:
        raise InvalidSampleRateError(
            f"Sample rate {rate} Hz is outside the supported range {min_hz}-{max_hz} Hz."
        )
    return rate


def _require_stable_rate(rate: int) -> None:
    if rate <= 2.0 * _SHELF_F0_HZ:
        raise InvalidSampleRateError(
            f"Sample rate {rate} Hz puts the K-weighting shelf at or above Nyquist "
            f"(needs more than {2.0 * _SHELF_F0_HZ:.0f} Hz)."
        )


@lru_cache(maxsize=32)
def design_k_weighting(sample_rate_hz: int) -> KWeightingCoefficients:
    """Derive K-weighting coefficients for ``sample_rate_hz``.

    Rates that put the shelf corner at or above Nyquist raise
    :class:`InvalidSampleRateError`; the returned coefficients are immutable
    and shared between meters running at the same rate.
    """

    _require_stable_rate(sample_rate_hz)
    k = np.tan(np.pi * _SHELF_F0_HZ / sample_rate_hz)
    vh = 10.0 ** (_SHELF_GAIN_DB / 20.0)
    vb = vh**_SHELF_BAND_EXPONENT
    a0 = 1.0 + k / _SHELF_Q + k * k
    shelf_b = (
        float((vh + vb * k / _SHELF_Q + k * k) / a0),
        float(2.0 * (k * k - vh) / a0),
        float((vh - vb * k / _SHELF_Q + k * k) / a0),
    )
    shelf_a = (
        1.0,
        float(2.0 * (k * k - 1.0) / a0),
        float((1.0 - k / _SHELF_Q + k * k) / a0),
    )

    k = np.tan(np.pi * _HIGHPASS_F0_HZ / sample_rate_hz)
    a0 = 1.0 + k / _HIGHPASS_Q + k * k
    highpass_b = (1.0, -2.0, 1.0)
    highpass_a = (
        1.0,
        float(2.0 * (k * k - 1.0) / a0),
        float((1.0 - k / _HIGHPASS_Q + k * k) / a0),
    )

    return KWeightingCoefficients(
        sample_rate_hz=sample_rate_hz,
        shelf_b=shelf_b,
        shelf_a=shelf_a,
        highpass_b=highpass_b,
        highpass_a=highpass_a,
    )


class KWeightingFilter:
    """Stateful K-weighting filter applied independently to every channel.

    The delay lines persist across :meth:`process` calls so a stream filtered
    in arbitrary chunks produces the same output as one filtered in one go.
    """

    def __init__(self, coefficients: KWeightingCoefficients, channel_count: int):
        if channel_count < 1:
            raise InvalidChannelCountError(f"Channel count must be >= 1, got {channel_count}.")
        self.coefficients = coefficients
        self.channel_count = channel_count
        self._sos = coefficients.sos
        self._zi = np.zeros((self._sos.shape[0], channel_count, 2), dtype=np.float64)

    @property
    def state(self) -> np.ndarray:
        """Copy of the delay lines, shaped ``(stages, channels, 2)``."""

        return self._zi.copy()

    def reset(self) -> None:
        self._zi.fill(0.0)

    def process(self, samples: np.ndarray) -> np.ndarray:
        """Filter a channel-first ``(channels, frames)`` float64 block."""

        if samples.shape[-1] == 0:
            return np.zeros_like(samples, dtype=np.float64)
        filtered, self._zi = signal.sosfilt(self._sos, samples, axis=-1, zi=self._zi)
        return filtered
