"""Per-channel weighting coefficients for the loudness energy sum."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Sequence

import numpy as np

from .errors import InvalidChannelCountError


class Channel(str, Enum):
    """Loudspeaker positions with a defined BS.1770 weighting."""

    MONO = "mono"
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"
    LFE = "lfe"
    LEFT_SURROUND = "left-surround"
    RIGHT_SURROUND = "right-surround"
    LEFT_BACK = "left-back"
    RIGHT_BACK = "right-back"


# BS.1770-4 Table 4: +1.5 dB for loudspeakers between 60 and 120 degrees
# azimuth, unity elsewhere. The LFE channel is excluded from the measurement.
CHANNEL_WEIGHTS: Mapping[Channel, float] = MappingProxyType(
    {
        Channel.MONO: 1.0,
        Channel.LEFT: 1.0,
        Channel.RIGHT: 1.0,
        Channel.CENTER: 1.0,
        Channel.LFE: 0.0,
        Channel.LEFT_SURROUND: 1.41,
        Channel.RIGHT_SURROUND: 1.41,
        Channel.LEFT_BACK: 1.0,
        Channel.RIGHT_BACK: 1.0,
    }
)

# Default layouts in WAVE_FORMAT_EXTENSIBLE / SMPTE channel order.
DEFAULT_LAYOUTS: Mapping[int, tuple[Channel, ...]] = MappingProxyType(
    {
        1: (Channel.MONO,),
        2: (Channel.LEFT, Channel.RIGHT),
        3: (Channel.LEFT, Channel.RIGHT, Channel.CENTER),
        4: (Channel.LEFT, Channel.RIGHT, Channel.LEFT_SURROUND, Channel.RIGHT_SURROUND),
        5: (
            Channel.LEFT,
            Channel.RIGHT,
            Channel.CENTER,
            Channel.LEFT_SURROUND,
            Channel.RIGHT_SURROUND,
        ),
        6: (
            Channel.LEFT,
            Channel.RIGHT,
            Channel.CENTER,
            Channel.LFE,
            Channel.LEFT_SURROUND,
            Channel.RIGHT_SURROUND,
        ),
        8: (
            Channel.LEFT,
            Channel.RIGHT,
            Channel.CENTER,
            Channel.LFE,
            Channel.LEFT_BACK,
            Channel.RIGHT_BACK,
            Channel.LEFT_SURROUND,
            Channel.RIGHT_SURROUND,
        ),
    }
)


def channel_gains(
    channel_count: int,
    layout: Sequence[Channel] | None = None,
    overrides: Sequence[float] | None = None,
) -> np.ndarray:
    """Return the weighting vector ``G_c`` for a session.

    ``overrides`` replaces the table entirely. Without a layout, the default
    layout for ``channel_count`` is used; counts without a default layout are
    weighted at unity.
    """

    if channel_count < 1:
        raise InvalidChannelCountError(f"Channel count must be >= 1, got {channel_count}.")

    if overrides is not None:
        if len(overrides) != channel_count:
            raise InvalidChannelCountError(
                f"Expected {channel_count} channel weights, got {len(overrides)}."
            )
        gains = np.asarray(overrides, dtype=np.float64)
        if np.any(gains < 0.0) or not np.all(np.isfinite(gains)):
            raise ValueError("Channel weights must be finite and non-negative.")
        return gains

    if layout is None:
        layout = DEFAULT_LAYOUTS.get(channel_count)
    if layout is None:
        return np.ones(channel_count, dtype=np.float64)
    if len(layout) != channel_count:
        raise InvalidChannelCountError(
            f"Layout describes {len(layout)} channels but {channel_count} were declared."
        )
    return np.array([CHANNEL_WEIGHTS[channel] for channel in layout], dtype=np.float64)
