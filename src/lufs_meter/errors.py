"""Error kinds raised by the loudness engine and its PCM collaborators.

Every error carries a stable ``code`` so CLI and batch reports can render
failures without parsing messages. Silence is not an error: a program with no
block above the absolute gate reports ``-inf`` LUFS.
"""

from __future__ import annotations


class LoudnessMeterError(Exception):
    """Base class for every error raised by :mod:`lufs_meter`."""

    code = "loudness_meter_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class InvalidSampleRateError(LoudnessMeterError, ValueError):
    """Raised by ``prepare`` for non-integer, non-positive or out-of-range rates."""

    code = "invalid_sample_rate"


class InvalidChannelCountError(LoudnessMeterError, ValueError):
    code = "invalid_channel_count"


class ChannelCountMismatchError(LoudnessMeterError, ValueError):
    """Raised when a buffer's channel count differs from the prepared layout."""

    code = "channel_count_mismatch"


class MalformedBufferError(LoudnessMeterError, ValueError):
    """Raised for ragged, non-numeric, >2-D or non-finite sample buffers."""

    code = "malformed_buffer"


class InvalidStateTransitionError(LoudnessMeterError, RuntimeError):
    """Raised when a meter operation is invoked out of order."""

    code = "invalid_state_transition"


class DecoderError(LoudnessMeterError):
    """Raised when an upstream PCM decoder fails."""

    code = "decode_failed"


class DecoderNotFoundError(DecoderError):
    code = "decoder_not_found"


class UnsupportedAudioFormatError(DecoderError, ValueError):
    code = "unsupported_format"
