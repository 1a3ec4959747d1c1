import logging
import math

import numpy as np
import pytest

from lufs_meter.errors import (
    ChannelCountMismatchError,
    InvalidChannelCountError,
    InvalidSampleRateError,
    InvalidStateTransitionError,
    MalformedBufferError,
)
from lufs_meter.gating import gate_blocks
from lufs_meter.meter import LoudnessMeter, MeterState, measure_integrated_lufs
from lufs_meter.utils.config import MeterConfig


def _measure(audio: np.ndarray, sample_rate: int, chunk_sizes=None) -> float:
    meter = LoudnessMeter()
    meter.prepare(sample_rate, audio.shape[0])
    meter.start_integrated()
    if chunk_sizes is None:
        meter.process_buffer(audio)
    else:
        position = 0
        for size in chunk_sizes:
            meter.process_buffer(audio[:, position : position + size])
            position += size
        assert position >= audio.shape[1]
    meter.stop_integrated()
    return meter.integrated_loudness


def _prepared(sample_rate: int = 48_000, channels: int = 2) -> LoudnessMeter:
    meter = LoudnessMeter()
    meter.prepare(sample_rate, channels)
    return meter


def test_full_scale_1khz_mono_sine_reads_minus_3_01(sine):
    audio = sine(1_000.0, 1.0, 5.0, 48_000, 1)

    assert _measure(audio, 48_000) == pytest.approx(-3.01, abs=0.1)


@pytest.mark.parametrize("level_dbfs", [-23.0, -33.0])
def test_ebu_stereo_sine_reads_its_level(sine, level_dbfs):
    audio = sine(1_000.0, 10.0 ** (level_dbfs / 20.0), 20.0, 48_000, 2)

    assert _measure(audio, 48_000) == pytest.approx(level_dbfs, abs=0.1)


def test_calibration_holds_at_44_1k(sine):
    audio = sine(1_000.0, 10.0 ** (-23.0 / 20.0), 10.0, 44_100, 2)

    assert _measure(audio, 44_100) == pytest.approx(-23.0, abs=0.1)


def test_result_is_independent_of_chunking(noise):
    audio = noise(0.2, 3.0, 48_000, 2)
    rng = np.random.default_rng(42)
    sizes = []
    while sum(sizes) < audio.shape[1]:
        sizes.append(int(rng.integers(1, 10_000)))

    single = _measure(audio, 48_000)

    assert _measure(audio, 48_000, sizes) == pytest.approx(single, rel=1e-9, abs=1e-9)
    assert _measure(audio, 48_000, [4_800] * 30) == pytest.approx(single, rel=1e-9, abs=1e-9)


def test_tiny_chunks_match_single_buffer(noise):
    audio = noise(0.3, 0.6, 8_000, 1)

    single = _measure(audio, 8_000)

    assert _measure(audio, 8_000, [37] * 130) == pytest.approx(single, rel=1e-9, abs=1e-9)


@pytest.mark.parametrize("duration_s", [0.0, 0.1, 2.0])
def test_silence_reports_negative_infinity(duration_s):
    audio = np.zeros((2, int(48_000 * duration_s)))

    loudness = _measure(audio, 48_000)

    assert loudness == -math.inf
    assert not math.isnan(loudness)


def test_clip_shorter_than_one_block_reports_negative_infinity(sine):
    audio = sine(1_000.0, 0.5, 0.39, 48_000, 2)

    assert _measure(audio, 48_000) == -math.inf


def test_partial_trailing_block_is_discarded(sine):
    meter = _prepared(48_000, 1)
    meter.start_integrated()
    meter.process_buffer(sine(1_000.0, 0.5, 0.45, 48_000, 1))

    result = meter.stop_integrated()

    assert result.total_blocks == 1
    assert meter.session.block_count == 1
    assert meter.session.frames_processed == 21_600


def test_one_dimensional_buffer_is_a_single_channel(sine):
    audio = sine(1_000.0, 0.5, 1.0, 48_000, 1)
    meter = _prepared(48_000, 1)
    meter.start_integrated()

    meter.process_buffer(audio[0])
    meter.stop_integrated()

    assert meter.integrated_loudness == pytest.approx(_measure(audio, 48_000))


def test_nested_lists_are_accepted():
    tone = [0.5 * math.sin(2 * math.pi * 440.0 * n / 8_000) for n in range(3_200)]
    meter = _prepared(8_000, 2)
    meter.start_integrated()

    meter.process_buffer([tone, [0.5 * sample for sample in tone]])
    meter.stop_integrated()

    assert math.isfinite(meter.integrated_loudness)


def test_sessions_are_isolated(noise, sine):
    loud = noise(0.5, 2.0, 48_000, 2)
    quiet = sine(440.0, 0.05, 2.0, 48_000, 2)
    meter = _prepared()

    meter.start_integrated()
    meter.process_buffer(loud)
    meter.stop_integrated()
    first = meter.integrated_loudness

    meter.start_integrated()
    meter.process_buffer(quiet)
    meter.stop_integrated()
    second = meter.integrated_loudness

    assert first == pytest.approx(_measure(loud, 48_000), rel=1e-12)
    assert second == pytest.approx(_measure(quiet, 48_000), rel=1e-12)
    assert first > second


def test_start_integrated_clears_previous_result(noise):
    meter = _prepared()
    meter.start_integrated()
    meter.process_buffer(noise(0.5, 1.0, 48_000, 2))
    meter.stop_integrated()

    meter.start_integrated()

    with pytest.raises(InvalidStateTransitionError):
        _ = meter.integrated_loudness


def test_initial_state_is_idle():
    meter = LoudnessMeter()

    assert meter.state is MeterState.IDLE
    assert meter.sample_rate_hz is None


def test_process_before_start_is_rejected_without_side_effects():
    meter = _prepared()

    with pytest.raises(InvalidStateTransitionError):
        meter.process_buffer(np.zeros((2, 100)))

    assert meter.state is MeterState.PREPARED
    assert meter.session is None


def test_process_on_idle_meter_is_rejected():
    with pytest.raises(InvalidStateTransitionError):
        LoudnessMeter().process_buffer(np.zeros((2, 100)))


def test_result_before_stop_is_rejected(noise):
    meter = _prepared()
    with pytest.raises(InvalidStateTransitionError):
        _ = meter.integrated_loudness

    meter.start_integrated()
    meter.process_buffer(noise(0.5, 1.0, 48_000, 2))
    with pytest.raises(InvalidStateTransitionError):
        _ = meter.integrated_loudness

    assert meter.state is MeterState.INTEGRATING
    assert meter.session.frames_processed == 48_000


def test_start_before_prepare_is_rejected():
    with pytest.raises(InvalidStateTransitionError):
        LoudnessMeter().start_integrated()


def test_stop_without_session_is_rejected():
    with pytest.raises(InvalidStateTransitionError):
        _prepared().stop_integrated()


def test_prepare_while_integrating_is_rejected():
    meter = _prepared()
    meter.start_integrated()

    with pytest.raises(InvalidStateTransitionError):
        meter.prepare(44_100, 2)

    assert meter.state is MeterState.INTEGRATING
    assert meter.sample_rate_hz == 48_000


def test_invalid_sample_rate_returns_meter_to_idle():
    meter = _prepared()

    with pytest.raises(InvalidSampleRateError):
        meter.prepare(500, 2)

    assert meter.state is MeterState.IDLE
    with pytest.raises(InvalidStateTransitionError):
        meter.start_integrated()


@pytest.mark.parametrize("sample_rate", [1_000, 2_000, 3_000])
def test_rates_below_twice_the_shelf_corner_are_rejected(sample_rate):
    permissive = LoudnessMeter(MeterConfig(min_sample_rate_hz=1_000))

    with pytest.raises(InvalidSampleRateError):
        LoudnessMeter().prepare(sample_rate, 2)
    with pytest.raises(InvalidSampleRateError):
        permissive.prepare(sample_rate, 2)

    assert permissive.state is MeterState.IDLE


def test_invalid_channel_count_is_rejected():
    with pytest.raises(InvalidChannelCountError):
        LoudnessMeter().prepare(48_000, 0)


def test_reprepare_derives_new_coefficients():
    meter = _prepared(48_000, 2)
    first = meter.coefficients

    meter.prepare(44_100, 2)

    assert meter.coefficients.sample_rate_hz == 44_100
    assert meter.coefficients != first


def test_sample_rate_range_comes_from_config():
    meter = LoudnessMeter(MeterConfig(min_sample_rate_hz=8_000, max_sample_rate_hz=96_000))

    with pytest.raises(InvalidSampleRateError):
        meter.prepare(192_000, 2)


def test_channel_count_mismatch_ends_the_session():
    meter = _prepared(48_000, 2)
    meter.start_integrated()
    meter.process_buffer(np.zeros((2, 100)))

    with pytest.raises(ChannelCountMismatchError):
        meter.process_buffer(np.zeros((1, 100)))

    assert meter.state is MeterState.PREPARED
    assert meter.session is None
    with pytest.raises(InvalidStateTransitionError):
        meter.process_buffer(np.zeros((2, 100)))


@pytest.mark.parametrize(
    "samples",
    [
        [[0.1, 0.2], [0.3]],
        np.zeros((2, 10, 2)),
        np.array([[0.1, np.nan], [0.0, 0.0]]),
        np.array([[0.1, np.inf], [0.0, 0.0]]),
        [["a", "b"], ["c", "d"]],
    ],
)
def test_malformed_buffers_are_rejected(samples):
    meter = _prepared(48_000, 2)
    meter.start_integrated()

    with pytest.raises(MalformedBufferError):
        meter.process_buffer(samples)

    assert meter.state is MeterState.INTEGRATING
    assert meter.session.frames_processed == 0


def test_progress_callback_reports_estimate_and_fraction(sine):
    audio = sine(1_000.0, 10.0 ** (-23.0 / 20.0), 2.0, 48_000, 2)
    calls = []
    meter = _prepared()
    meter.start_integrated(expected_frames=audio.shape[1])

    for start in range(0, audio.shape[1], 24_000):
        meter.process_buffer(audio[:, start : start + 24_000], lambda lufs, fraction: calls.append((lufs, fraction)))
    meter.stop_integrated()

    assert [fraction for _, fraction in calls] == pytest.approx([0.25, 0.5, 0.75, 1.0])
    assert all(math.isfinite(lufs) for lufs, _ in calls)
    assert calls[-1][0] == pytest.approx(meter.integrated_loudness)


def test_progress_callback_before_first_block_reports_silence():
    calls = []
    meter = _prepared()
    meter.start_integrated()

    meter.process_buffer(np.full((2, 4_800), 0.5), lambda lufs, fraction: calls.append((lufs, fraction)))

    assert calls[0][0] == -math.inf
    assert math.isnan(calls[0][1])


def test_progress_estimate_is_regated_only_when_a_block_completes(noise, monkeypatch):
    gate_calls = []

    def _counting_gate_blocks(*args, **kwargs):
        gate_calls.append(args[0].shape[0])
        return gate_blocks(*args, **kwargs)

    monkeypatch.setattr("lufs_meter.meter.gate_blocks", _counting_gate_blocks)
    audio = noise(0.3, 1.0, 48_000, 2)
    estimates = []
    meter = _prepared()
    meter.start_integrated(expected_frames=audio.shape[1])

    for start in range(0, audio.shape[1], 100):
        meter.process_buffer(audio[:, start : start + 100], lambda lufs, fraction: estimates.append(lufs))

    assert len(estimates) == 480
    assert meter.session.block_count == 7
    assert gate_calls == list(range(8))
    assert estimates[-1] == meter.stop_integrated().integrated_lufs


def test_failing_progress_callback_does_not_corrupt_measurement(noise, caplog):
    audio = noise(0.3, 2.0, 48_000, 2)

    def _explode(lufs, fraction):
        raise RuntimeError("display went away")

    meter = _prepared()
    meter.start_integrated(expected_frames=audio.shape[1])
    with caplog.at_level(logging.WARNING, logger="lufs_meter.meter"):
        for start in range(0, audio.shape[1], 12_000):
            meter.process_buffer(audio[:, start : start + 12_000], _explode)
    meter.stop_integrated()

    assert meter.integrated_loudness == pytest.approx(_measure(audio, 48_000), rel=1e-9)
    assert any(record.getMessage() == "progress_callback_failed" for record in caplog.records)


def test_measure_integrated_lufs_matches_streaming_meter(noise):
    audio = noise(0.4, 1.5, 44_100, 2)

    assert measure_integrated_lufs(audio, 44_100) == pytest.approx(_measure(audio, 44_100, [1_000] * 67))


def test_configured_channel_weights_are_used(sine):
    audio = sine(1_000.0, 0.1, 2.0, 48_000, 2)
    audio[1] = 0.0

    unity = measure_integrated_lufs(audio, 48_000)
    boosted = measure_integrated_lufs(audio, 48_000, MeterConfig(channel_weights=[2.0, 1.0]))

    assert boosted - unity == pytest.approx(10.0 * np.log10(2.0), abs=1e-9)
