import json

import pytest

from lufs_meter.utils.config import DecoderKind, MeterConfig, load_meter_config


def test_meter_config_defaults():
    config = MeterConfig()

    assert config.min_sample_rate_hz == 8_000
    assert config.max_sample_rate_hz == 400_000
    assert config.absolute_gate_lufs == -70.0
    assert config.relative_gate_lu == -10.0
    assert config.channel_weights is None
    assert config.decoder is DecoderKind.AUTO


def test_meter_config_rejects_inverted_sample_rate_range():
    with pytest.raises(ValueError):
        MeterConfig(min_sample_rate_hz=96_000, max_sample_rate_hz=48_000)


@pytest.mark.parametrize("weights", [[], [1.0, -0.5]])
def test_meter_config_rejects_invalid_channel_weights(weights):
    with pytest.raises(ValueError):
        MeterConfig(channel_weights=weights)


def test_meter_config_rejects_positive_relative_gate():
    with pytest.raises(ValueError):
        MeterConfig(relative_gate_lu=3.0)


def test_load_meter_config_from_json(tmp_path):
    path = tmp_path / "meter.json"
    path.write_text(json.dumps({"decoder": "ffmpeg", "channel_weights": [1.0, 1.0], "chunk_frames": 4096}))

    config = load_meter_config(path)

    assert config.decoder is DecoderKind.FFMPEG
    assert config.channel_weights == [1.0, 1.0]
    assert config.chunk_frames == 4096


def test_load_meter_config_from_yaml(tmp_path):
    path = tmp_path / "meter.yaml"
    path.write_text("absolute_gate_lufs: -60\nffmpeg_executable: /opt/ffmpeg/bin/ffmpeg\n")

    config = load_meter_config(path)

    assert config.absolute_gate_lufs == -60.0
    assert config.ffmpeg_executable == "/opt/ffmpeg/bin/ffmpeg"


def test_empty_yaml_config_uses_defaults(tmp_path):
    path = tmp_path / "meter.yml"
    path.write_text("")

    assert load_meter_config(path) == MeterConfig()
