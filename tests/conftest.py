import numpy as np
import pytest


def _sine(frequency_hz: float, amplitude: float, duration_s: float, sample_rate: int, channels: int) -> np.ndarray:
    t = np.arange(int(round(sample_rate * duration_s))) / sample_rate
    tone = amplitude * np.sin(2 * np.pi * frequency_hz * t)
    return np.tile(tone, (channels, 1))


@pytest.fixture
def sine():
    return _sine


@pytest.fixture
def noise():
    rng = np.random.default_rng(1770)

    def _noise(amplitude: float, duration_s: float, sample_rate: int, channels: int) -> np.ndarray:
        frames = int(round(sample_rate * duration_s))
        return amplitude * rng.uniform(-1.0, 1.0, size=(channels, frames))

    return _noise
