"""
Pytest Configuration and Fixtures

Shared synthetic PPG / accelerometer signals for biometric core tests.
"""
import numpy as np
import pytest

from biometric_system.analysis.biometric import BiometricConfig
from biometric_system.core import Sample

SAMPLE_RATE = 50.0
HEART_RATE_HZ = 1.2  # 72 bpm
ONE_G = 16384


def pulse_wave(duration: float, fs: float = SAMPLE_RATE, freq: float = HEART_RATE_HZ) -> np.ndarray:
    """Unit pulse shape: fundamental + second harmonic (one peak, one trough per beat)."""
    t = np.arange(int(duration * fs)) / fs
    theta = 2 * np.pi * freq * t
    return np.sin(theta) + 0.3 * np.sin(2 * theta)


def sine_wave(duration: float, fs: float = SAMPLE_RATE, freq: float = HEART_RATE_HZ) -> np.ndarray:
    t = np.arange(int(duration * fs)) / fs
    return np.sin(2 * np.pi * freq * t)


@pytest.fixture
def config() -> BiometricConfig:
    """Default 50 Hz biometric configuration."""
    return BiometricConfig()


@pytest.fixture
def ir_sine_6s() -> np.ndarray:
    """6 seconds of 72 bpm IR signal at 50 Hz."""
    return 50000.0 + 1000.0 * sine_wave(6.0)


@pytest.fixture
def pulse_6s() -> np.ndarray:
    """6 seconds of 72 bpm pulse-shaped signal at 50 Hz."""
    return 20000.0 + 500.0 * pulse_wave(6.0)


@pytest.fixture
def noise_10s() -> np.ndarray:
    """Deterministic pseudo-random noise, 10 seconds at 50 Hz."""
    rng = np.random.default_rng(1234)
    return 20000.0 + 100.0 * rng.standard_normal(500)


@pytest.fixture
def stream_samples():
    """Factory for timestamped pulse samples with a stationary accelerometer."""
    def _make(duration: float, start_time: float = 0.0):
        pulse = pulse_wave(duration)
        return [
            Sample(
                ir=50000.0 + 1000.0 * p,
                red=30000.0 + 300.0 * p,
                green=20000.0 + 500.0 * p,
                accel_x=0,
                accel_y=0,
                accel_z=ONE_G,
                timestamp=start_time + i / SAMPLE_RATE,
            )
            for i, p in enumerate(pulse)
        ]
    return _make
