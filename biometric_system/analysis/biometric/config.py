"""
Biometric Processor Configuration
Heart rate, SpO2 and motion estimation parameters
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass
class BiometricConfig:
    """
    Configuration parameters for the unified biometric processor.

    Controls sampling rate, analysis window length, quality thresholds,
    physiological bounds and the SpO2 calibration curve.
    """

    # Sampling settings
    sample_rate: float = 50.0  # Hz, must match the device

    # Window sizes in seconds
    hr_window_seconds: float = 3.0
    spo2_window_seconds: float = 3.0

    # Quality thresholds
    min_perfusion_index: float = 0.001  # For worn detection
    min_hr_quality: float = 0.5  # For valid HR output
    min_signal_std: float = 1.0  # Raw counts; flatter windows give no peak estimate

    # Accelerometer settings
    accel_one_g: float = 16384.0  # LSB/g for ±2g range
    motion_threshold_g: float = 0.15  # Deviation from 1g that counts as motion

    # Activity classifier settings
    activity_history_size: int = 32
    ir_deviation_threshold: float = 5000.0  # Raw IR counts from baseline
    grinding_variance_threshold: float = 1000.0
    baseline_adapt_rate: float = 0.05

    # Motion compensation (LMS) settings
    lms_history_size: int = 32
    lms_learning_rate: float = 0.01
    lms_variance_threshold: float = 1.0
    lms_dampening: float = 0.01
    lms_dc_alpha: float = 0.02  # Running DC estimate removed before filtering

    # Physiological bounds
    min_bpm: float = 40.0
    max_bpm: float = 180.0
    min_spo2: float = 70.0
    max_spo2: float = 100.0
    min_r_value: float = 0.4
    max_r_value: float = 3.4

    # Heart rate estimation
    fft_min_size: int = 1024  # Zero-padding target for frequency resolution
    fft_override_bpm: float = 15.0  # Peak/FFT disagreement that hands over to FFT
    peak_prominence_factor: float = 0.5  # Multiplier on window std dev

    # SpO2 = a*R^2 + b*R + c (empirical calibration, replaceable per device)
    spo2_calibration: Tuple[float, float, float] = (-45.060, 30.354, 94.845)

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.hr_window_seconds <= 0 or self.spo2_window_seconds <= 0:
            raise ValueError("Window lengths must be positive")
        if self.min_bpm >= self.max_bpm:
            raise ValueError(f"min_bpm ({self.min_bpm}) must be below max_bpm ({self.max_bpm})")
        if self.min_r_value >= self.max_r_value:
            raise ValueError("min_r_value must be below max_r_value")
        if self.accel_one_g <= 0:
            raise ValueError(f"accel_one_g must be positive, got {self.accel_one_g}")

    @property
    def hr_window_size(self) -> int:
        """
        Calculate the heart rate window size in samples.

        Returns:
            Number of samples in one heart rate analysis window.
        """
        return int(self.sample_rate * self.hr_window_seconds)

    @property
    def spo2_window_size(self) -> int:
        return int(self.sample_rate * self.spo2_window_seconds)

    @property
    def window_capacity(self) -> int:
        """Capacity shared by every channel window."""
        return max(self.hr_window_size, self.spo2_window_size)

    @classmethod
    def for_oralable(cls) -> 'BiometricConfig':
        """
        Create a configuration for the 50 Hz Oralable device.

        Returns:
            BiometricConfig with sample_rate=50.
        """
        return cls(sample_rate=50.0)

    @classmethod
    def for_anr(cls) -> 'BiometricConfig':
        """
        Create a configuration for the 100 Hz ANR muscle-sense device.

        Returns:
            BiometricConfig with sample_rate=100.
        """
        return cls(sample_rate=100.0)
