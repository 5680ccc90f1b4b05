"""
Biometric Analysis
Signal processing components for one wearable PPG + accelerometer stream

Available Components:
- Biometric: Heart rate, SpO2, perfusion and activity per sample
- Morphology: Beat detection with rise/fall timing features
- HRV: RR intervals, SDNN, RMSSD and SVD embedding biomarkers
"""

from .biometric import (
    UnifiedBiometricProcessor,
    BiometricConfig,
    BiometricResult,
    ActivityType,
    HRSource,
    ProcessingMethod,
    SignalStrength,
)
from .morphology import PulseMorphologyAnalyzer, PulseMorphologyConfig, Beat
from .hrv import HRVAnalyzer, HRVConfig, HRVResult, SVDBiomarker

__all__ = [
    # Unified biometric processor
    'UnifiedBiometricProcessor',
    'BiometricConfig',
    'BiometricResult',
    'ActivityType',
    'HRSource',
    'ProcessingMethod',
    'SignalStrength',

    # Pulse morphology
    'PulseMorphologyAnalyzer',
    'PulseMorphologyConfig',
    'Beat',

    # Heart rate variability
    'HRVAnalyzer',
    'HRVConfig',
    'HRVResult',
    'SVDBiomarker',
]

__version__ = '1.0.0'
