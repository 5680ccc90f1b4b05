"""
Biometric System
Real-time signal processing core for a wearable PPG + accelerometer sensor

Components:
- UnifiedBiometricProcessor: Heart rate, SpO2, perfusion and activity per sample
- PulseMorphologyAnalyzer: Beat detection with rise/fall timing features
- HRVAnalyzer: RR intervals, SDNN, RMSSD and SVD embedding biomarkers
- BiometricPipeline: Single-stream orchestration of all three

All processors degrade to zero/None outputs on insufficient or invalid data
instead of raising.
"""

from .analysis import (
    UnifiedBiometricProcessor,
    BiometricConfig,
    BiometricResult,
    ActivityType,
    HRSource,
    ProcessingMethod,
    SignalStrength,
    PulseMorphologyAnalyzer,
    PulseMorphologyConfig,
    Beat,
    HRVAnalyzer,
    HRVConfig,
    HRVResult,
    SVDBiomarker,
)
from .core import CentralClock, RollingWindow, Sample
from .pipeline import BiometricPipeline, PipelineConfig, PulseAnalysisResult

__all__ = [
    # Core
    'Sample',
    'RollingWindow',
    'CentralClock',

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

    # Pipeline
    'BiometricPipeline',
    'PipelineConfig',
    'PulseAnalysisResult',
]

__version__ = '1.0.0'
