"""
Unified Biometric Processing
Heart rate, SpO2, perfusion and activity from streaming PPG + accelerometer samples

Architecture:
- Config: Sample rate, window lengths, physiological bounds, SpO2 calibration
- Activity: Accelerometer motion level, LMS compensation, activity classification
- Processor: Rolling windows and per-sample HR/SpO2 estimation

Operation:
- Real-time: one sample per call at the device rate
- Batch: aligned arrays of historical samples, final result only
"""

from .activity import ActivityClassifier, MotionCompensator
from .config import BiometricConfig
from .models import (
    ActivityType,
    BiometricResult,
    HRSource,
    ProcessingMethod,
    SignalStrength,
)
from .processor import UnifiedBiometricProcessor

__all__ = [
    'UnifiedBiometricProcessor',
    'BiometricConfig',
    'BiometricResult',
    'ActivityType',
    'HRSource',
    'ProcessingMethod',
    'SignalStrength',
    'ActivityClassifier',
    'MotionCompensator',
]

__version__ = '1.0.0'
