"""
Biometric Result Types
Output snapshot of the unified biometric processor
"""

from dataclasses import dataclass, asdict
from enum import Enum


class HRSource(str, Enum):
    """Which channel or method produced the heart rate"""
    IR = 'ir'  # Primary: infrared peak detection
    GREEN = 'green'  # Fallback: green peak detection
    FFT = 'fft'  # Frequency-domain estimate
    UNAVAILABLE = 'unavailable'


class ActivityType(str, Enum):
    """Activity classification of the current sample"""
    STATIONARY = 'stationary'
    CLENCHING = 'clenching'
    GRINDING = 'grinding'
    MOTION = 'motion'


class ProcessingMethod(str, Enum):
    REALTIME = 'realtime'
    BATCH = 'batch'


class SignalStrength(str, Enum):
    """Signal strength derived from the perfusion index"""
    NONE = 'none'  # PI < 0.05%
    WEAK = 'weak'  # PI 0.05% - 0.2%
    MODERATE = 'moderate'  # PI 0.2% - 0.5%
    STRONG = 'strong'  # PI > 0.5%

    @classmethod
    def from_perfusion_index(cls, perfusion_index: float) -> 'SignalStrength':
        if perfusion_index < 0.0005:
            return cls.NONE
        if perfusion_index < 0.002:
            return cls.WEAK
        if perfusion_index < 0.005:
            return cls.MODERATE
        return cls.STRONG


@dataclass(frozen=True)
class BiometricResult:
    """
    Best-effort biometric snapshot.

    Zero values are valid, expected states: heart_rate == 0 means not yet
    determinable and spo2 == 0 means unavailable or out of physiological
    bounds.
    """

    heart_rate: int
    heart_rate_quality: float
    heart_rate_source: HRSource
    spo2: float
    spo2_quality: float
    perfusion_index: float
    is_worn: bool
    activity: ActivityType
    motion_level: float
    signal_strength: SignalStrength
    processing_method: ProcessingMethod

    @classmethod
    def empty(
            cls,
            activity: ActivityType = ActivityType.STATIONARY,
            motion_level: float = 0.0,
            processing_method: ProcessingMethod = ProcessingMethod.REALTIME
    ) -> 'BiometricResult':
        """Result used while no valid estimate can be produced."""
        return cls(
            heart_rate=0,
            heart_rate_quality=0.0,
            heart_rate_source=HRSource.UNAVAILABLE,
            spo2=0.0,
            spo2_quality=0.0,
            perfusion_index=0.0,
            is_worn=False,
            activity=activity,
            motion_level=motion_level,
            signal_strength=SignalStrength.NONE,
            processing_method=processing_method,
        )

    def to_dict(self) -> dict:
        result = asdict(self)
        for key in ('heart_rate_source', 'activity', 'signal_strength', 'processing_method'):
            result[key] = result[key].value
        return result
