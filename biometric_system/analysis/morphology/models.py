"""
Pulse Beat Model
Features extracted from a single detected heartbeat
"""

from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class Beat:
    """
    One detected pulse

    Indices refer to the analysed segment. Rise time runs onset -> peak and
    fall time peak -> offset; both are strictly positive for every beat the
    analyzer emits.
    """

    onset_index: int
    peak_index: int
    offset_index: int

    rise_time_seconds: float
    fall_time_seconds: float

    peak_amplitude: float
    onset_amplitude: float

    onset_time: float
    peak_time: float
    offset_time: float

    ir_dc: Optional[float] = None  # IR baseline at the peak, when supplied

    @property
    def rise_time_ms(self) -> float:
        return self.rise_time_seconds * 1000.0

    @property
    def fall_time_ms(self) -> float:
        return self.fall_time_seconds * 1000.0

    @property
    def symmetry_ratio(self) -> float:
        """Rise time / fall time (healthy resting pulse: ~0.3 - 0.5)"""
        if self.fall_time_seconds <= 0:
            return 0.0
        return self.rise_time_seconds / self.fall_time_seconds

    @property
    def duration_seconds(self) -> float:
        return self.rise_time_seconds + self.fall_time_seconds

    @property
    def instantaneous_bpm(self) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        return 60.0 / self.duration_seconds

    @property
    def pulse_amplitude(self) -> float:
        return self.peak_amplitude - self.onset_amplitude

    @property
    def has_valid_timing(self) -> bool:
        """
        Whether this beat has physiologically plausible timing.

        Rise 50-200 ms, fall 150-500 ms, symmetry 0.1-1.0 (rise faster than fall).
        """
        if not 50.0 <= self.rise_time_ms <= 200.0:
            return False
        if not 150.0 <= self.fall_time_ms <= 500.0:
            return False
        return 0.1 <= self.symmetry_ratio <= 1.0

    @property
    def morphology_quality(self) -> float:
        """
        Morphology score (0.0 - 1.0)

        Rise time: 0.3 for 80-150 ms, 0.15 for 50-200 ms
        Fall time: 0.3 for 200-400 ms, 0.15 for 150-500 ms
        Symmetry: 0.4 for 0.3-0.5, 0.2 for 0.2-0.7
        """
        score = 0.0

        rise_ms = self.rise_time_ms
        if 80.0 <= rise_ms <= 150.0:
            score += 0.3
        elif 50.0 <= rise_ms <= 200.0:
            score += 0.15

        fall_ms = self.fall_time_ms
        if 200.0 <= fall_ms <= 400.0:
            score += 0.3
        elif 150.0 <= fall_ms <= 500.0:
            score += 0.15

        symmetry = self.symmetry_ratio
        if 0.3 <= symmetry <= 0.5:
            score += 0.4
        elif 0.2 <= symmetry <= 0.7:
            score += 0.2

        return min(1.0, score)

    def to_dict(self) -> dict:
        result = asdict(self)
        result['rise_time_ms'] = self.rise_time_ms
        result['fall_time_ms'] = self.fall_time_ms
        result['symmetry_ratio'] = self.symmetry_ratio
        result['morphology_quality'] = self.morphology_quality
        return result
