"""
Pulse Morphology Configuration
Beat detection and shape extraction parameters
"""

from dataclasses import dataclass


@dataclass
class PulseMorphologyConfig:
    """
    Configuration parameters for pulse beat detection.

    Band-pass settings shape the waveform before peak search; the distance
    and prominence settings decide which maxima count as beats.
    """

    # Peak detection
    min_peak_distance_seconds: float = 0.4  # 150 bpm max between accepted peaks
    prominence_multiplier: float = 0.5  # Multiplier on filtered signal std dev

    # Band-pass filter (Butterworth, zero-phase)
    bandpass_low_hz: float = 0.5
    bandpass_high_hz: float = 8.0
    filter_order: int = 4

    # Onset/offset search reach when there is no neighbouring peak
    edge_search_seconds: float = 0.8

    # Noise floor
    min_signal_std: float = 1e-6  # Flatter signals have no beats
    min_periodicity: float = 0.5  # Normalised autocorrelation in the RR lag band

    # RR lag band used by the periodicity check
    min_rr_seconds: float = 0.33
    max_rr_seconds: float = 1.5

    def __post_init__(self):
        if self.min_peak_distance_seconds <= 0:
            raise ValueError(
                f"min_peak_distance_seconds must be positive, got {self.min_peak_distance_seconds}"
            )
        if self.bandpass_low_hz <= 0 or self.bandpass_low_hz >= self.bandpass_high_hz:
            raise ValueError("Band-pass cut-offs must satisfy 0 < low < high")
        if self.filter_order < 1:
            raise ValueError(f"filter_order must be at least 1, got {self.filter_order}")
