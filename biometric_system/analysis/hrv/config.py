"""
HRV Analyzer Configuration
RR interval gating and biomarker parameters
"""

from dataclasses import dataclass


@dataclass
class HRVConfig:
    """
    Configuration parameters for heart rate variability analysis.

    RR bounds correspond to 40-180 bpm; intervals outside them come from
    missed or spurious beats and never reach a metric.
    """

    embedding_dimension: int = 3  # Time-delay embedding for the SVD biomarker
    window_seconds: float = 5.0  # Default trailing analysis window
    max_peaks: int = 100  # Peak history bound, oldest dropped

    # Physiological RR interval bounds
    rr_min_seconds: float = 0.33
    rr_max_seconds: float = 1.5

    # Minimum interval counts per metric
    min_intervals_sdnn: int = 2
    min_intervals_rmssd: int = 2

    def __post_init__(self):
        if self.embedding_dimension < 2:
            raise ValueError(f"embedding_dimension must be at least 2, got {self.embedding_dimension}")
        if self.rr_min_seconds >= self.rr_max_seconds:
            raise ValueError(
                f"rr_min_seconds ({self.rr_min_seconds}) must be below rr_max_seconds ({self.rr_max_seconds})"
            )
        if self.max_peaks < 2:
            raise ValueError(f"max_peaks must be at least 2, got {self.max_peaks}")
        if self.window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {self.window_seconds}")
        if self.min_intervals_sdnn < 2 or self.min_intervals_rmssd < 2:
            raise ValueError("SDNN and RMSSD need at least 2 intervals")

    @property
    def min_intervals_svd(self) -> int:
        """An embedding needs at least two rows."""
        return self.embedding_dimension + 1
