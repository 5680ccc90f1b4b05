"""
HRV Result Types
Linear and nonlinear variability biomarkers over an RR interval window
"""

from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class SVDBiomarker:
    """
    Singular values of the RR time-delay embedding

    None means not computable (too few intervals or a degenerate matrix),
    which is distinct from a computed 0.
    """

    s1: Optional[float] = None
    s2: Optional[float] = None
    ratio: Optional[float] = None  # s1 / s2, regularity of the RR sequence

    @property
    def is_available(self) -> bool:
        return self.s1 is not None


@dataclass(frozen=True)
class HRVResult:
    """HRV metrics for one analysis window"""

    sdnn_ms: float
    rmssd_ms: float
    svd_s1: Optional[float]
    svd_ratio: Optional[float]
    rr_count: int
    window_seconds: float

    # Interval counts each metric needs
    min_intervals_sdnn: int = 2
    min_intervals_rmssd: int = 2
    min_intervals_svd: int = 4

    @property
    def sdnn_ready(self) -> bool:
        return self.rr_count >= self.min_intervals_sdnn

    @property
    def rmssd_ready(self) -> bool:
        return self.rr_count >= self.min_intervals_rmssd

    @property
    def svd_ready(self) -> bool:
        return self.svd_s1 is not None

    @property
    def is_valid(self) -> bool:
        return self.rr_count >= 3

    def to_dict(self) -> dict:
        result = asdict(self)
        result['sdnn_ready'] = self.sdnn_ready
        result['rmssd_ready'] = self.rmssd_ready
        result['svd_ready'] = self.svd_ready
        return result
