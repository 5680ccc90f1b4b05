"""
HRV Analyzer
RR intervals, SDNN, RMSSD and SVD embedding biomarkers from beat peak times
"""

import bisect
import logging
import math
import threading
from typing import Iterable, List, Optional, Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from biometric_system.core import CentralClock

from .config import HRVConfig
from .models import HRVResult, SVDBiomarker

logger = logging.getLogger(__name__)


class HRVAnalyzer:
    """
    Heart rate variability from a bounded history of beat peak times

    Each metric has its own minimum interval count and degrades
    independently: SDNN/RMSSD report 0.0 and the SVD biomarker reports None
    until enough intervals exist.
    """

    def __init__(self, config: Optional[HRVConfig] = None, clock: Optional[CentralClock] = None):
        """
        Initialize HRV analyzer

        Args:
            config: HRV configuration (uses defaults if None)
            clock: Clock used when no analysis end time is given
        """
        self.config = config if config else HRVConfig()
        self.clock = clock if clock else CentralClock()
        self._lock = threading.RLock()
        self._peak_times: List[float] = []

        logger.info(f"HRV Analyzer initialized: embedding dimension {self.config.embedding_dimension}, "
                    f"RR band [{self.config.rr_min_seconds}, {self.config.rr_max_seconds}]s")

    @property
    def peak_count(self) -> int:
        with self._lock:
            return len(self._peak_times)

    def add_peak_time(self, timestamp: float):
        """
        Record one detected beat

        Out-of-order times are inserted in sorted position. Non-finite
        values are ignored.

        Args:
            timestamp: Beat peak time in seconds
        """
        try:
            timestamp = float(timestamp)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric peak time: {timestamp!r}")
            return

        if not math.isfinite(timestamp):
            logger.debug("Ignoring non-finite peak time")
            return

        with self._lock:
            bisect.insort(self._peak_times, timestamp)
            overflow = len(self._peak_times) - self.config.max_peaks
            if overflow > 0:
                del self._peak_times[:overflow]

    def add_beats(self, beats: Iterable):
        """Record the peak time of every beat."""
        with self._lock:
            for beat in beats:
                self.add_peak_time(beat.peak_time)

    def get_rr_intervals(self, start_time: float, end_time: float) -> List[float]:
        """
        RR intervals between peaks inside [start_time, end_time]

        Intervals outside [rr_min_seconds, rr_max_seconds] are dropped.

        Returns:
            List of intervals in seconds (empty with fewer than 2 peaks)
        """
        with self._lock:
            return self._rr_intervals_locked(start_time, end_time)

    def calculate_sdnn(self, intervals: Sequence[float]) -> float:
        """
        Standard deviation of RR intervals (sample, N-1)

        Args:
            intervals: RR intervals in seconds

        Returns:
            SDNN in milliseconds, 0.0 with too few intervals
        """
        if len(intervals) < self.config.min_intervals_sdnn:
            return 0.0

        rr = np.asarray(intervals, dtype=np.float64)
        return float(np.std(rr, ddof=1) * 1000.0)

    def calculate_rmssd(self, intervals: Sequence[float]) -> float:
        """
        Root mean square of successive RR differences

        Args:
            intervals: RR intervals in seconds

        Returns:
            RMSSD in milliseconds, 0.0 with too few intervals
        """
        if len(intervals) < self.config.min_intervals_rmssd:
            return 0.0

        successive_diffs = np.diff(np.asarray(intervals, dtype=np.float64))
        return float(np.sqrt(np.mean(successive_diffs ** 2)) * 1000.0)

    def calculate_svd_biomarker(self, intervals: Sequence[float]) -> SVDBiomarker:
        """
        Singular values of the RR time-delay embedding

        Each embedding row holds embedding_dimension consecutive intervals;
        at least two rows are required.

        Returns:
            SVDBiomarker; fields are None when not computable
        """
        d = self.config.embedding_dimension
        if len(intervals) < d + 1:
            return SVDBiomarker()

        embedding = sliding_window_view(np.asarray(intervals, dtype=np.float64), d)

        try:
            singular_values = np.linalg.svd(embedding, compute_uv=False)
        except np.linalg.LinAlgError as e:
            logger.warning(f"SVD did not converge: {e}")
            return SVDBiomarker()

        s1 = float(singular_values[0])
        s2 = float(singular_values[1]) if len(singular_values) > 1 else None
        ratio = s1 / s2 if s2 is not None and s2 > 1e-10 else None

        return SVDBiomarker(s1=s1, s2=s2, ratio=ratio)

    def analyze_window(self, window_seconds: Optional[float] = None,
                       end_time: Optional[float] = None) -> HRVResult:
        """
        Compute all HRV metrics over a trailing window

        Args:
            window_seconds: Window length (defaults to config.window_seconds)
            end_time: Window end in seconds (defaults to the clock's now)

        Returns:
            HRVResult with per-metric readiness
        """
        window = window_seconds if window_seconds is not None else self.config.window_seconds

        with self._lock:
            end = end_time if end_time is not None else self.clock.now()
            intervals = self._rr_intervals_locked(end - window, end)

        sdnn = self.calculate_sdnn(intervals)
        rmssd = self.calculate_rmssd(intervals)
        svd = self.calculate_svd_biomarker(intervals)

        if intervals:
            logger.debug(f"✓ HRV calculated: {len(intervals)} intervals, "
                         f"SDNN={sdnn:.2f}ms, RMSSD={rmssd:.2f}ms")

        return HRVResult(
            sdnn_ms=sdnn,
            rmssd_ms=rmssd,
            svd_s1=svd.s1,
            svd_ratio=svd.ratio,
            rr_count=len(intervals),
            window_seconds=window,
            min_intervals_sdnn=self.config.min_intervals_sdnn,
            min_intervals_rmssd=self.config.min_intervals_rmssd,
            min_intervals_svd=self.config.min_intervals_svd,
        )

    def reset(self):
        """Clear all peak history."""
        with self._lock:
            self._peak_times.clear()
            logger.info("HRV analyzer reset")

    def _rr_intervals_locked(self, start_time: float, end_time: float) -> List[float]:
        lo = bisect.bisect_left(self._peak_times, start_time)
        hi = bisect.bisect_right(self._peak_times, end_time)
        peaks = self._peak_times[lo:hi]

        if len(peaks) < 2:
            return []

        intervals = np.diff(np.asarray(peaks, dtype=np.float64))
        valid = (intervals >= self.config.rr_min_seconds) & (intervals <= self.config.rr_max_seconds)

        rejected = int(np.count_nonzero(~valid))
        if rejected:
            logger.debug(f"Rejected {rejected} RR intervals outside physiological range")

        return [float(rr) for rr in intervals[valid]]
