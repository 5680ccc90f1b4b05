"""
Pulse Morphology Analyzer
Beat detection and rise/fall timing extraction from a PPG segment
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np
from scipy import signal

from .config import PulseMorphologyConfig
from .models import Beat

logger = logging.getLogger(__name__)


class PulseMorphologyAnalyzer:
    """
    Time-domain beat detector

    Processing steps:
    1. Mean removal and zero-phase Butterworth band-pass
    2. Periodicity check (autocorrelation in the RR lag band)
    3. Peak search with minimum distance and prominence constraints
    4. Onset/offset minima around each peak, rise and fall timing

    Stateless between calls; safe to share across threads.
    """

    def __init__(self, sample_rate: float = 50.0, config: Optional[PulseMorphologyConfig] = None):
        """
        Initialize pulse morphology analyzer

        Args:
            sample_rate: Sampling rate of the analysed segments in Hz
            config: Morphology configuration (uses defaults if None)
        """
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")

        self.sample_rate = float(sample_rate)
        self.config = config if config else PulseMorphologyConfig()
        self._sos = self._design_bandpass()

        logger.info(f"Pulse Morphology Analyzer initialized: {self.sample_rate} Hz, "
                    f"min peak distance {self.config.min_peak_distance_seconds}s")

    @property
    def min_peak_distance_seconds(self) -> float:
        """Minimum time between two accepted peaks."""
        return self.config.min_peak_distance_seconds

    @property
    def min_peak_distance_samples(self) -> int:
        # Tolerance keeps exact products such as 0.4 * 50 from rounding up
        return max(1, int(math.ceil(self.config.min_peak_distance_seconds * self.sample_rate - 1e-9)))

    def _design_bandpass(self) -> Optional[np.ndarray]:
        # Upper cut-off clamped below Nyquist
        high = min(self.config.bandpass_high_hz, 0.45 * self.sample_rate)
        low = self.config.bandpass_low_hz
        if low >= high:
            logger.warning(f"Band-pass disabled: {low} Hz >= {high} Hz at {self.sample_rate} Hz")
            return None

        return signal.butter(
            self.config.filter_order,
            [low, high],
            btype='band',
            fs=self.sample_rate,
            output='sos'
        )

    def detect_beats(
            self,
            ppg_signal: Sequence[float],
            timestamps: Optional[Sequence[float]] = None,
            ir_dc_values: Optional[Sequence[float]] = None
    ) -> List[Beat]:
        """
        Detect beats in a PPG segment

        Args:
            ppg_signal: Raw PPG values (any channel)
            timestamps: Optional per-sample times in seconds (default: index / sample_rate)
            ir_dc_values: Optional per-sample IR baseline attached to each beat

        Returns:
            Beats ordered by peak index. Empty when the segment is too short,
            flat, or has no pulse structure.
        """
        raw = np.asarray(ppg_signal, dtype=np.float64).ravel()
        n = len(raw)

        if n < 3:
            return []

        if not np.all(np.isfinite(raw)):
            logger.debug("Segment contains non-finite values, skipping beat detection")
            return []

        if float(np.std(raw)) <= self.config.min_signal_std:
            return []

        filtered = self._bandpass(raw - np.mean(raw))

        if not self._is_periodic(filtered):
            logger.debug(f"No pulse periodicity in {n}-sample segment")
            return []

        noise_floor = float(np.std(filtered))
        if noise_floor <= self.config.min_signal_std:
            return []

        peaks, _ = signal.find_peaks(
            filtered,
            distance=self.min_peak_distance_samples,
            prominence=noise_floor * self.config.prominence_multiplier
        )

        if len(peaks) < 2:
            return []

        times = self._sample_times(n, timestamps)
        dc_values = None
        if ir_dc_values is not None:
            dc_values = np.asarray(ir_dc_values, dtype=np.float64).ravel()

        edge = max(1, int(round(self.config.edge_search_seconds * self.sample_rate)))
        beats = []

        for i, peak in enumerate(peaks):
            peak = int(peak)
            search_start = int(peaks[i - 1]) if i > 0 else max(0, peak - edge)
            search_end = int(peaks[i + 1]) if i + 1 < len(peaks) else min(n - 1, peak + edge)

            onset = search_start + int(np.argmin(filtered[search_start:peak + 1]))
            offset = peak + int(np.argmin(filtered[peak:search_end + 1]))

            # Peak at a segment edge has no rise or fall
            if not onset < peak < offset:
                continue

            rise_time = float(times[peak] - times[onset])
            fall_time = float(times[offset] - times[peak])
            if rise_time <= 0 or fall_time <= 0:
                logger.debug(f"Skipping beat at index {peak}: non-increasing timestamps")
                continue

            ir_dc = None
            if dc_values is not None and peak < len(dc_values):
                ir_dc = float(dc_values[peak])

            beats.append(Beat(
                onset_index=onset,
                peak_index=peak,
                offset_index=offset,
                rise_time_seconds=rise_time,
                fall_time_seconds=fall_time,
                peak_amplitude=float(raw[peak]),
                onset_amplitude=float(raw[onset]),
                onset_time=float(times[onset]),
                peak_time=float(times[peak]),
                offset_time=float(times[offset]),
                ir_dc=ir_dc,
            ))

        logger.debug(f"Detected {len(beats)} beats from {len(peaks)} peaks")
        return beats

    def summarize(self, beats: Sequence[Beat]) -> dict:
        """
        Aggregate morphology over a list of beats

        Returns:
            Dictionary with beat count, average rise/fall times (ms), average
            symmetry ratio and mean morphology quality. Averages are None
            when there are no beats.
        """
        if not beats:
            return {
                'beat_count': 0,
                'avg_rise_time_ms': None,
                'avg_fall_time_ms': None,
                'avg_symmetry_ratio': None,
                'morphology_quality': 0.0,
            }

        return {
            'beat_count': len(beats),
            'avg_rise_time_ms': float(np.mean([b.rise_time_ms for b in beats])),
            'avg_fall_time_ms': float(np.mean([b.fall_time_ms for b in beats])),
            'avg_symmetry_ratio': float(np.mean([b.symmetry_ratio for b in beats])),
            'morphology_quality': float(np.mean([b.morphology_quality for b in beats])),
        }

    def _bandpass(self, centered: np.ndarray) -> np.ndarray:
        if self._sos is None:
            return centered

        padlen = 3 * (2 * len(self._sos) + 1)
        if len(centered) <= padlen:
            return centered

        return signal.sosfiltfilt(self._sos, centered, padlen=padlen)

    def _is_periodic(self, filtered: np.ndarray) -> bool:
        """
        Check for pulse-like periodicity

        The normalised, unbiased autocorrelation must reach min_periodicity
        at some lag inside the RR band. Segments too short to hold a lag of
        min_rr_seconds twice are rejected.
        """
        n = len(filtered)
        min_lag = int(math.ceil(self.config.min_rr_seconds * self.sample_rate))
        max_lag = min(int(math.floor(self.config.max_rr_seconds * self.sample_rate)), n // 2)
        if max_lag < min_lag:
            return False

        centered = filtered - np.mean(filtered)
        energy = float(np.dot(centered, centered))
        if energy <= 0:
            return False

        correlation = signal.correlate(centered, centered, mode='full')[n - 1:]
        lags = np.arange(min_lag, max_lag + 1)
        unbiased = correlation[lags] / (n - lags)
        normalized = unbiased / (energy / n)

        return float(np.max(normalized)) >= self.config.min_periodicity

    def _sample_times(self, n: int, timestamps: Optional[Sequence[float]]) -> np.ndarray:
        if timestamps is not None:
            times = np.asarray(timestamps, dtype=np.float64).ravel()
            if len(times) >= n:
                return times[:n]
            logger.debug(f"Got {len(times)} timestamps for {n} samples, using sample index timing")

        return np.arange(n, dtype=np.float64) / self.sample_rate
