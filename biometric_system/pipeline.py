"""
Biometric System - Stream Pipeline
==================================
Central module that owns every processor for one wearable stream.

Usage:
    pipeline = BiometricPipeline(PipelineConfig.for_sample_rate(50.0), clock)
    for sample in transport:
        result = pipeline.push(sample)
    summary = pipeline.analyze()

Components managed:
    - UnifiedBiometricProcessor : HR, SpO2, perfusion, activity per sample
    - PulseMorphologyAnalyzer   : beats from the morphology channel window
    - HRVAnalyzer               : RR intervals and variability biomarkers

Data flow:
    sample -> processor (BiometricResult)
           -> morphology window -> beats -> new peak times -> HRV history
"""

import logging
import math
import threading
from dataclasses import dataclass, field, asdict
from typing import Iterable, List, Optional

import numpy as np
from scipy import ndimage

from biometric_system.analysis.biometric import BiometricConfig, BiometricResult, UnifiedBiometricProcessor
from biometric_system.analysis.hrv import HRVAnalyzer, HRVConfig
from biometric_system.analysis.morphology import Beat, PulseMorphologyAnalyzer, PulseMorphologyConfig
from biometric_system.core import CentralClock, RollingWindow, Sample

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# PPG channels accepted for beat detection
# ---------------------------------------------------------------------------
MORPHOLOGY_CHANNELS = ('ir', 'red', 'green')


@dataclass
class PipelineConfig:
    """
    Configuration for one stream pipeline.

    Groups the per-component configs with the windowing of the beat
    detection stage.
    """

    biometric: BiometricConfig = field(default_factory=BiometricConfig)
    morphology: PulseMorphologyConfig = field(default_factory=PulseMorphologyConfig)
    hrv: HRVConfig = field(default_factory=HRVConfig)

    morphology_channel: str = 'green'  # Best pulse morphology on the wrist/cheek devices
    morphology_window_seconds: float = 10.0
    analysis_interval_seconds: float = 1.0  # How often beat detection runs
    ir_dc_window_seconds: float = 5.0  # Rolling IR baseline attached to each beat

    def __post_init__(self):
        if self.morphology_channel not in MORPHOLOGY_CHANNELS:
            raise ValueError(
                f"morphology_channel must be one of {MORPHOLOGY_CHANNELS}, got {self.morphology_channel!r}"
            )
        if self.morphology_window_seconds <= 0:
            raise ValueError(f"morphology_window_seconds must be positive, got {self.morphology_window_seconds}")
        if self.analysis_interval_seconds <= 0:
            raise ValueError(f"analysis_interval_seconds must be positive, got {self.analysis_interval_seconds}")

    @property
    def sample_rate(self) -> float:
        return self.biometric.sample_rate

    @property
    def morphology_window_size(self) -> int:
        return max(3, int(self.sample_rate * self.morphology_window_seconds))

    @property
    def analysis_interval_samples(self) -> int:
        return max(1, int(round(self.sample_rate * self.analysis_interval_seconds)))

    @property
    def ir_dc_window_size(self) -> int:
        return max(1, int(self.sample_rate * self.ir_dc_window_seconds))

    @classmethod
    def for_sample_rate(cls, sample_rate: float) -> 'PipelineConfig':
        """
        Create a pipeline configuration for a given device rate.

        Args:
            sample_rate: Device sampling rate in Hz

        Returns:
            PipelineConfig whose biometric stage runs at sample_rate
        """
        return cls(biometric=BiometricConfig(sample_rate=sample_rate))


@dataclass(frozen=True)
class PulseAnalysisResult:
    """
    Combined pulse snapshot: morphology, heart rate and HRV

    Optional fields are None when the metric is not yet available.
    """

    timestamp: float
    window_seconds: float

    # Pulse morphology
    beat_count: int
    avg_rise_time_ms: Optional[float]
    avg_fall_time_ms: Optional[float]
    avg_symmetry_ratio: Optional[float]
    morphology_quality: float

    # Heart rate
    heart_rate_bpm: Optional[int]
    hr_confidence: float

    # HRV
    sdnn_ms: Optional[float]
    rmssd_ms: Optional[float]
    svd_s1: Optional[float]
    svd_ratio: Optional[float]
    rr_count: int = 0

    @property
    def overall_quality(self) -> float:
        """Mean of the morphology and HR quality scores that are present."""
        scores = [score for score in (self.morphology_quality, self.hr_confidence) if score > 0]
        return sum(scores) / len(scores) if scores else 0.0

    @property
    def is_valid_for_positioning(self) -> bool:
        # Either a heart rate or convincing morphology
        return (self.heart_rate_bpm or 0) > 0 or self.morphology_quality > 0.5

    @property
    def suggests_bruxism(self) -> Optional[bool]:
        """High SVD regularity ratio; None until the biomarker exists."""
        if self.svd_ratio is None:
            return None
        return self.svd_ratio > 5.0

    def to_dict(self) -> dict:
        result = asdict(self)
        result['overall_quality'] = self.overall_quality
        result['is_valid_for_positioning'] = self.is_valid_for_positioning
        return result


class BiometricPipeline:
    """
    Owns the processors for a single wearable stream.

    Responsibilities:
      - Feed every sample to the unified biometric processor
      - Keep a window of the morphology channel with sample timestamps
      - Periodically detect beats and forward new peak times to HRV
      - Provide combined analysis, status and an atomic reset()
    """

    def __init__(self, config: Optional[PipelineConfig] = None, clock: Optional[CentralClock] = None):
        """
        Args:
            config : Pipeline configuration (defaults to 50 Hz, green morphology)
            clock  : Shared CentralClock used to stamp untimed samples and as
                     the HRV analyzer's time reference
        """
        self.config = config if config else PipelineConfig()
        self.clock = clock if clock else CentralClock()
        self._lock = threading.RLock()

        self.processor = UnifiedBiometricProcessor(self.config.biometric)
        self.morphology = PulseMorphologyAnalyzer(self.config.sample_rate, self.config.morphology)
        self.hrv = HRVAnalyzer(self.config.hrv, clock=self.clock)

        window_size = self.config.morphology_window_size
        self._signal_window = RollingWindow(window_size)
        self._ir_window = RollingWindow(window_size)
        self._time_window = RollingWindow(window_size)

        self._samples_since_analysis = 0
        self._sample_count = 0
        self._dropped_count = 0
        self._last_forwarded_peak: Optional[float] = None
        self._latest_result: Optional[BiometricResult] = None
        self._latest_beats: List[Beat] = []

        logger.info(f"BiometricPipeline created: {self.config.sample_rate} Hz, "
                    f"morphology on {self.config.morphology_channel} "
                    f"({self.config.morphology_window_seconds}s window)")

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    @property
    def latest_result(self) -> Optional[BiometricResult]:
        with self._lock:
            return self._latest_result

    @property
    def latest_beats(self) -> List[Beat]:
        with self._lock:
            return list(self._latest_beats)

    def push(self, sample: Sample) -> BiometricResult:
        """
        Process one sample through every stage

        Args:
            sample: Sensor sample; untimed samples are stamped with the clock

        Returns:
            BiometricResult from the unified processor
        """
        with self._lock:
            timestamp = sample.timestamp if sample.timestamp is not None else self.clock.now()

            result = self.processor.process_sample(sample)
            self._latest_result = result
            self._sample_count += 1

            if not sample.is_finite or not math.isfinite(timestamp):
                self._dropped_count += 1
                return result

            self._signal_window.append(sample.channel(self.config.morphology_channel))
            self._ir_window.append(sample.ir)
            self._time_window.append(timestamp)

            self._samples_since_analysis += 1
            if self._samples_since_analysis >= self.config.analysis_interval_samples:
                self._samples_since_analysis = 0
                self._detect_and_forward()

            return result

    def push_batch(self, samples: Iterable[Sample]) -> Optional[BiometricResult]:
        """
        Push samples in order.

        Returns:
            Result of the last sample, or None for an empty batch
        """
        result = None
        with self._lock:
            for sample in samples:
                result = self.push(sample)
        return result

    def analyze(self) -> PulseAnalysisResult:
        """
        Combine morphology, heart rate and HRV into one snapshot

        The HRV window ends at the newest sample so replayed or historical
        streams are analysed on their own time base.
        """
        with self._lock:
            summary = self.morphology.summarize(self._latest_beats)

            end_time = self._time_window.last
            if end_time is None:
                end_time = self.clock.now()
            hrv = self.hrv.analyze_window(end_time=end_time)

            heart_rate = None
            hr_confidence = 0.0
            if self._latest_result is not None and self._latest_result.heart_rate > 0:
                heart_rate = self._latest_result.heart_rate
                hr_confidence = self._latest_result.heart_rate_quality

            return PulseAnalysisResult(
                timestamp=end_time,
                window_seconds=self.config.morphology_window_seconds,
                beat_count=summary['beat_count'],
                avg_rise_time_ms=summary['avg_rise_time_ms'],
                avg_fall_time_ms=summary['avg_fall_time_ms'],
                avg_symmetry_ratio=summary['avg_symmetry_ratio'],
                morphology_quality=summary['morphology_quality'],
                heart_rate_bpm=heart_rate,
                hr_confidence=hr_confidence,
                sdnn_ms=hrv.sdnn_ms if hrv.sdnn_ready else None,
                rmssd_ms=hrv.rmssd_ms if hrv.rmssd_ready else None,
                svd_s1=hrv.svd_s1,
                svd_ratio=hrv.svd_ratio,
                rr_count=hrv.rr_count,
            )

    def reset(self):
        """
        Wipe every component and window.

        Call when the device reconnects or a new session starts.
        """
        with self._lock:
            self.processor.reset()
            self.hrv.reset()
            self._signal_window.clear()
            self._ir_window.clear()
            self._time_window.clear()
            self._samples_since_analysis = 0
            self._sample_count = 0
            self._dropped_count = 0
            self._last_forwarded_peak = None
            self._latest_result = None
            self._latest_beats = []
            logger.info("✓ Biometric pipeline reset")

    def get_status(self) -> dict:
        """
        Return a summary of pipeline state for logging / UI display.
        """
        with self._lock:
            return {
                'sample_rate'       : self.config.sample_rate,
                'morphology_channel': self.config.morphology_channel,
                'samples_processed' : self._sample_count,
                'samples_dropped'   : self._dropped_count,
                'window_fill'       : self.processor.window_fill,
                'beats_in_window'   : len(self._latest_beats),
                'hrv_peak_count'    : self.hrv.peak_count,
                'last_peak_time'    : self._last_forwarded_peak,
                'latest_result'     : self._latest_result.to_dict() if self._latest_result else None,
            }

    # -----------------------------------------------------------------------
    # Private - beat detection and HRV forwarding
    # -----------------------------------------------------------------------

    def _detect_and_forward(self):
        segment = self._signal_window.values()
        times = self._time_window.values()

        beats = self.morphology.detect_beats(
            segment,
            timestamps=times,
            ir_dc_values=self._ir_dc_values(),
        )
        self._latest_beats = beats

        # Successive windows overlap; a peak already forwarded reappears at
        # (nearly) the same time
        min_gap = 0.5 * self.morphology.min_peak_distance_seconds
        forwarded = 0
        for beat in beats:
            # Beat still falling at the window edge
            if beat.offset_index >= len(segment) - 1:
                continue
            if self._last_forwarded_peak is not None and beat.peak_time <= self._last_forwarded_peak + min_gap:
                continue

            self.hrv.add_peak_time(beat.peak_time)
            self._last_forwarded_peak = beat.peak_time
            forwarded += 1

        if forwarded:
            logger.debug(f"Forwarded {forwarded} new peaks to HRV ({len(beats)} beats in window)")

    def _ir_dc_values(self) -> Optional[np.ndarray]:
        ir_values = self._ir_window.values()
        if len(ir_values) == 0:
            return None

        size = min(len(ir_values), self.config.ir_dc_window_size)
        return ndimage.uniform_filter1d(ir_values, size=size, mode='nearest')

    # -----------------------------------------------------------------------
    # Dunder helpers
    # -----------------------------------------------------------------------

    def __repr__(self):
        return (
            f"<BiometricPipeline("
            f"rate={self.config.sample_rate}Hz, "
            f"channel={self.config.morphology_channel}, "
            f"samples={self._sample_count})>"
        )
