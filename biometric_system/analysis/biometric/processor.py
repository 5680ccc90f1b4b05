"""
Unified Biometric Processor
HR, SpO2, perfusion and activity estimation from streaming PPG + accelerometer samples
"""

import logging
import math
import threading
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import signal

from biometric_system.core import RollingWindow, Sample

from .activity import ActivityClassifier, MotionCompensator
from .config import BiometricConfig
from .models import (
    ActivityType,
    BiometricResult,
    HRSource,
    ProcessingMethod,
    SignalStrength,
)

logger = logging.getLogger(__name__)


class UnifiedBiometricProcessor:
    """
    Signal processing for one wearable stream

    Per sample:
    - Motion level from accelerometer magnitude (deviation from 1g)
    - LMS motion compensation of each PPG channel
    - Activity classification (stationary / clenching / grinding / motion)
    - Rolling windows of IR, Red, Green and motion level, plus raw IR/Red
      for the AC/DC ratios

    Once the window is full:
    - Heart rate from IR peaks, cross-checked by FFT, with Green and FFT fallbacks
    - SpO2 from the Red/IR ratio of ratios, gated to the physiological R range
    - Perfusion index and worn detection

    All state is guarded by a re-entrant lock; every public call holds it for
    its whole duration, so reset() is never observed half-done.
    """

    def __init__(self, config: Optional[BiometricConfig] = None):
        """
        Initialize unified biometric processor

        Args:
            config: Biometric configuration (defaults to the 50 Hz device)
        """
        self.config = config if config else BiometricConfig()
        self._lock = threading.RLock()

        # Rolling windows for real-time processing
        capacity = self.config.window_capacity
        self.ir_buffer = RollingWindow(capacity)
        self.red_buffer = RollingWindow(capacity)
        self.green_buffer = RollingWindow(capacity)
        self.motion_buffer = RollingWindow(capacity)

        # Uncompensated IR/Red keep the true DC for AC/DC ratios
        self.raw_ir_buffer = RollingWindow(capacity)
        self.raw_red_buffer = RollingWindow(capacity)

        # Sub-processors
        self.activity_classifier = ActivityClassifier(
            motion_threshold_g=self.config.motion_threshold_g,
            deviation_threshold=self.config.ir_deviation_threshold,
            grinding_variance_threshold=self.config.grinding_variance_threshold,
            baseline_adapt_rate=self.config.baseline_adapt_rate,
            history_size=self.config.activity_history_size,
        )
        self.ir_compensator = self._create_compensator()
        self.red_compensator = self._create_compensator()
        self.green_compensator = self._create_compensator()

        logger.info("Unified Biometric Processor initialized")
        logger.info(f"  Sample rate: {self.config.sample_rate} Hz, "
                    f"HR window: {self.config.hr_window_seconds}s ({self.config.hr_window_size} samples)")

    def _create_compensator(self) -> MotionCompensator:
        return MotionCompensator(
            learning_rate=self.config.lms_learning_rate,
            variance_threshold=self.config.lms_variance_threshold,
            history_size=self.config.lms_history_size,
            dampening=self.config.lms_dampening,
            motion_threshold_g=self.config.motion_threshold_g,
            dc_alpha=self.config.lms_dc_alpha,
        )

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    @property
    def window_fill(self) -> float:
        """Fraction of the heart rate window currently filled (0.0 - 1.0)."""
        with self._lock:
            return min(1.0, len(self.ir_buffer) / self.config.hr_window_size)

    def process(
            self,
            ir: float,
            red: float,
            green: float,
            accel_x: float,
            accel_y: float,
            accel_z: float
    ) -> BiometricResult:
        """
        Process a single frame of sensor data (called at the sample rate)

        Never raises: insufficient data and invalid conditions degrade to
        zero outputs.

        Args:
            ir: Infrared PPG value (primary HR source)
            red: Red PPG value (for SpO2)
            green: Green PPG value (backup HR source)
            accel_x: Accelerometer X (raw, ~accel_one_g = 1g)
            accel_y: Accelerometer Y (raw)
            accel_z: Accelerometer Z (raw)

        Returns:
            BiometricResult with all calculated values
        """
        with self._lock:
            return self._process_locked(
                ir, red, green, accel_x, accel_y, accel_z, ProcessingMethod.REALTIME
            )

    def process_sample(self, sample: Sample) -> BiometricResult:
        """Process one Sample from the transport layer."""
        return self.process(
            sample.ir, sample.red, sample.green,
            sample.accel_x, sample.accel_y, sample.accel_z
        )

    def process_batch(
            self,
            ir_samples: Sequence[float],
            red_samples: Sequence[float],
            green_samples: Sequence[float],
            accel_x: Sequence[float],
            accel_y: Sequence[float],
            accel_z: Sequence[float]
    ) -> BiometricResult:
        """
        Process aligned arrays of samples (historical data)

        The processor is reset first, then every aligned tuple is processed
        in order; only the final result is returned.

        Raises:
            ValueError: If the input arrays differ in length

        Returns:
            BiometricResult for the entire batch
        """
        lengths = [len(ir_samples), len(red_samples), len(green_samples),
                   len(accel_x), len(accel_y), len(accel_z)]
        if len(set(lengths)) > 1:
            raise ValueError(f"Batch inputs must have equal lengths, got {lengths}")

        with self._lock:
            self._reset_locked()

            result = BiometricResult.empty(processing_method=ProcessingMethod.BATCH)
            for values in zip(ir_samples, red_samples, green_samples, accel_x, accel_y, accel_z):
                result = self._process_locked(*values, method=ProcessingMethod.BATCH)

            logger.debug(f"Batch processed: {lengths[0]} samples, HR={result.heart_rate}, "
                         f"SpO2={result.spo2}")
            return result

    def reset(self):
        """
        Clear all windows and filter state.

        Should be called when the device reconnects or a new session starts.
        """
        with self._lock:
            self._reset_locked()
            logger.info("Biometric processor reset")

    # -----------------------------------------------------------------------
    # Processing stages
    # -----------------------------------------------------------------------

    def _reset_locked(self):
        self.ir_buffer.clear()
        self.red_buffer.clear()
        self.green_buffer.clear()
        self.motion_buffer.clear()
        self.raw_ir_buffer.clear()
        self.raw_red_buffer.clear()
        self.activity_classifier.reset()
        self.ir_compensator.reset()
        self.red_compensator.reset()
        self.green_compensator.reset()

    def _process_locked(self, ir, red, green, accel_x, accel_y, accel_z, method) -> BiometricResult:
        try:
            values = [float(v) for v in (ir, red, green, accel_x, accel_y, accel_z)]
        except (TypeError, ValueError):
            logger.warning("Dropping sample with non-numeric values")
            return BiometricResult.empty(processing_method=method)

        if not all(math.isfinite(v) for v in values):
            logger.debug("Dropping non-finite sample")
            return BiometricResult.empty(processing_method=method)

        ir, red, green, accel_x, accel_y, accel_z = values

        # Stage 1: Motion detection
        motion_level = self._calculate_motion(accel_x, accel_y, accel_z)

        # Stage 2: Motion compensation
        compensated_ir = self.ir_compensator.filter(ir, motion_level)
        compensated_red = self.red_compensator.filter(red, motion_level)
        compensated_green = self.green_compensator.filter(green, motion_level)

        # Stage 3: Activity classification
        activity = self.activity_classifier.classify(compensated_ir, motion_level)

        # Stage 4: Update windows
        self.ir_buffer.append(compensated_ir)
        self.red_buffer.append(compensated_red)
        self.green_buffer.append(compensated_green)
        self.motion_buffer.append(motion_level)
        self.raw_ir_buffer.append(ir)
        self.raw_red_buffer.append(red)

        # Never estimate on a partial window
        if len(self.ir_buffer) < self.config.hr_window_size:
            return BiometricResult.empty(
                activity=activity,
                motion_level=motion_level,
                processing_method=method,
            )

        try:
            return self._estimate(activity, motion_level, method)
        except Exception as e:
            logger.error(f"Error in biometric estimation: {e}")
            return BiometricResult.empty(
                activity=activity,
                motion_level=motion_level,
                processing_method=method,
            )

    def _estimate(self, activity: ActivityType, motion_level: float, method: ProcessingMethod) -> BiometricResult:
        raw_ir_window = self.raw_ir_buffer.values()[-self.config.hr_window_size:]

        perfusion_index = self._calculate_perfusion_index(raw_ir_window)
        signal_strength = SignalStrength.from_perfusion_index(perfusion_index)

        # Optical signal is unreliable while moving
        heart_rate, heart_rate_quality, heart_rate_source = 0, 0.0, HRSource.UNAVAILABLE
        if activity != ActivityType.MOTION:
            heart_rate, heart_rate_quality, heart_rate_source = self._calculate_heart_rate()

        spo2, spo2_quality = 0.0, 0.0
        if activity != ActivityType.MOTION and signal_strength not in (SignalStrength.NONE, SignalStrength.WEAK):
            spo2, spo2_quality = self._calculate_spo2()

        is_worn = (
            perfusion_index > self.config.min_perfusion_index
            and heart_rate > 0
            and heart_rate_quality > self.config.min_hr_quality
        )

        return BiometricResult(
            heart_rate=heart_rate,
            heart_rate_quality=heart_rate_quality,
            heart_rate_source=heart_rate_source,
            spo2=spo2,
            spo2_quality=spo2_quality,
            perfusion_index=perfusion_index,
            is_worn=is_worn,
            activity=activity,
            motion_level=motion_level,
            signal_strength=signal_strength,
            processing_method=method,
        )

    def _calculate_motion(self, x: float, y: float, z: float) -> float:
        """
        Motion level as the deviation of accelerometer magnitude from 1g

        Args:
            x, y, z: Raw accelerometer counts

        Returns:
            Absolute deviation from 1g, in g
        """
        one_g = self.config.accel_one_g
        magnitude = math.sqrt((x / one_g) ** 2 + (y / one_g) ** 2 + (z / one_g) ** 2)
        return abs(magnitude - 1.0)

    @staticmethod
    def _calculate_perfusion_index(window: np.ndarray) -> float:
        """Perfusion index = AC (peak-to-peak) / DC (mean)."""
        if len(window) == 0:
            return 0.0
        dc = float(np.mean(window))
        if dc <= 0:
            return 0.0
        return float(np.ptp(window)) / dc

    # -----------------------------------------------------------------------
    # Heart rate
    # -----------------------------------------------------------------------

    def _calculate_heart_rate(self) -> Tuple[int, float, HRSource]:
        size = self.config.hr_window_size
        ir_window = self.ir_buffer.values()[-size:]
        green_window = self.green_buffer.values()[-size:]
        min_quality = self.config.min_hr_quality

        # Peak detection first (IR primary, Green backup), each cross-checked with FFT
        for window, source in ((ir_window, HRSource.IR), (green_window, HRSource.GREEN)):
            estimate = self._heart_rate_from_peaks(window)
            if estimate is None:
                continue

            peak_bpm, peak_quality = estimate
            if peak_quality < min_quality:
                continue

            fft_bpm, _ = self._heart_rate_fft(window)
            if fft_bpm > 0 and abs(peak_bpm - fft_bpm) > self.config.fft_override_bpm:
                logger.debug(f"HR: FFT override on {source.value}: peak={peak_bpm} fft={fft_bpm}")
                return fft_bpm, peak_quality * 0.8, HRSource.FFT

            return peak_bpm, peak_quality, source

        # FFT fallback when peak detection failed on both channels
        for window, name in ((ir_window, 'ir'), (green_window, 'green')):
            fft_bpm, fft_quality = self._heart_rate_fft(window)
            if fft_bpm > 0 and fft_quality >= min_quality * 0.7:
                logger.debug(f"HR: FFT fallback on {name}: bpm={fft_bpm} quality={fft_quality:.2f}")
                return fft_bpm, fft_quality, HRSource.FFT

        return 0, 0.0, HRSource.UNAVAILABLE

    def _heart_rate_from_peaks(self, window: np.ndarray) -> Optional[Tuple[int, float]]:
        """
        Time-domain heart rate from inter-peak intervals

        Args:
            window: Channel window (raw counts)

        Returns:
            (bpm, quality) or None if no usable peaks were found.
            Quality is interval regularity (1 - CV), scaled down when only
            one interval is available.
        """
        if len(window) < self.config.hr_window_size:
            return None

        # Signal too flat
        if float(np.std(window)) <= self.config.min_signal_std:
            return None

        fs = self.config.sample_rate
        detrended = signal.detrend(window)

        min_distance = max(1, int(math.ceil(fs * 60.0 / self.config.max_bpm)))
        prominence = float(np.std(detrended)) * self.config.peak_prominence_factor
        peaks, _ = signal.find_peaks(detrended, distance=min_distance, prominence=prominence)

        if len(peaks) < 2:
            return None

        intervals = np.diff(peaks) / fs
        min_interval = 60.0 / self.config.max_bpm
        max_interval = 60.0 / self.config.min_bpm
        intervals = intervals[(intervals > min_interval) & (intervals < max_interval)]

        if len(intervals) == 0:
            return None

        bpm = int(round(60.0 / float(np.median(intervals))))
        if bpm < self.config.min_bpm or bpm > self.config.max_bpm:
            return None

        cv = float(np.std(intervals) / np.mean(intervals))
        regularity = float(np.clip(1.0 - cv, 0.0, 1.0))
        coverage = min(1.0, len(intervals) / 2.0)

        return bpm, regularity * coverage

    def _heart_rate_fft(self, window: np.ndarray) -> Tuple[int, float]:
        """
        Heart rate from the dominant frequency in the cardiac band

        Detrend, Hann window, zero-pad, then search min_bpm..max_bpm with
        parabolic interpolation around the peak bin.

        Returns:
            (bpm, quality); (0, 0.0) when no valid dominant frequency exists.
            Quality maps peak-to-average spectral ratio: 1 -> 0.0, 5+ -> 1.0.
        """
        n = len(window)
        if n < self.config.hr_window_size or float(np.std(window)) <= self.config.min_signal_std:
            return 0, 0.0

        fs = self.config.sample_rate
        tapered = signal.detrend(window) * np.hanning(n)

        # Zero-pad to next power of 2 for finer frequency resolution
        n_fft = max(self.config.fft_min_size, 1 << (n - 1).bit_length())
        magnitudes = np.abs(np.fft.rfft(tapered, n=n_fft))
        resolution = fs / n_fft

        min_bin = max(1, int(math.ceil(self.config.min_bpm / 60.0 / resolution)))
        max_bin = min(len(magnitudes) - 2, int(math.floor(self.config.max_bpm / 60.0 / resolution)))
        if min_bin >= max_bin:
            return 0, 0.0

        band = magnitudes[min_bin:max_bin + 1]
        peak_bin = min_bin + int(np.argmax(band))
        peak_magnitude = float(magnitudes[peak_bin])
        if peak_magnitude <= 0:
            return 0, 0.0

        refined_bin = float(peak_bin)
        if min_bin < peak_bin < max_bin:
            alpha = magnitudes[peak_bin - 1]
            beta = magnitudes[peak_bin]
            gamma = magnitudes[peak_bin + 1]
            denominator = alpha - 2.0 * beta + gamma
            if abs(denominator) > 1e-10:
                refined_bin += 0.5 * (alpha - gamma) / denominator

        bpm = int(round(refined_bin * resolution * 60.0))
        if bpm < self.config.min_bpm or bpm > self.config.max_bpm:
            return 0, 0.0

        average_magnitude = float(np.mean(band))
        snr = peak_magnitude / average_magnitude if average_magnitude > 0 else 0.0
        quality = float(np.clip((snr - 1.0) / 4.0, 0.0, 1.0))

        return bpm, quality

    # -----------------------------------------------------------------------
    # SpO2
    # -----------------------------------------------------------------------

    def _calculate_spo2(self) -> Tuple[float, float]:
        """
        SpO2 from the ratio of ratios

        R = (AC_red / DC_red) / (AC_ir / DC_ir), AC = peak-to-peak, DC = mean.
        Computed on the uncompensated windows so DC is the true channel mean.
        R outside [min_r_value, max_r_value] means noise or artefact and
        yields 0 rather than an extrapolated value.

        Returns:
            (spo2_percent, quality), (0.0, 0.0) when unavailable
        """
        size = self.config.spo2_window_size
        red_values = self.raw_red_buffer.values()[-size:]
        ir_values = self.raw_ir_buffer.values()[-size:]

        if len(red_values) < size or len(ir_values) < size:
            return 0.0, 0.0

        dc_red = float(np.mean(red_values))
        dc_ir = float(np.mean(ir_values))
        if dc_red <= 0 or dc_ir <= 0:
            return 0.0, 0.0

        ac_red = float(np.ptp(red_values))
        ac_ir = float(np.ptp(ir_values))
        if ac_red <= 0 or ac_ir <= 0:
            return 0.0, 0.0

        ratio_red = ac_red / dc_red
        ratio_ir = ac_ir / dc_ir
        r_value = ratio_red / ratio_ir

        if r_value < self.config.min_r_value or r_value > self.config.max_r_value:
            logger.debug(f"SpO2: R-value {r_value:.3f} outside "
                         f"[{self.config.min_r_value}, {self.config.max_r_value}]")
            return 0.0, 0.0

        spo2 = float(np.polyval(self.config.spo2_calibration, r_value))
        if spo2 < self.config.min_spo2 or spo2 > self.config.max_spo2:
            return 0.0, 0.0

        quality = min(1.0, ((ratio_red + ratio_ir) / 2.0) / 0.1)

        return round(spo2, 1), max(0.0, quality)
