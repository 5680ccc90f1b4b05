"""
Unit Tests for the Unified Biometric Processor

Tests for heart rate, SpO2, motion/activity and the batch API.
"""
import math

import numpy as np
import pytest

from biometric_system.analysis.biometric import (
    ActivityClassifier,
    ActivityType,
    BiometricConfig,
    BiometricResult,
    HRSource,
    MotionCompensator,
    ProcessingMethod,
    SignalStrength,
    UnifiedBiometricProcessor,
)
from conftest import ONE_G, pulse_wave, sine_wave


def feed(processor, ir, red=None, green=None, accel=(0, 0, ONE_G)):
    """Push aligned channel arrays one sample at a time, return every result."""
    red = red if red is not None else ir
    green = green if green is not None else ir
    return [processor.process(i, r, g, *accel) for i, r, g in zip(ir, red, green)]


class TestBiometricConfig:
    """Tests for BiometricConfig."""

    def test_window_sizes(self):
        config = BiometricConfig()
        assert config.hr_window_size == 150
        assert config.spo2_window_size == 150
        assert config.window_capacity == 150

    def test_presets(self):
        assert BiometricConfig.for_oralable().sample_rate == 50.0
        assert BiometricConfig.for_anr().hr_window_size == 300

    @pytest.mark.parametrize("kwargs", [
        {'sample_rate': 0.0},
        {'hr_window_seconds': -1.0},
        {'min_bpm': 180.0, 'max_bpm': 40.0},
        {'min_r_value': 3.4, 'max_r_value': 0.4},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            BiometricConfig(**kwargs)


class TestHeartRate:
    """Heart rate estimation."""

    def test_clean_sine_within_tolerance(self, ir_sine_6s):
        processor = UnifiedBiometricProcessor()
        results = feed(processor, ir_sine_6s)

        final = results[-1]
        assert abs(final.heart_rate - 72) <= 10
        assert final.heart_rate_source in (HRSource.IR, HRSource.FFT)
        assert final.heart_rate_quality > 0.5

    def test_partial_window_reports_zero(self, ir_sine_6s, config):
        processor = UnifiedBiometricProcessor(config)
        results = feed(processor, ir_sine_6s[:config.hr_window_size - 1])

        assert all(r.heart_rate == 0 for r in results)
        assert results[-1].heart_rate_source == HRSource.UNAVAILABLE
        assert processor.window_fill < 1.0

    def test_first_estimate_when_window_fills(self, ir_sine_6s, config):
        processor = UnifiedBiometricProcessor(config)
        results = feed(processor, ir_sine_6s[:config.hr_window_size])

        assert results[-1].heart_rate > 0
        assert processor.window_fill == 1.0

    def test_green_fallback_when_ir_flat(self):
        processor = UnifiedBiometricProcessor()
        green = 20000.0 + 500.0 * sine_wave(6.0)
        ir = np.full_like(green, 50000.0)

        final = feed(processor, ir, red=ir, green=green)[-1]

        assert final.heart_rate_source in (HRSource.GREEN, HRSource.FFT)
        assert abs(final.heart_rate - 72) <= 10

    def test_flat_signal_gives_no_heart_rate(self):
        processor = UnifiedBiometricProcessor()
        flat = np.full(200, 50000.0)

        final = feed(processor, flat)[-1]

        assert final.heart_rate == 0
        assert final.heart_rate_source == HRSource.UNAVAILABLE
        assert final.signal_strength == SignalStrength.NONE
        assert not final.is_worn

    def test_worn_detection(self, ir_sine_6s):
        processor = UnifiedBiometricProcessor()
        final = feed(processor, ir_sine_6s)[-1]

        assert final.perfusion_index == pytest.approx(0.04, rel=0.05)
        assert final.signal_strength == SignalStrength.STRONG
        assert final.is_worn


class TestSpO2:
    """SpO2 ratio-of-ratios estimation."""

    def test_in_range_ratio_uses_calibration(self, config):
        processor = UnifiedBiometricProcessor(config)
        wave = sine_wave(6.0)
        ir = 50000.0 + 500.0 * wave  # AC/DC = 0.02
        red = 30000.0 + 150.0 * wave  # AC/DC = 0.01, R = 0.5

        final = feed(processor, ir, red=red)[-1]

        expected = float(np.polyval(config.spo2_calibration, 0.5))
        assert final.spo2 == pytest.approx(expected, abs=0.15)
        assert 0.0 < final.spo2_quality <= 1.0

    def test_r_above_bound_reports_zero(self):
        processor = UnifiedBiometricProcessor()
        wave = sine_wave(6.0)
        ir = 50000.0 + 100.0 * wave  # AC/DC = 0.004
        red = 10000.0 + 1000.0 * wave  # AC/DC = 0.2, R = 50

        final = feed(processor, ir, red=red)[-1]

        assert final.signal_strength not in (SignalStrength.NONE, SignalStrength.WEAK)
        assert final.spo2 == 0.0
        assert final.spo2_quality == 0.0

    def test_r_below_bound_reports_zero(self):
        processor = UnifiedBiometricProcessor()
        wave = sine_wave(6.0)
        ir = 50000.0 + 1000.0 * wave  # AC/DC = 0.04
        red = 30000.0 + 30.0 * wave  # AC/DC = 0.002, R = 0.05

        final = feed(processor, ir, red=red)[-1]

        assert final.spo2 == 0.0


class TestMotionAndActivity:
    """Motion level and activity classification."""

    def test_stationary_accelerometer(self, ir_sine_6s):
        processor = UnifiedBiometricProcessor()
        results = feed(processor, ir_sine_6s, accel=(0, 0, ONE_G))

        assert all(r.motion_level < 0.1 for r in results)
        assert all(r.activity != ActivityType.MOTION for r in results)

    def test_reset_then_ten_samples(self, ir_sine_6s):
        processor = UnifiedBiometricProcessor()
        feed(processor, ir_sine_6s)
        processor.reset()

        results = feed(processor, ir_sine_6s[:10])

        assert all(r.heart_rate == 0 for r in results)
        assert processor.window_fill == pytest.approx(10 / 150)

    def test_shaking_is_classified_as_motion(self, ir_sine_6s):
        processor = UnifiedBiometricProcessor()
        results = []
        for i, ir in enumerate(ir_sine_6s):
            x = 12000 if i % 2 else 6000
            results.append(processor.process(ir, ir, ir, x, 0, ONE_G))

        assert max(r.motion_level for r in results) > 0.15
        moving = [r for r in results if r.activity == ActivityType.MOTION]
        assert moving
        assert all(r.heart_rate == 0 and r.spo2 == 0.0 for r in moving)

    def test_configurable_one_g(self):
        processor = UnifiedBiometricProcessor(BiometricConfig(accel_one_g=8192.0))
        result = processor.process(50000.0, 30000.0, 20000.0, 0, 0, 8192)

        assert result.motion_level == pytest.approx(0.0)

    def test_classifier_clench_and_grind(self):
        classifier = ActivityClassifier(history_size=32)
        for _ in range(20):
            assert classifier.classify(50000.0, 0.0) == ActivityType.STATIONARY

        # Sudden jump: large deviation with high variance
        assert classifier.classify(60000.0, 0.0) == ActivityType.GRINDING

        # Sustained jump: large deviation, settled variance
        for _ in range(40):
            activity = classifier.classify(60000.0, 0.0)
        assert activity == ActivityType.CLENCHING

    def test_compensator_is_identity_without_motion(self):
        compensator = MotionCompensator()
        outputs = [compensator.filter(1000.0 + i, 0.0) for i in range(50)]

        assert outputs == [1000.0 + i for i in range(50)]

    def test_compensator_is_identity_while_still(self):
        compensator = MotionCompensator(motion_threshold_g=0.15)
        rng = np.random.default_rng(7)
        references = np.abs(rng.normal(0.0, 0.01, 500))

        outputs = [compensator.filter(50000.0 + i, ref) for i, ref in enumerate(references)]

        assert outputs == [50000.0 + i for i in range(500)]
        assert not np.any(compensator.weights)

    def test_compensator_keeps_dc_during_motion(self):
        compensator = MotionCompensator(motion_threshold_g=0.15)
        wave = sine_wave(20.0)
        outputs = [
            compensator.filter(50000.0 + 1000.0 * w, 0.3 if i % 2 else 0.2)
            for i, w in enumerate(wave)
        ]

        assert np.mean(outputs[-250:]) == pytest.approx(50000.0, rel=0.02)

    def test_noisy_stationary_accelerometer_over_two_minutes(self, config):
        processor = UnifiedBiometricProcessor(config)
        rng = np.random.default_rng(42)
        pulse = pulse_wave(120.0)
        accel_z = ONE_G + np.round(rng.normal(0.0, 150.0, len(pulse)))

        checkpoints = []
        for i, (p, z) in enumerate(zip(pulse, accel_z)):
            result = processor.process(50000.0 + 1000.0 * p, 30000.0 + 300.0 * p,
                                       20000.0 + 500.0 * p, 0, 0, z)
            if (i + 1) % 1500 == 0:
                checkpoints.append(result)

        expected_spo2 = float(np.polyval(config.spo2_calibration, 0.5))
        for result in checkpoints:
            assert result.activity == ActivityType.STATIONARY
            assert abs(result.heart_rate - 72) <= 10
            assert result.spo2 == pytest.approx(expected_spo2, abs=0.3)


class TestProcessingApi:
    """Batch, single-sample and degenerate input handling."""

    def test_batch_matches_streaming(self, ir_sine_6s):
        n = len(ir_sine_6s)
        accel_x, accel_y, accel_z = [0] * n, [0] * n, [ONE_G] * n

        streaming = feed(UnifiedBiometricProcessor(), ir_sine_6s)[-1]
        batch = UnifiedBiometricProcessor().process_batch(
            ir_sine_6s, ir_sine_6s, ir_sine_6s, accel_x, accel_y, accel_z
        )

        assert batch.processing_method == ProcessingMethod.BATCH
        assert batch.heart_rate == streaming.heart_rate
        assert batch.spo2 == streaming.spo2

    def test_batch_resets_previous_state(self, ir_sine_6s):
        processor = UnifiedBiometricProcessor()
        feed(processor, ir_sine_6s)

        result = processor.process_batch([50000.0] * 5, [30000.0] * 5, [20000.0] * 5,
                                         [0] * 5, [0] * 5, [ONE_G] * 5)

        assert result.heart_rate == 0
        assert processor.window_fill == pytest.approx(5 / 150)

    def test_batch_mismatched_lengths_rejected(self):
        processor = UnifiedBiometricProcessor()
        with pytest.raises(ValueError):
            processor.process_batch([1.0, 2.0], [1.0], [1.0, 2.0], [0, 0], [0, 0], [ONE_G, ONE_G])

    def test_empty_batch(self):
        result = UnifiedBiometricProcessor().process_batch([], [], [], [], [], [])

        assert result.heart_rate == 0
        assert result.processing_method == ProcessingMethod.BATCH

    def test_non_finite_sample_is_dropped(self):
        processor = UnifiedBiometricProcessor()
        processor.process(50000.0, 30000.0, 20000.0, 0, 0, ONE_G)

        result = processor.process(math.nan, 30000.0, 20000.0, 0, 0, ONE_G)

        assert result == BiometricResult.empty()
        assert processor.window_fill == pytest.approx(1 / 150)

    def test_process_sample(self, stream_samples):
        processor = UnifiedBiometricProcessor()
        results = [processor.process_sample(s) for s in stream_samples(6.0)]

        assert abs(results[-1].heart_rate - 72) <= 10

    def test_result_to_dict(self, ir_sine_6s):
        result = feed(UnifiedBiometricProcessor(), ir_sine_6s)[-1].to_dict()

        assert result['activity'] == 'stationary'
        assert result['processing_method'] == 'realtime'
        assert isinstance(result['heart_rate'], int)
