"""
Unit Tests for the Pulse Morphology Analyzer

Tests for beat detection, debounce, degenerate inputs and beat features.
"""
import numpy as np
import pytest

from biometric_system.analysis.morphology import Beat, PulseMorphologyAnalyzer, PulseMorphologyConfig
from conftest import SAMPLE_RATE, pulse_wave


@pytest.fixture
def analyzer() -> PulseMorphologyAnalyzer:
    return PulseMorphologyAnalyzer(sample_rate=SAMPLE_RATE)


def make_beat(rise: float, fall: float) -> Beat:
    return Beat(
        onset_index=0,
        peak_index=int(rise * 50),
        offset_index=int((rise + fall) * 50),
        rise_time_seconds=rise,
        fall_time_seconds=fall,
        peak_amplitude=1500.0,
        onset_amplitude=1000.0,
        onset_time=0.0,
        peak_time=rise,
        offset_time=rise + fall,
    )


class TestBeatDetection:
    """Beat detection on synthetic pulses."""

    def test_detects_beats_in_pulse(self, analyzer, pulse_6s):
        beats = analyzer.detect_beats(pulse_6s)

        assert len(beats) >= 5
        for beat in beats:
            assert beat.rise_time_seconds > 0
            assert beat.fall_time_seconds > 0
            assert beat.onset_index < beat.peak_index < beat.offset_index

    def test_beats_respect_min_peak_distance(self, analyzer, pulse_6s):
        beats = analyzer.detect_beats(pulse_6s)

        peak_times = [b.peak_time for b in beats]
        assert peak_times == sorted(peak_times)
        assert all(np.diff(peak_times) >= analyzer.min_peak_distance_seconds)

    def test_peak_spacing_matches_heart_rate(self, analyzer, pulse_6s):
        beats = analyzer.detect_beats(pulse_6s)

        intervals = np.diff([b.peak_time for b in beats])
        assert np.median(intervals) == pytest.approx(1 / 1.2, abs=0.05)

    def test_timestamps_and_ir_dc(self, analyzer, pulse_6s):
        timestamps = 1000.0 + np.arange(len(pulse_6s)) / SAMPLE_RATE
        ir_dc = np.full(len(pulse_6s), 48000.0)

        beats = analyzer.detect_beats(pulse_6s, timestamps=timestamps, ir_dc_values=ir_dc)

        assert beats
        assert all(b.peak_time > 1000.0 for b in beats)
        assert all(b.ir_dc == 48000.0 for b in beats)

    def test_amplitudes_from_raw_signal(self, analyzer, pulse_6s):
        beats = analyzer.detect_beats(pulse_6s)

        for beat in beats:
            assert beat.peak_amplitude == pulse_6s[beat.peak_index]
            assert beat.pulse_amplitude > 0

    def test_strict_debounce_keeps_stronger_peak(self, analyzer):
        # Each beat has a weaker secondary bump 0.25 s after the main peak
        t = np.arange(300) / SAMPLE_RATE
        signal = np.full_like(t, 1000.0)
        for k in range(8):
            main = 0.3 + k / 1.2
            signal += 100.0 * np.exp(-0.5 * ((t - main) / 0.05) ** 2)
            signal += 50.0 * np.exp(-0.5 * ((t - main - 0.25) / 0.05) ** 2)

        beats = analyzer.detect_beats(signal)

        assert len(beats) >= 5
        assert all(np.diff([b.peak_index for b in beats]) >= analyzer.min_peak_distance_samples)
        assert all(b.peak_amplitude > 1075.0 for b in beats)


class TestDegenerateInput:
    """Inputs that must not produce beats."""

    def test_empty_signal(self, analyzer):
        assert analyzer.detect_beats([]) == []

    def test_two_samples(self, analyzer):
        assert analyzer.detect_beats([1.0, 2.0]) == []

    def test_constant_signal(self, analyzer):
        assert analyzer.detect_beats(np.full(300, 20000.0)) == []

    def test_pseudo_random_noise(self, analyzer, noise_10s):
        assert len(analyzer.detect_beats(noise_10s)) <= 3

    def test_non_finite_values(self, analyzer, pulse_6s):
        signal = pulse_6s.copy()
        signal[10] = np.nan

        assert analyzer.detect_beats(signal) == []


class TestAnalyzerConfig:
    """Construction and configuration."""

    def test_min_peak_distance_default(self, analyzer):
        assert analyzer.min_peak_distance_seconds == 0.4
        assert analyzer.min_peak_distance_samples == 20

    def test_min_peak_distance_read_only(self, analyzer):
        with pytest.raises(AttributeError):
            analyzer.min_peak_distance_seconds = 1.0

    def test_invalid_sample_rate(self):
        with pytest.raises(ValueError):
            PulseMorphologyAnalyzer(sample_rate=0)

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            PulseMorphologyConfig(bandpass_low_hz=10.0, bandpass_high_hz=5.0)

    def test_low_sample_rate_clamps_filter(self):
        analyzer = PulseMorphologyAnalyzer(sample_rate=10.0)
        signal = 1000.0 + 100.0 * pulse_wave(10.0, fs=10.0)

        beats = analyzer.detect_beats(signal)

        assert len(beats) >= 5


class TestBeatFeatures:
    """Derived Beat properties."""

    def test_timing_properties(self):
        beat = make_beat(rise=0.1, fall=0.3)

        assert beat.rise_time_ms == pytest.approx(100.0)
        assert beat.fall_time_ms == pytest.approx(300.0)
        assert beat.symmetry_ratio == pytest.approx(1 / 3)
        assert beat.duration_seconds == pytest.approx(0.4)
        assert beat.instantaneous_bpm == pytest.approx(150.0)
        assert beat.pulse_amplitude == 500.0

    def test_healthy_beat_scores_full_quality(self):
        beat = make_beat(rise=0.1, fall=0.3)

        assert beat.has_valid_timing
        assert beat.morphology_quality == pytest.approx(1.0)

    def test_marginal_beat_scores_partial_quality(self):
        beat = make_beat(rise=0.06, fall=0.16)  # symmetry 0.375

        assert beat.has_valid_timing
        assert beat.morphology_quality == pytest.approx(0.15 + 0.15 + 0.4)

    def test_slow_rise_is_invalid(self):
        beat = make_beat(rise=0.3, fall=0.2)

        assert not beat.has_valid_timing
        assert beat.morphology_quality == pytest.approx(0.3)

    def test_summarize(self, analyzer):
        beats = [make_beat(0.1, 0.3), make_beat(0.12, 0.28)]
        summary = analyzer.summarize(beats)

        assert summary['beat_count'] == 2
        assert summary['avg_rise_time_ms'] == pytest.approx(110.0)
        assert summary['avg_fall_time_ms'] == pytest.approx(290.0)
        assert 0.0 < summary['morphology_quality'] <= 1.0

    def test_summarize_empty(self, analyzer):
        summary = analyzer.summarize([])

        assert summary['beat_count'] == 0
        assert summary['avg_rise_time_ms'] is None
        assert summary['morphology_quality'] == 0.0
