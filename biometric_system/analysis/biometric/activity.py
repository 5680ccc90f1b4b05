"""
Activity Classification and Motion Compensation
Accelerometer-driven helpers used by the unified biometric processor
"""

import logging
from collections import deque

import numpy as np

from .models import ActivityType

logger = logging.getLogger(__name__)


class ActivityClassifier:
    """
    Classifies each sample as stationary, clenching, grinding or motion

    - Motion: accelerometer deviation from 1g above threshold
    - Clenching/grinding: IR deviates from its adaptive baseline; high IR
      variance over the recent history separates grinding from clenching
    - Stationary: otherwise, and the baseline slowly follows IR drift
    """

    def __init__(
            self,
            motion_threshold_g: float = 0.15,
            deviation_threshold: float = 5000.0,
            grinding_variance_threshold: float = 1000.0,
            baseline_adapt_rate: float = 0.05,
            history_size: int = 32
    ):
        self.motion_threshold_g = motion_threshold_g
        self.deviation_threshold = deviation_threshold
        self.grinding_variance_threshold = grinding_variance_threshold
        self.baseline_adapt_rate = baseline_adapt_rate

        self.ir_history = deque(maxlen=history_size)
        self.baseline = 0.0
        self.baseline_initialized = False

    def classify(self, ir: float, motion_level: float) -> ActivityType:
        """
        Classify the current activity

        Args:
            ir: Infrared signal value
            motion_level: Accelerometer magnitude deviation from 1g (in g)

        Returns:
            Detected ActivityType
        """
        if not self.baseline_initialized:
            self.baseline = ir
            self.baseline_initialized = True

        self.ir_history.append(ir)

        if motion_level > self.motion_threshold_g:
            return ActivityType.MOTION

        deviation = abs(ir - self.baseline)

        if deviation > self.deviation_threshold:
            variance = float(np.var(self.ir_history))
            if variance > self.grinding_variance_threshold:
                return ActivityType.GRINDING
            return ActivityType.CLENCHING

        # Follow slow drift only while relaxed
        self.baseline = (1.0 - self.baseline_adapt_rate) * self.baseline + self.baseline_adapt_rate * ir
        return ActivityType.STATIONARY

    def reset(self):
        self.ir_history.clear()
        self.baseline = 0.0
        self.baseline_initialized = False


class MotionCompensator:
    """
    LMS adaptive filter removing motion-correlated noise from one PPG channel

    The accelerometer motion level is the noise reference. Only the AC part
    (signal minus a running DC estimate) is filtered and the DC is added
    back, so the channel baseline survives for AC/DC ratios. Samples pass
    through unchanged while the device is still; weights adapt only during
    motion. When the reference itself varies too much the AC part is
    dampened instead of filtered.
    """

    def __init__(
            self,
            learning_rate: float = 0.01,
            variance_threshold: float = 1.0,
            history_size: int = 32,
            dampening: float = 0.01,
            motion_threshold_g: float = 0.15,
            dc_alpha: float = 0.02
    ):
        self.learning_rate = learning_rate
        self.variance_threshold = variance_threshold
        self.history_size = history_size
        self.dampening = dampening
        self.motion_threshold_g = motion_threshold_g
        self.dc_alpha = dc_alpha

        self.weights = np.zeros(history_size)
        self.noise_history = np.zeros(history_size)  # Newest reference first
        self.dc = None

    def filter(self, signal: float, noise_reference: float) -> float:
        """
        Filter one sample

        Args:
            signal: PPG sample (desired signal plus motion noise)
            noise_reference: Motion level for the same instant

        Returns:
            Signal with the adaptive noise estimate removed from its AC part
        """
        self.noise_history = np.roll(self.noise_history, 1)
        self.noise_history[0] = noise_reference

        if self.dc is None:
            self.dc = signal
        else:
            self.dc += self.dc_alpha * (signal - self.dc)

        # Still device: identity
        if noise_reference <= self.motion_threshold_g:
            return signal

        ac = signal - self.dc

        if float(np.var(self.noise_history)) > self.variance_threshold:
            logger.debug("Excessive motion variance, dampening sample")
            return self.dc + ac * self.dampening

        noise_estimate = float(np.dot(self.weights, self.noise_history))
        error = ac - noise_estimate

        # Normalised LMS step, stable for any reference power
        power = float(np.dot(self.noise_history, self.noise_history))
        if power > 0.0:
            self.weights += (self.learning_rate / (1.0 + power)) * error * self.noise_history

        return self.dc + error

    def reset(self):
        self.weights = np.zeros(self.history_size)
        self.noise_history = np.zeros(self.history_size)
        self.dc = None
