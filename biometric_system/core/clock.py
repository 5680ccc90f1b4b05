"""
Central Clock
Provides monotonic timestamps (seconds) for samples and peak times
"""

import threading
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# Smallest step used to keep timestamps strictly increasing
_MIN_STEP_SECONDS = 1e-6


class CentralClock:
    """
    Thread-safe clock for sample and beat timestamping

    Timestamps are float seconds from an injectable time source and are
    strictly increasing: a repeated or earlier reading is bumped by one
    microsecond past the previous one.
    """

    def __init__(self, time_source: Optional[Callable[[], float]] = None):
        """
        Initialize central clock

        Args:
            time_source: Callable returning seconds as float. Defaults to time.time.
        """
        self._lock = threading.Lock()
        self._time_source = time_source if time_source else time.time
        self._last_timestamp: Optional[float] = None
        self._call_count = 0

        logger.info("Central clock initialized")

    def now(self) -> float:
        """
        Get current synchronized timestamp

        Returns:
            float: Current timestamp in seconds
        """
        with self._lock:
            current_time = float(self._time_source())

            # Ensure monotonic increasing timestamps
            if self._last_timestamp is not None and current_time <= self._last_timestamp:
                current_time = self._last_timestamp + _MIN_STEP_SECONDS
                logger.debug("Adjusted timestamp to maintain monotonic sequence")

            self._last_timestamp = current_time
            self._call_count += 1

            return current_time

    def reset(self):
        """Reset clock state (useful for testing)"""
        with self._lock:
            self._last_timestamp = None
            self._call_count = 0
            logger.info("Central clock reset")

    def get_stats(self) -> dict:
        """
        Get clock statistics

        Returns:
            dict: Clock usage statistics
        """
        with self._lock:
            return {
                'total_calls': self._call_count,
                'last_timestamp': self._last_timestamp,
            }

    def __repr__(self):
        return f"<CentralClock(calls={self._call_count})>"
