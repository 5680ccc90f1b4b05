"""
Rolling Window
Fixed-capacity circular buffer for per-channel sample windows
"""

from typing import Iterable, Optional

import numpy as np


class RollingWindow:
    """
    Fixed-capacity circular buffer of float samples

    Backed by a preallocated numpy array and a head index, so appending
    and evicting the oldest sample are both O(1). The window never holds
    more than `capacity` values.
    """

    def __init__(self, capacity: int):
        """
        Args:
            capacity: Maximum number of samples kept (must be > 0)

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity <= 0:
            raise ValueError(f"RollingWindow capacity must be positive, got {capacity}")

        self._capacity = int(capacity)
        self._data = np.zeros(self._capacity, dtype=np.float64)
        self._head = 0  # Index the next value is written to
        self._count = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return self._count == self._capacity

    @property
    def last(self) -> Optional[float]:
        """Most recently appended value, or None when empty."""
        if self._count == 0:
            return None
        return float(self._data[(self._head - 1) % self._capacity])

    def append(self, value: float):
        """Append one value, overwriting the oldest when full."""
        self._data[self._head] = value
        self._head = (self._head + 1) % self._capacity
        if self._count < self._capacity:
            self._count += 1

    def extend(self, values: Iterable[float]):
        for value in values:
            self.append(value)

    def values(self) -> np.ndarray:
        """
        Snapshot of the window contents

        Returns:
            Copy of the buffered values in chronological order (oldest first)
        """
        if self._count < self._capacity:
            return self._data[:self._count].copy()
        # Full buffer: oldest value sits at the head position
        return np.concatenate((self._data[self._head:], self._data[:self._head]))

    def clear(self):
        self._head = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __repr__(self):
        return f"<RollingWindow({self._count}/{self._capacity})>"
