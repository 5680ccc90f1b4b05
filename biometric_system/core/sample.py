"""
Sensor Sample
One instant of PPG and accelerometer data from the wearable
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class Sample:
    """
    Immutable multi-channel sensor sample.

    PPG channels are raw optical counts. Accelerometer axes are signed
    device counts (nominally 16384 per g). The timestamp is in seconds and
    may be None when the transport layer does not stamp samples.
    """

    ir: float
    red: float
    green: float
    accel_x: int = 0
    accel_y: int = 0
    accel_z: int = 0
    timestamp: Optional[float] = None

    @classmethod
    def from_sequence(cls, values: Sequence[float], timestamp: Optional[float] = None) -> 'Sample':
        """
        Build a sample from an (ir, red, green, x, y, z) tuple.

        Raises:
            ValueError: If `values` does not hold exactly six entries.
        """
        if len(values) != 6:
            raise ValueError(f"Expected 6 values (ir, red, green, x, y, z), got {len(values)}")
        ir, red, green, x, y, z = values
        return cls(
            ir=float(ir),
            red=float(red),
            green=float(green),
            accel_x=int(x),
            accel_y=int(y),
            accel_z=int(z),
            timestamp=timestamp,
        )

    @property
    def is_finite(self) -> bool:
        return all(
            math.isfinite(v)
            for v in (self.ir, self.red, self.green, self.accel_x, self.accel_y, self.accel_z)
        )

    def channel(self, name: str) -> float:
        """Return a PPG channel value by name ('ir', 'red' or 'green')."""
        if name not in ('ir', 'red', 'green'):
            raise ValueError(f"Unknown PPG channel: {name}")
        return getattr(self, name)
