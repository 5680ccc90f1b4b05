"""
Biometric System Core
Leaf utilities shared by every processor

- Sample: immutable multi-channel sensor reading
- RollingWindow: fixed-capacity circular buffer per channel
- CentralClock: thread-safe monotonic timestamps
"""

from .buffer import RollingWindow
from .clock import CentralClock
from .sample import Sample

__all__ = [
    'RollingWindow',
    'CentralClock',
    'Sample',
]

__version__ = '1.0.0'
