"""
Pulse Morphology
Beat detection and per-beat shape features from PPG segments
"""

from .config import PulseMorphologyConfig
from .models import Beat
from .processor import PulseMorphologyAnalyzer

__all__ = [
    'PulseMorphologyAnalyzer',
    'PulseMorphologyConfig',
    'Beat',
]

__version__ = '1.0.0'
