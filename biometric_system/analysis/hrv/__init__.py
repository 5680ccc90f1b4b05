"""
Heart Rate Variability
RR interval gating with linear (SDNN, RMSSD) and nonlinear (SVD) biomarkers
"""

from .config import HRVConfig
from .models import HRVResult, SVDBiomarker
from .processor import HRVAnalyzer

__all__ = [
    'HRVAnalyzer',
    'HRVConfig',
    'HRVResult',
    'SVDBiomarker',
]

__version__ = '1.0.0'
