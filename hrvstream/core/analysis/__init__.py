"""
Analysis Module

Time-domain (RMSSD) and frequency-domain (LF/HF) HRV estimators.
"""
from .time_domain import TimeDomainAnalyzer
from .spectral import (
    SpectralAnalyzer,
    BandPower,
    FrequencyBand,
    LF,
    HF,
    next_power_of_two,
    resample_evenly,
)

__all__ = [
    "TimeDomainAnalyzer",
    "SpectralAnalyzer",
    "BandPower",
    "FrequencyBand",
    "LF",
    "HF",
    "next_power_of_two",
    "resample_evenly",
]
