"""
Frequency-Domain HRV

Estimates LF and HF power of the interval window:

1. Linear resampling of the beat series onto an even grid (fs = 4 Hz)
2. Mean removal
3. Zero padding to the next power of two
4. Real FFT and one-sided periodogram, psd[k] = |X[k]|^2 / (fs * nfft)
5. Rectangle-rule integration of the PSD over each band

Everything here is a pure function of the window snapshot, so it can run
on a worker thread while new samples keep arriving.
"""
from dataclasses import dataclass
from typing import Dict, Any, Sequence, Tuple

import numpy as np
from scipy import signal

from hrvstream.core.constants import RESAMPLE_RATE_HZ, LF_BAND, HF_BAND


@dataclass(frozen=True)
class FrequencyBand:
    """Frequency interval [low_hz, high_hz) or [low_hz, high_hz]."""
    name: str
    low_hz: float
    high_hz: float
    include_high: bool = False

    def mask(self, freqs: np.ndarray) -> np.ndarray:
        """Boolean mask of the frequencies that fall inside the band."""
        upper = freqs <= self.high_hz if self.include_high else freqs < self.high_hz
        return (freqs >= self.low_hz) & upper


LF = FrequencyBand("lf", *LF_BAND, include_high=False)
HF = FrequencyBand("hf", *HF_BAND, include_high=True)


@dataclass(frozen=True)
class BandPower:
    """Integrated LF/HF power (ms^2)."""
    lf: float = 0.0
    hf: float = 0.0

    @property
    def lf_hf_ratio(self) -> float:
        return self.lf / self.hf if self.hf > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lf": self.lf,
            "hf": self.hf,
            "lf_hf_ratio": round(self.lf_hf_ratio, 4),
        }


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    size = 1
    while size < n:
        size <<= 1
    return size


def resample_evenly(intervals: Sequence[float], fs: float = RESAMPLE_RATE_HZ) -> np.ndarray:
    """
    Interpolate the beat series onto ``floor(len * fs)`` evenly spaced points.

    Query positions span the index range [0, len - 1], so the first and last
    output samples equal the first and last input samples. The output length
    is clamped to at least 2.
    """
    values = np.asarray(intervals, dtype=np.float64)
    if values.size == 0:
        return values

    n = max(int(values.size * fs), 2)
    positions = np.linspace(0.0, values.size - 1, n)
    return np.interp(positions, np.arange(values.size), values)


def power_spectral_density(
    series: np.ndarray,
    fs: float = RESAMPLE_RATE_HZ
) -> Tuple[np.ndarray, np.ndarray]:
    """
    One-sided periodogram of a detrended series.

    Args:
        series: Evenly sampled, mean-removed series
        fs: Sampling rate of the series in Hz

    Returns:
        Tuple of (freqs, psd), each of length nfft // 2
    """
    nfft = next_power_of_two(series.size)
    spectrum = np.fft.rfft(series, n=nfft)[: nfft // 2]
    psd = (spectrum.real ** 2 + spectrum.imag ** 2) / (fs * nfft)
    freqs = np.arange(nfft // 2) * (fs / nfft)
    return freqs, psd


def band_power(freqs: np.ndarray, psd: np.ndarray, band: FrequencyBand, df: float) -> float:
    """Sum of psd * df over the bins inside ``band``."""
    return float(np.sum(psd[band.mask(freqs)]) * df)


class SpectralAnalyzer:
    """
    LF/HF power estimator for a full interval window.

    Stateless: calling :meth:`analyze` twice on the same snapshot gives the
    same result.
    """

    def __init__(
        self,
        fs: float = RESAMPLE_RATE_HZ,
        lf_band: FrequencyBand = LF,
        hf_band: FrequencyBand = HF
    ):
        self.fs = fs
        self.lf_band = lf_band
        self.hf_band = hf_band

    def fft_size(self, window_length: int) -> int:
        """FFT length used for a window of ``window_length`` beats."""
        return next_power_of_two(max(int(window_length * self.fs), 2))

    def analyze(self, intervals: Sequence[float]) -> BandPower:
        """
        Compute LF and HF power of a window snapshot.

        Windows shorter than two samples or with no variation have no
        spectral content and return zero power.
        """
        values = np.asarray(intervals, dtype=np.float64)
        if values.size < 2 or np.ptp(values) == 0:
            return BandPower()

        evenly = resample_evenly(values, self.fs)
        detrended = signal.detrend(evenly, type="constant")

        freqs, psd = power_spectral_density(detrended, self.fs)
        df = self.fs / self.fft_size(values.size)

        return BandPower(
            lf=band_power(freqs, psd, self.lf_band, df),
            hf=band_power(freqs, psd, self.hf_band, df),
        )
