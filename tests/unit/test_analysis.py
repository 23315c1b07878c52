"""
Unit Tests for HRV Analysis

Tests for the RMSSD estimator and the LF/HF spectral estimator.
"""
import pytest
import numpy as np

from hrvstream.core.analysis import (
    TimeDomainAnalyzer,
    SpectralAnalyzer,
    BandPower,
    LF,
    HF,
    next_power_of_two,
    resample_evenly,
)
from hrvstream.core.analysis.spectral import power_spectral_density
from hrvstream.core.analysis.time_domain import successive_differences, rmssd


class TestTimeDomainAnalyzer:
    """Tests for RMSSD with artifact rejection."""

    def test_ramp_window(self, ramp_window):
        """Constant 10 ms step gives HRV 10."""
        analyzer = TimeDomainAnalyzer()

        assert analyzer.update(ramp_window) == 10
        assert analyzer.hrv == 10

    def test_alternating_window(self, alternating_window):
        analyzer = TimeDomainAnalyzer()

        assert analyzer.update(alternating_window) == 10

    def test_rounds_to_nearest_ms(self):
        """sqrt((10^2 + 11^2) / 2) = 10.51 -> 11."""
        analyzer = TimeDomainAnalyzer()

        assert analyzer.update([800.0, 810.0, 821.0]) == 11

    def test_artifacts_excluded(self):
        """Jumps of 200 ms or more are ignored."""
        analyzer = TimeDomainAnalyzer()
        window = [800.0, 810.0, 800.0, 1000.0, 1010.0, 1000.0]

        valid = analyzer.valid_differences(window)

        assert list(valid) == [10.0, -10.0, 10.0, -10.0]
        assert analyzer.update(window) == 10

    def test_stale_value_held(self, ramp_window):
        """Fewer than two valid differences keeps the previous HRV."""
        analyzer = TimeDomainAnalyzer()
        analyzer.update(ramp_window)

        assert analyzer.update([800.0, 1100.0, 800.0, 1100.0]) == 10
        assert analyzer.update([800.0, 810.0, 1200.0]) == 10

    def test_partial_window(self):
        analyzer = TimeDomainAnalyzer()

        # A single difference is not enough
        assert analyzer.update([800.0, 810.0]) == 0
        assert analyzer.update([800.0, 810.0, 800.0]) == 10

    def test_empty_window(self):
        analyzer = TimeDomainAnalyzer(initial_hrv=42)

        assert analyzer.update([]) == 42

    def test_reset(self, ramp_window):
        analyzer = TimeDomainAnalyzer()
        analyzer.update(ramp_window)
        analyzer.reset()

        assert analyzer.hrv == 0

    def test_helpers(self):
        diffs = successive_differences([800.0, 830.0, 810.0])

        assert list(diffs) == [30.0, -20.0]
        assert rmssd(np.array([3.0, 4.0])) == pytest.approx(np.sqrt(12.5))


class TestFrequencyBands:
    """Tests for band edge handling."""

    def test_lf_edges(self):
        freqs = np.array([0.0399, 0.04, 0.1, 0.15])

        assert list(LF.mask(freqs)) == [False, True, True, False]

    def test_hf_edges(self):
        freqs = np.array([0.15, 0.3, 0.4, 0.4001])

        assert list(HF.mask(freqs)) == [True, True, True, False]

    def test_bands_do_not_overlap(self):
        freqs = np.arange(0, 2.0, 1 / 128)

        assert not np.any(LF.mask(freqs) & HF.mask(freqs))


class TestResampling:
    """Tests for even-grid interpolation."""

    def test_next_power_of_two(self):
        assert next_power_of_two(120) == 128
        assert next_power_of_two(128) == 128
        assert next_power_of_two(129) == 256
        assert next_power_of_two(1) == 1
        assert next_power_of_two(0) == 1

    def test_resampled_length(self, random_window):
        assert len(resample_evenly(random_window)) == 120

    def test_endpoints_preserved(self, random_window):
        evenly = resample_evenly(random_window)

        assert evenly[0] == random_window[0]
        assert evenly[-1] == random_window[-1]

    def test_linear_between_samples(self):
        evenly = resample_evenly([800.0, 900.0], fs=2.0)

        assert list(evenly) == pytest.approx([800.0, 833.333333, 866.666667, 900.0])

    def test_short_series_clamped(self):
        assert len(resample_evenly([800.0])) == 4
        assert len(resample_evenly([800.0], fs=1.0)) == 2
        assert len(resample_evenly([])) == 0


class TestSpectralAnalyzer:
    """Tests for LF/HF band power estimation."""

    def test_fft_size(self):
        analyzer = SpectralAnalyzer()

        assert analyzer.fft_size(30) == 128

    def test_constant_window(self):
        """No variability, no spectral power."""
        power = SpectralAnalyzer().analyze([850.0] * 30)

        assert power.lf == 0.0
        assert power.hf == 0.0

    def test_alternating_window(self, alternating_window):
        power = SpectralAnalyzer().analyze(alternating_window)

        assert power.lf > 0
        assert power.hf > 0

    def test_hf_oscillation(self):
        """An oscillation every 4 beats lands in the HF band."""
        window = [850.0 + 40.0 * np.sin(2 * np.pi * i / 4) for i in range(30)]

        power = SpectralAnalyzer().analyze(window)

        assert power.hf > power.lf
        assert power.lf_hf_ratio < 1.0

    def test_lf_oscillation(self):
        """An oscillation every 10 beats lands in the LF band."""
        window = [850.0 + 40.0 * np.sin(2 * np.pi * i / 10) for i in range(30)]

        power = SpectralAnalyzer().analyze(window)

        assert power.lf > power.hf
        assert power.lf_hf_ratio > 1.0

    def test_matches_periodogram(self, random_window):
        """Band powers equal the rectangle-rule sum of the zero-padded periodogram."""
        fs, nfft = 4.0, 128
        positions = np.linspace(0.0, 29.0, 120)
        evenly = np.interp(positions, np.arange(30), random_window)
        centred = evenly - evenly.mean()
        spectrum = np.fft.rfft(centred, n=nfft)[: nfft // 2]
        psd = np.abs(spectrum) ** 2 / (fs * nfft)
        freqs = np.arange(nfft // 2) * fs / nfft
        df = fs / nfft
        expected_lf = psd[(freqs >= 0.04) & (freqs < 0.15)].sum() * df
        expected_hf = psd[(freqs >= 0.15) & (freqs <= 0.4)].sum() * df

        power = SpectralAnalyzer().analyze(random_window)

        assert power.lf == pytest.approx(expected_lf)
        assert power.hf == pytest.approx(expected_hf)

    def test_idempotent(self, random_window):
        analyzer = SpectralAnalyzer()

        first = analyzer.analyze(random_window)
        second = analyzer.analyze(random_window)

        assert first == second

    def test_short_windows(self):
        analyzer = SpectralAnalyzer()

        assert analyzer.analyze([]) == BandPower()
        assert analyzer.analyze([800.0]) == BandPower()

        power = analyzer.analyze([800.0, 900.0])
        assert power.lf >= 0
        assert power.hf >= 0

    def test_psd_shape(self):
        freqs, psd = power_spectral_density(np.zeros(120))

        assert len(freqs) == 64
        assert len(psd) == 64
        assert freqs[1] == pytest.approx(4.0 / 128)
        assert np.all(psd == 0)


class TestBandPower:
    """Tests for BandPower structure."""

    def test_ratio(self):
        assert BandPower(lf=300.0, hf=150.0).lf_hf_ratio == 2.0
        assert BandPower(lf=300.0, hf=0.0).lf_hf_ratio == 0.0

    def test_to_dict(self):
        result = BandPower(lf=120.5, hf=80.25).to_dict()

        assert result["lf"] == 120.5
        assert result["hf"] == 80.25
        assert result["lf_hf_ratio"] == pytest.approx(1.5016, abs=1e-4)
