# Sliding window
WINDOW_CAPACITY = 30  # beats

# Physiological limits on a raw interval
INTERVAL_MIN_MS = 300.0
INTERVAL_MAX_MS = 2000.0

# Successive differences at or above this are motion/contact artifacts
DIFF_ARTIFACT_MS = 200.0
MIN_VALID_DIFFS = 2

# Spectral analysis
RESAMPLE_RATE_HZ = 4.0
LF_BAND = (0.04, 0.15)  # Hz, high edge excluded
HF_BAND = (0.15, 0.4)   # Hz, high edge included

MS_PER_MINUTE = 60000.0
