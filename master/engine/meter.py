"""Spectrum tap — byte-scaled magnitude spectrum of the chain output.

Same algorithm as a browser analyser: keep the latest fft_size downmixed
samples, Blackman window, |FFT| / fft_size, exponential smoothing across
reads, convert to dB, map [min_db, max_db] onto 0..255.
"""

import numpy as np
from scipy.signal.windows import blackman

ANALYZER_FFT_SIZE = 4096
SMOOTHING_TIME_CONSTANT = 0.85
METER_BINS = 1024
MIN_DB = -100.0
MAX_DB = -30.0


class SpectrumAnalyser:

    def __init__(self, fft_size=ANALYZER_FFT_SIZE, smoothing=SMOOTHING_TIME_CONSTANT,
                 min_db=MIN_DB, max_db=MAX_DB):
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_db = min_db
        self.max_db = max_db
        self._window = blackman(fft_size, sym=False)
        self._ring = np.zeros(fft_size)
        self._smoothed = np.zeros(fft_size // 2)

    def push(self, block):
        """Feed a (channels, frames) block; keeps only the latest fft_size samples."""
        mono = block.mean(axis=0) if block.ndim == 2 else block
        n = len(mono)
        if n >= self.fft_size:
            self._ring[:] = mono[-self.fft_size:]
        elif n:
            self._ring = np.roll(self._ring, -n)
            self._ring[-n:] = mono

    def byte_frequency_data(self, bins=METER_BINS):
        spectrum = np.fft.rfft(self._ring * self._window)[:self.fft_size // 2]
        mag = np.abs(spectrum) / self.fft_size
        tau = self.smoothing
        self._smoothed = tau * self._smoothed + (1.0 - tau) * mag
        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(self._smoothed[:bins])
        scaled = 255.0 * (db - self.min_db) / (self.max_db - self.min_db)
        return np.clip(np.floor(scaled), 0, 255).astype(np.uint8)

    def reset(self):
        self._ring[:] = 0.0
        self._smoothed[:] = 0.0
