"""Convolution — stereo FIR filtering with a long impulse response.

Two modes, same result:
  - whole-buffer (block_size=None): FFT convolution via scipy, with the
    tail carried to the next call (overlap-add). Used for offline renders.
  - partitioned (block_size=B): uniformly partitioned overlap-save with a
    frequency-domain delay line. Every call must be exactly B frames.
    Used by the real-time path, where the cost per block has to be flat.
"""

import numpy as np
from scipy.signal import fftconvolve


class Convolver:
    """Convolve a (channels, frames) stream with a (channels, taps) response."""

    def __init__(self, ir, block_size=None):
        ir = np.asarray(ir, dtype=np.float64)
        if ir.ndim != 2 or ir.shape[1] == 0:
            raise ValueError(f"impulse response must be (channels, taps), got {ir.shape}")
        self.channels = ir.shape[0]
        self.taps = ir.shape[1]
        self.block_size = block_size
        if block_size is None:
            self._ir = ir
            self._tail = np.zeros((self.channels, self.taps - 1))
        else:
            self._prepare_partitions(ir)
            self._fdl = np.zeros_like(self._spectra)
            self._prev = np.zeros((self.channels, block_size))

    def _prepare_partitions(self, ir):
        B = self.block_size
        parts = -(-self.taps // B)
        padded = np.zeros((self.channels, parts * B))
        padded[:, :self.taps] = ir
        blocks = padded.reshape(self.channels, parts, B)
        # Each partition zero-padded to 2B for overlap-save
        self._spectra = np.fft.rfft(blocks, n=2 * B, axis=2)

    def set_response(self, ir):
        """Swap the impulse response, keeping the input history."""
        ir = np.asarray(ir, dtype=np.float64)
        if ir.shape[0] != self.channels:
            raise ValueError("impulse response channel count changed")
        if self.block_size is None:
            tail = np.zeros((self.channels, ir.shape[1] - 1))
            keep = min(tail.shape[1], self._tail.shape[1])
            tail[:, :keep] = self._tail[:, :keep]
            self._ir = ir
            self._tail = tail
            self.taps = ir.shape[1]
            return
        old_parts = self._spectra.shape[1]
        self.taps = ir.shape[1]
        self._prepare_partitions(ir)
        fdl = np.zeros_like(self._spectra)
        keep = min(old_parts, fdl.shape[1])
        fdl[:, :keep] = self._fdl[:, :keep]
        self._fdl = fdl

    def process(self, x):
        if self.block_size is None:
            return self._process_whole(x)
        return self._process_partitioned(x)

    def _process_whole(self, x):
        n = x.shape[1]
        if n == 0:
            return np.zeros_like(x)
        y = fftconvolve(x, self._ir, axes=1)
        acc = y
        tail_len = self._tail.shape[1]
        acc[:, :tail_len] += self._tail
        self._tail = acc[:, n:].copy()
        return acc[:, :n].copy()

    def _process_partitioned(self, x):
        B = self.block_size
        if x.shape[1] != B:
            raise ValueError(f"partitioned convolver expects {B} frames, got {x.shape[1]}")
        buf = np.concatenate([self._prev, x], axis=1)
        self._prev = x.copy()
        self._fdl = np.roll(self._fdl, 1, axis=1)
        self._fdl[:, 0] = np.fft.rfft(buf, axis=1)
        spectrum = np.sum(self._fdl * self._spectra, axis=1)
        return np.fft.irfft(spectrum, n=2 * B, axis=1)[:, B:]

    def reset(self):
        if self.block_size is None:
            self._tail[:] = 0.0
        else:
            self._fdl[:] = 0.0
            self._prev[:] = 0.0
