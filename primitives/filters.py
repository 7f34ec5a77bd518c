"""Filters — biquad sections for the mastering chain. Built from scratch.

Coefficients follow the Audio EQ Cookbook in the flavour browsers use for
their biquad node: shelves have a fixed slope (S=1, ignoring Q), peaking
and lowpass sections are shaped by Q. Frequencies at or above Nyquist are
clamped to Nyquist, where the sections collapse to a plain gain.
"""

import numpy as np

from primitives.dsp import biquad_block, biquad_block_varying

FILTER_TYPES = ("lowpass", "lowshelf", "highshelf", "peaking")


def biquad_coeffs(kind, freq, q, gain_db, sr):
    """Normalized (b0, b1, b2, a1, a2) for one section.

    gain_db may be a scalar or an array (one value per sample); the
    returned coefficients follow its shape.
    """
    if kind not in FILTER_TYPES:
        raise ValueError(f"Unknown filter type '{kind}'. Options: {list(FILTER_TYPES)}")

    gain_db = np.asarray(gain_db, dtype=np.float64)
    A = 10.0 ** (gain_db / 40.0)

    if freq >= 0.5 * sr:
        one = np.ones_like(A)
        zero = np.zeros_like(A)
        b0 = A * A if kind == "lowshelf" else one
        return b0, zero, zero, zero, zero

    w0 = 2.0 * np.pi * freq / sr
    cos_w0 = np.cos(w0)
    sin_w0 = np.sin(w0)

    if kind == "lowpass":
        alpha = sin_w0 / (2.0 * q)
        a0 = 1.0 + alpha
        b0 = (1.0 - cos_w0) / 2.0 / a0
        b1 = (1.0 - cos_w0) / a0
        b2 = b0
        a1 = (-2.0 * cos_w0) / a0
        a2 = (1.0 - alpha) / a0
        ones = np.ones_like(A)
        return b0 * ones, b1 * ones, b2 * ones, a1 * ones, a2 * ones

    if kind == "peaking":
        alpha = sin_w0 / (2.0 * q)
        a0 = 1.0 + alpha / A
        b0 = (1.0 + alpha * A) / a0
        b1 = (-2.0 * cos_w0) / a0
        b2 = (1.0 - alpha * A) / a0
        a1 = (-2.0 * cos_w0) / a0
        a2 = (1.0 - alpha / A) / a0
        return b0, b1, b2, a1, a2

    alpha = sin_w0 / 2.0 * np.sqrt(2.0)  # S=1
    two_sqrt_A_alpha = 2.0 * np.sqrt(A) * alpha

    if kind == "lowshelf":
        a0 = (A + 1) + (A - 1) * cos_w0 + two_sqrt_A_alpha
        b0 = (A * ((A + 1) - (A - 1) * cos_w0 + two_sqrt_A_alpha)) / a0
        b1 = (2.0 * A * ((A - 1) - (A + 1) * cos_w0)) / a0
        b2 = (A * ((A + 1) - (A - 1) * cos_w0 - two_sqrt_A_alpha)) / a0
        a1 = (-2.0 * ((A - 1) + (A + 1) * cos_w0)) / a0
        a2 = ((A + 1) + (A - 1) * cos_w0 - two_sqrt_A_alpha) / a0
        return b0, b1, b2, a1, a2

    # highshelf
    a0 = (A + 1) - (A - 1) * cos_w0 + two_sqrt_A_alpha
    b0 = (A * ((A + 1) + (A - 1) * cos_w0 + two_sqrt_A_alpha)) / a0
    b1 = (-2.0 * A * ((A - 1) + (A + 1) * cos_w0)) / a0
    b2 = (A * ((A + 1) + (A - 1) * cos_w0 - two_sqrt_A_alpha)) / a0
    a1 = (2.0 * ((A - 1) - (A + 1) * cos_w0)) / a0
    a2 = ((A + 1) - (A - 1) * cos_w0 - two_sqrt_A_alpha) / a0
    return b0, b1, b2, a1, a2


class BiquadFilter:
    """Second-order (biquad) section — 5 coefficients, 4 state values per channel.

    Difference equation (Direct Form 1):
        y[n] = b0*x[n] + b1*x[n-1] + b2*x[n-2] - a1*y[n-1] - a2*y[n-2]

    Frequency and Q are fixed for the life of the filter; only the gain
    moves: either set_gain for a step, or ramp_coeffs for a per-sample
    trajectory that process applies inside one block.
    """

    def __init__(self, kind, freq, q, gain_db, sr, channels=2):
        self.kind = kind
        self.freq = float(freq)
        self.q = float(q)
        self.sr = sr
        self.state = np.zeros((channels, 4), dtype=np.float64)
        self.set_gain(gain_db)

    def set_gain(self, gain_db):
        self.gain_db = float(gain_db)
        self.coeffs = tuple(float(c) for c in
                            biquad_coeffs(self.kind, self.freq, self.q, self.gain_db, self.sr))

    def process(self, x, ch, ramp=None):
        """Filter one channel block. ch selects the state row.

        ramp is an optional tuple of per-sample coefficient arrays from
        ramp_coeffs, shared between the channels of one block.
        """
        if ramp is None:
            b0, b1, b2, a1, a2 = self.coeffs
            return biquad_block(x, b0, b1, b2, a1, a2, self.state[ch])
        b0, b1, b2, a1, a2 = ramp
        return biquad_block_varying(x, b0, b1, b2, a1, a2, self.state[ch])

    def ramp_coeffs(self, gain_db):
        """Per-sample coefficient arrays for a gain trajectory."""
        gain_db = np.asarray(gain_db, dtype=np.float64)
        return tuple(
            np.ascontiguousarray(np.broadcast_to(c, gain_db.shape), dtype=np.float64)
            for c in biquad_coeffs(self.kind, self.freq, self.q, gain_db, self.sr)
        )

    def reset(self):
        self.state[:] = 0.0


def magnitude_db(filt, freqs):
    """Magnitude response of a filter in dB at the given frequencies."""
    b0, b1, b2, a1, a2 = filt.coeffs
    z = np.exp(-1j * 2.0 * np.pi * np.asarray(freqs, dtype=np.float64) / filt.sr)
    h = (b0 + b1 * z + b2 * z * z) / (1.0 + a1 * z + a2 * z * z)
    return 20.0 * np.log10(np.abs(h))
