"""Waveshaper transfer curves.

Pure functions of one scalar amount, tabulated over the input range
[-1, 1]. Tables are cached by the amount rounded to 1e-4, so a control
sweeping through nearly identical values reuses the same array; cached
tables are read-only.
"""

from functools import lru_cache

import numpy as np

CURVE_SIZE = 4096


def curve_domain(n=CURVE_SIZE):
    """Evenly spaced inputs over [-1, 1], exactly antisymmetric about 0."""
    x = np.linspace(-1.0, 1.0, n)
    return 0.5 * (x - x[::-1])


def saturation_transfer(x, amount):
    """f(x) = (pi + d) x / (pi + d |x|) with drive d = 10 * amount."""
    drive = amount * 10.0
    if drive == 0:
        return np.array(x, dtype=np.float64)
    return (np.pi + drive) * x / (np.pi + drive * np.abs(x))


def soft_clip_transfer(x, amount):
    """f(x) = tanh(k x) / tanh(k) with k = 1 + 2 * amount."""
    if amount == 0:
        return np.array(x, dtype=np.float64)
    k = 1.0 + amount * 2.0
    return np.tanh(k * x) / np.tanh(k)


TRANSFERS = {
    "saturation": saturation_transfer,
    "soft_clip": soft_clip_transfer,
}


@lru_cache(maxsize=128)
def _table(kind, amount, n):
    table = TRANSFERS[kind](curve_domain(n), amount)
    table.setflags(write=False)
    return table


def make_curve(kind, amount, n=CURVE_SIZE):
    """Lookup table for a named transfer at the given amount."""
    if kind not in TRANSFERS:
        raise ValueError(f"Unknown curve '{kind}'. Options: {list(TRANSFERS.keys())}")
    return _table(kind, round(float(amount), 4), n)


def saturation_curve(amount, n=CURVE_SIZE):
    return make_curve("saturation", amount, n)


def soft_clip_curve(amount, n=CURVE_SIZE):
    return make_curve("soft_clip", amount, n)
