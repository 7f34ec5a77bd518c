"""Numba-based DSP kernels — the per-sample inner loops of the mastering chain.

Each function processes one channel of a block and returns the output.
Stateful kernels take a small float64 ``state`` array and update it in
place so the next block continues where this one stopped.
"""

import math

import numpy as np
from numba import njit


@njit(cache=True)
def one_pole_lowpass(audio, coeff, y1):
    """One-pole lowpass filter starting from output state y1.

    y[n] = (1 - coeff) * x[n] + coeff * y[n-1]

    Fed a constant target this is an exponential approach, which is how
    parameter ramps are generated.
    """
    n = len(audio)
    out = np.zeros(n)
    for i in range(n):
        y1 = (1.0 - coeff) * audio[i] + coeff * y1
        out[i] = y1
    return out


@njit(cache=True)
def biquad_block(x, b0, b1, b2, a1, a2, state):
    """Direct Form 1 biquad with fixed coefficients.

    state = [x1, x2, y1, y2]
    """
    n = len(x)
    out = np.zeros(n)
    x1 = state[0]
    x2 = state[1]
    y1 = state[2]
    y2 = state[3]
    for i in range(n):
        xi = x[i]
        y = b0 * xi + b1 * x1 + b2 * x2 - a1 * y1 - a2 * y2
        x2 = x1
        x1 = xi
        y2 = y1
        y1 = y
        out[i] = y
    state[0] = x1
    state[1] = x2
    state[2] = y1
    state[3] = y2
    return out


@njit(cache=True)
def biquad_block_varying(x, b0, b1, b2, a1, a2, state):
    """Direct Form 1 biquad with one coefficient set per sample.

    Same state layout as biquad_block, so a filter can switch between the
    two from block to block without a discontinuity.
    """
    n = len(x)
    out = np.zeros(n)
    x1 = state[0]
    x2 = state[1]
    y1 = state[2]
    y2 = state[3]
    for i in range(n):
        xi = x[i]
        y = b0[i] * xi + b1[i] * x1 + b2[i] * x2 - a1[i] * y1 - a2[i] * y2
        x2 = x1
        x1 = xi
        y2 = y1
        y1 = y
        out[i] = y
    state[0] = x1
    state[1] = x2
    state[2] = y1
    state[3] = y2
    return out


@njit(cache=True)
def waveshape(audio, curve):
    """Table-lookup waveshaper with linear interpolation.

    The table spans input [-1, 1]; inputs outside it hold the end values.
    """
    n = len(audio)
    m = len(curve)
    out = np.zeros(n)
    for i in range(n):
        v = (m - 1) * (audio[i] + 1.0) * 0.5
        if v <= 0.0:
            out[i] = curve[0]
        elif v >= m - 1:
            out[i] = curve[m - 1]
        else:
            k = int(v)
            frac = v - k
            out[i] = curve[k] + (curve[k + 1] - curve[k]) * frac
    return out


@njit(cache=True)
def compressor_gain(left, right, threshold, ratio, attack, release, knee, sr, state):
    """Stereo-linked feed-forward compressor. Returns the linear gain per sample.

    threshold/ratio/attack/release are per-sample arrays so that automated
    parameters can move inside a block. ratio must already be >= 1.
    state = [smoothed gain change in dB]
    """
    n = len(left)
    gain = np.ones(n)
    env = state[0]
    for i in range(n):
        peak = abs(left[i])
        r_abs = abs(right[i])
        if r_abs > peak:
            peak = r_abs
        if peak > 1e-9:
            level = 20.0 * math.log10(peak)
        else:
            level = -180.0
        over = level - threshold[i]
        r = ratio[i]
        if knee > 0.0 and 2.0 * abs(over) <= knee:
            h = over + 0.5 * knee
            target = level + (1.0 / r - 1.0) * h * h / (2.0 * knee)
        elif over > 0.0:
            target = threshold[i] + over / r
        else:
            target = level
        reduction = target - level

        t = attack[i] if reduction < env else release[i]
        if t > 0.0:
            coeff = math.exp(-1.0 / (t * sr))
        else:
            coeff = 0.0
        env = coeff * env + (1.0 - coeff) * reduction
        gain[i] = 10.0 ** (env / 20.0)
    state[0] = env
    return gain
