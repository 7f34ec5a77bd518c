"""Test the stereo convolver in both modes.

Run: uv run python -m pytest tests/test_convolution.py
"""

import numpy as np
import os
import sys

import pytest
from scipy.signal import fftconvolve

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from primitives.convolution import Convolver


def signals(n=640, taps=200, seed=5):
    rng = np.random.RandomState(seed)
    return rng.uniform(-1, 1, (2, n)), rng.uniform(-1, 1, (2, taps))


def test_whole_buffer_matches_direct():
    x, ir = signals()
    out = Convolver(ir).process(x)
    expected = fftconvolve(x, ir, axes=1)[:, :x.shape[1]]
    assert np.allclose(out, expected, atol=1e-10)


def test_whole_buffer_tail_carries():
    x, ir = signals()
    conv = Convolver(ir)
    split = np.concatenate([conv.process(x[:, :100]), conv.process(x[:, 100:])], axis=1)
    assert np.allclose(split, Convolver(ir).process(x), atol=1e-10)


def test_partitioned_matches_whole():
    x, ir = signals()
    conv = Convolver(ir, block_size=64)
    blocks = [conv.process(x[:, i:i + 64]) for i in range(0, x.shape[1], 64)]
    assert np.allclose(np.concatenate(blocks, axis=1), Convolver(ir).process(x), atol=1e-10)


def test_partitioned_rejects_wrong_block():
    x, ir = signals()
    with pytest.raises(ValueError):
        Convolver(ir, block_size=64).process(x[:, :10])


def test_swap_response():
    x, ir = signals()
    conv = Convolver(ir, block_size=64)
    conv.set_response(ir * 0.5)
    out = conv.process(x[:, :64])
    assert np.allclose(out, 0.5 * Convolver(ir).process(x[:, :64]), atol=1e-10)


if __name__ == "__main__":
    test_whole_buffer_matches_direct()
    test_whole_buffer_tail_carries()
    test_partitioned_matches_whole()
    print("Done!")
