"""Test mid/side channel matrices.

Run: uv run python -m pytest tests/test_matrix.py
"""

import numpy as np
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from primitives.matrix import (
    MATRIX_TYPES, apply_matrix, get_matrix, mid_side_decode, mid_side_encode,
)


def stereo(n=1000, seed=3):
    return np.random.RandomState(seed).uniform(-1.0, 1.0, (2, n))


def test_encode_values():
    x = stereo()
    ms = apply_matrix(mid_side_encode(), x)
    assert np.allclose(ms[0], 0.5 * (x[0] + x[1]))
    assert np.allclose(ms[1], 0.5 * (x[0] - x[1]))


def test_decode_sign_convention():
    # Positive side raises left, lowers right
    ms = np.array([[0.2], [0.1]])
    lr = apply_matrix(mid_side_decode(), ms)
    assert np.allclose(lr[:, 0], [0.3, 0.1])


def test_round_trip_is_identity():
    x = stereo()
    y = apply_matrix(mid_side_decode(), apply_matrix(mid_side_encode(), x))
    assert np.allclose(y, x, atol=1e-15)
    assert np.allclose(mid_side_decode() @ mid_side_encode(), np.eye(2))


def test_mono_has_no_side():
    mono = np.vstack([np.linspace(-1, 1, 50)] * 2)
    ms = apply_matrix(get_matrix("ms_encode"), mono)
    assert np.all(ms[1] == 0.0)


def test_named_matrices():
    assert sorted(MATRIX_TYPES) == ["ms_decode", "ms_encode"]
    assert np.array_equal(get_matrix("ms_decode"), mid_side_decode())


def test_unknown_matrix():
    with pytest.raises(ValueError):
        get_matrix("hadamard")


if __name__ == "__main__":
    test_encode_values()
    test_decode_sign_convention()
    test_round_trip_is_identity()
    test_mono_has_no_side()
    print("Done!")
