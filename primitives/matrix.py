"""Channel matrices — mixing a stereo pair into another basis and back.

The mastering chain uses the mid/side pair: encode L/R into M/S with a
halving matrix, process the side channel, decode back with the plain
sum/difference matrix. Encode followed by decode is the identity.
"""

import numpy as np


# ---------------------------------------------------------------------------
# Matrix constructors
# ---------------------------------------------------------------------------

def mid_side_encode() -> np.ndarray:
    """L/R -> M/S: M = (L + R) / 2, S = (L - R) / 2."""
    return np.array([[0.5, 0.5],
                     [0.5, -0.5]])


def mid_side_decode() -> np.ndarray:
    """M/S -> L/R: L = M + S, R = M - S."""
    return np.array([[1.0, 1.0],
                     [1.0, -1.0]])


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------

def apply_matrix(matrix: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Mix a (channels, frames) block through a (channels, channels) matrix."""
    return matrix @ x


MATRIX_TYPES = {
    "ms_encode": mid_side_encode,
    "ms_decode": mid_side_decode,
}


def get_matrix(name: str) -> np.ndarray:
    """Get the matrix array for a named channel mix."""
    if name not in MATRIX_TYPES:
        raise ValueError(f"Unknown matrix type '{name}'. Options: {list(MATRIX_TYPES.keys())}")
    return MATRIX_TYPES[name]()
