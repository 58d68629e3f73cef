"""Small vector and grid-index primitives shared by the 2D and 3D code paths."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

SUPPORTED_DIMENSIONS = (2, 3)


def squared_norms(vectors: NDArray[np.floating]) -> NDArray[np.floating]:
    """Return |v|^2 for each row vector."""
    return np.einsum("ij,ij->i", vectors, vectors)


def norms(vectors: NDArray[np.floating]) -> NDArray[np.floating]:
    """Return |v| for each row vector."""
    return np.sqrt(squared_norms(vectors))


def two_largest(values: NDArray[np.floating]) -> tuple[float, float]:
    """
    Return the two largest entries of a 1D array, largest first.

    Missing entries (arrays shorter than two) count as zero.
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        return 0.0, 0.0
    if values.size == 1:
        return float(values[0]), 0.0
    top = np.partition(values, -2)[-2:]
    return float(top[1]), float(top[0])


def linear_index(
    grid_index: NDArray[np.integer], shape: NDArray[np.integer]
) -> NDArray[np.integer]:
    """
    Convert integer grid indices to linear (row-major) indices.

    Args:
        grid_index: Array of shape (N, D) or (D,).
        shape: Grid extent per axis, shape (D,).

    Returns:
        Linear indices, shape (N,) or scalar.
    """
    return np.ravel_multi_index(np.asarray(grid_index).T, tuple(int(s) for s in shape))


def grid_index(linear: int, shape: NDArray[np.integer]) -> tuple[int, ...]:
    """Convert a linear cell index back to its grid index tuple."""
    return tuple(int(c) for c in np.unravel_index(linear, tuple(int(s) for s in shape)))
