"""Distance, similarity and mean helpers over fixed-length float vectors."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

Vector = Sequence[float] | np.ndarray


def as_vector(vec: Vector) -> np.ndarray:
    """Return a 1D float copy of ``vec``."""
    array = np.array(vec, dtype=float)
    if array.ndim != 1:
        msg = f"vector must be 1D, got {array.ndim}D"
        raise ValueError(msg)
    return array


def _checked_pair(v1: Vector | None, v2: Vector | None, action: str) -> tuple[np.ndarray, np.ndarray]:
    if v1 is None or v2 is None:
        msg = f"{action} attempt failed: vector is None"
        raise ValueError(msg)
    left = np.asarray(v1, dtype=float)
    right = np.asarray(v2, dtype=float)
    if left.shape != right.shape:
        msg = (
            f"{action} attempt failed: vectors are of different lengths, "
            f"got {left.size} and {right.size}"
        )
        raise ValueError(msg)
    return left, right


def euclidean_distance(v1: Vector | None, v2: Vector | None) -> float:
    """Euclidean (L2) distance between two vectors of equal length."""
    left, right = _checked_pair(v1, v2, "distance measurement")
    return float(np.linalg.norm(left - right))


def cosine_similarity(v1: Vector | None, v2: Vector | None) -> float:
    """Cosine similarity between two vectors; 0.0 when either has zero norm."""
    left, right = _checked_pair(v1, v2, "similarity measurement")
    norm_left = float(np.linalg.norm(left))
    norm_right = float(np.linalg.norm(right))
    if norm_left == 0.0 or norm_right == 0.0:
        return 0.0
    return float(np.dot(left, right) / norm_left / norm_right)


def vec_mean(vectors: Iterable[Vector]) -> np.ndarray | None:
    """Coordinate-wise mean of ``vectors``, or None when there are none.

    The iterable is consumed exactly once, so lazy generators are fine.
    """
    rows = [np.asarray(vec, dtype=float) for vec in vectors]
    if not rows:
        return None
    lengths = {row.size for row in rows}
    if len(lengths) != 1:
        msg = f"cannot average vectors of different lengths: {sorted(lengths)}"
        raise ValueError(msg)
    return np.vstack(rows).mean(axis=0)
