"""Vector math helpers (cosine similarity, dimension reduction)."""

import numpy as np


def normalize(vector: list[float]) -> list[float]:
    """L2-normalise a vector; a zero vector is returned unchanged."""
    arr = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr.tolist()
    return (arr / norm).tolist()


def reduce_dimensions(vector: list[float], target_dimensions: int) -> list[float]:
    """
    Reduce a vector to ``target_dimensions`` by block averaging.

    Each output component is the mean of a contiguous slice of the input.
    The result is L2-normalised. Vectors already at or below the target
    size are only normalised.
    """
    if target_dimensions <= 0:
        raise ValueError("target_dimensions must be positive")

    arr = np.asarray(vector, dtype=np.float64)
    if arr.size <= target_dimensions:
        return normalize(arr.tolist())

    ratio = arr.size / target_dimensions
    bounds = np.floor(np.arange(target_dimensions + 1) * ratio).astype(int)
    reduced = np.array(
        [arr[bounds[i] : bounds[i + 1]].mean() for i in range(target_dimensions)]
    )
    return normalize(reduced.tolist())


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two equal-length vectors (0.0 if either is zero)."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Vector dimensions differ: {va.shape[0]} != {vb.shape[0]}")

    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)
