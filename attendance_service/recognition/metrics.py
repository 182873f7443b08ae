"""
Vector metrics module.

Distance and similarity between face embeddings. Pure functions, no state.
"""

import numpy as np
from typing import Sequence, Union

from ..errors import DimensionMismatch

VectorLike = Union[np.ndarray, Sequence[float]]

# Norms below this are treated as zero
_EPS = 1e-12


def _as_vector(values: VectorLike) -> np.ndarray:
    return np.asarray(values, dtype=np.float64).ravel()


def _check_dims(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape[-1] != b.shape[-1]:
        raise DimensionMismatch(a.shape[-1], b.shape[-1])


def distance(a: VectorLike, b: VectorLike) -> float:
    """
    Euclidean distance between two embeddings.

    Args:
        a: First embedding
        b: Second embedding

    Returns:
        Non-negative distance (0.0 for identical vectors)

    Raises:
        DimensionMismatch: If the embeddings differ in length
    """
    va, vb = _as_vector(a), _as_vector(b)
    _check_dims(va, vb)
    return float(np.linalg.norm(va - vb))


def similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity between two embeddings.

    A zero-norm vector is maximally dissimilar to everything (-1.0)
    instead of producing a division by zero.

    Args:
        a: First embedding
        b: Second embedding

    Returns:
        Similarity in range [-1, 1]

    Raises:
        DimensionMismatch: If the embeddings differ in length
    """
    va, vb = _as_vector(a), _as_vector(b)
    _check_dims(va, vb)

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a < _EPS or norm_b < _EPS:
        return -1.0

    value = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, value))


def distances_to_references(query: VectorLike, references: np.ndarray) -> np.ndarray:
    """
    Euclidean distances from one query to every row of a reference matrix.

    Args:
        query: Query embedding, shape (d,)
        references: Reference embeddings, shape (n, d)

    Returns:
        Array of n distances

    Raises:
        DimensionMismatch: If the query length differs from the references
    """
    q = _as_vector(query)
    refs = np.asarray(references, dtype=np.float64)
    if refs.ndim == 1:
        refs = refs.reshape(1, -1)
    if refs.shape[0] == 0:
        return np.empty(0, dtype=np.float64)
    _check_dims(q, refs)
    return np.linalg.norm(refs - q, axis=1)


def l2_normalize(values: VectorLike) -> np.ndarray:
    """
    Scale an embedding to unit length.

    Zero vectors are returned unchanged.
    """
    v = _as_vector(values)
    norm = float(np.linalg.norm(v))
    if norm < _EPS:
        return v
    return v / norm
