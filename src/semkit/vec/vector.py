"""Vector math over fixed-dimension float vectors.

Pure functions: no hidden state, no I/O. Inputs are any float sequences
(lists, tuples, numpy arrays); outputs are plain Python floats and lists so
results serialize without numpy in the way.

Every pairwise operation checks dimensions and raises DimensionMismatchError
rather than truncating or padding.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from semkit.errors import (
    ComputationFailedError,
    DimensionMismatchError,
    InvalidInputError,
)

Vector = Sequence[float]


def _as_array(vector: Vector, name: str = "embedding") -> np.ndarray:
    if vector is None or len(vector) == 0:
        raise InvalidInputError(
            f"{name} must be a non-empty sequence",
            {"length": None if vector is None else len(vector)},
        )
    return np.asarray(vector, dtype=np.float64)


def _check_dimensions(a: Vector, b: Vector) -> None:
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Embedding dimensions must match. Got {len(a)} and {len(b)}",
            {"dimensions": [len(a), len(b)]},
        )


def is_positive_int(value: object) -> bool:
    """True for a real integer above zero; bools and floats do not count."""
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool) and value > 0


def dot_product(a: Vector, b: Vector) -> float:
    """Sum of element-wise products."""
    va = _as_array(a, "first embedding")
    vb = _as_array(b, "second embedding")
    _check_dimensions(a, b)
    return float(np.dot(va, vb))


def magnitude(vector: Vector) -> float:
    """Euclidean (L2) norm."""
    return float(np.linalg.norm(_as_array(vector)))


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine of the angle between a and b.

    Raises:
        DimensionMismatchError: lengths differ (checked before magnitudes).
        ComputationFailedError: either vector has zero magnitude, holds
            inf/nan, or is too large for the result to be finite.
    """
    va = _as_array(a, "first embedding")
    vb = _as_array(b, "second embedding")
    _check_dimensions(a, b)

    if not (np.isfinite(va).all() and np.isfinite(vb).all()):
        raise ComputationFailedError("Cannot compute cosine similarity with non-finite components")

    with np.errstate(over="ignore", invalid="ignore"):
        mag_a = float(np.linalg.norm(va))
        mag_b = float(np.linalg.norm(vb))
        dot = float(np.dot(va, vb))
    if mag_a == 0 or mag_b == 0:
        raise ComputationFailedError(
            "Cannot compute cosine similarity with zero-magnitude vector",
            {"magnitudes": [mag_a, mag_b]},
        )
    score = dot / (mag_a * mag_b)
    if not np.isfinite(score):
        raise ComputationFailedError(
            "Cosine similarity overflowed",
            {"magnitudes": [mag_a, mag_b]},
        )
    return score


def euclidean_distance(a: Vector, b: Vector) -> float:
    va = _as_array(a, "first embedding")
    vb = _as_array(b, "second embedding")
    _check_dimensions(a, b)
    return float(np.linalg.norm(va - vb))


def normalize(vector: Vector) -> list[float]:
    """Scale to unit length, same direction."""
    v = _as_array(vector)
    mag = float(np.linalg.norm(v))
    if mag == 0:
        raise ComputationFailedError("Cannot normalize zero-magnitude vector")
    return (v / mag).tolist()


def centroid(vectors: Sequence[Vector]) -> list[float]:
    """Element-wise mean of a non-empty set of equal-length vectors."""
    if vectors is None or len(vectors) == 0:
        raise InvalidInputError("Cannot compute centroid of empty sequence")

    dim = len(vectors[0])
    for position, vector in enumerate(vectors):
        if len(vector) != dim:
            raise DimensionMismatchError(
                "All embeddings must have same dimensions",
                {"dimensions": [dim, len(vector)], "position": position},
            )
    if dim == 0:
        raise InvalidInputError("Cannot compute centroid of empty vectors")

    matrix = np.asarray(vectors, dtype=np.float64)
    return matrix.mean(axis=0).tolist()


def top_k_similar(
    query: Vector,
    candidates: Sequence[Vector],
    k: int = 10,
) -> list[tuple[int, float]]:
    """Rank candidates by cosine similarity to query.

    Returns up to min(k, len(candidates)) (original_index, score) pairs,
    descending by score, ties in candidate order.

    A candidate that cannot be scored (wrong dimension, zero magnitude,
    non-finite components) gets -inf and sorts last; it never fails the
    whole scan.
    """
    q = _as_array(query, "query")

    if candidates is None or len(candidates) == 0:
        return []

    if not is_positive_int(k):
        raise InvalidInputError("k must be positive", {"k": k})

    dim = len(q)
    scores = np.full(len(candidates), -np.inf, dtype=np.float64)
    query_norm = float(np.linalg.norm(q))

    matching = [i for i, c in enumerate(candidates) if c is not None and len(c) == dim]
    if matching and query_norm != 0:
        matrix = np.asarray([candidates[i] for i in matching], dtype=np.float64)
        positions = np.asarray(matching)
        # inf/nan components yield nan or inf scores; those become -inf below
        with np.errstate(invalid="ignore", over="ignore"):
            norms = np.linalg.norm(matrix, axis=1)
            dots = matrix @ q
            valid = norms != 0
            scores[positions[valid]] = dots[valid] / (norms[valid] * query_norm)
        scores[~np.isfinite(scores)] = -np.inf

    # Stable sort on negated scores: descending, ties keep candidate order
    order = np.argsort(-scores, kind="stable")[: min(k, len(candidates))]
    return [(int(i), float(scores[i])) for i in order]
