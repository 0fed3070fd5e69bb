"""Cosine similarity and stored-vector parsing.

The database orders candidates by pgvector distance; these helpers re-score
the returned rows locally so suggestions carry a comparable similarity.
"""

import json
import math
from collections.abc import Iterable, Sequence
from numbers import Real
from typing import Any

from codechat.logging_config import get_logger

logger = get_logger(__name__)


def cosine_similarity(
    vec_a: Sequence[float] | None,
    vec_b: Sequence[float] | None,
) -> float | None:
    """Cosine similarity of two vectors.

    Args:
        vec_a: First vector.
        vec_b: Second vector.

    Returns:
        Similarity in [-1, 1]; ``0.0`` when either vector has zero
        magnitude; ``None`` when a vector is missing, empty, or the
        lengths differ.
    """
    if not vec_a or not vec_b or len(vec_a) != len(vec_b):
        logger.debug(
            "Cosine similarity undefined for inputs",
            extra={
                "len_a": len(vec_a) if vec_a is not None else None,
                "len_b": len(vec_b) if vec_b is not None else None,
            },
        )
        return None

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for a, b in zip(vec_a, vec_b):
        dot += a * b
        norm_a += a * a
        norm_b += b * b

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot / math.sqrt(norm_a * norm_b)


def parse_embedding(value: Any) -> list[float] | None:
    """Coerce a stored embedding into a list of floats.

    Accepts pgvector/JSON text (``"[0.1,0.2]"``), lists and tuples of
    numbers, and array-likes exposing ``tolist()`` (numpy arrays returned
    by the pgvector adapter).

    Returns:
        The vector, or ``None`` when the value is missing or malformed.
    """
    if value is None:
        return None

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning("Stored embedding is not valid vector text")
            return None
    elif hasattr(value, "tolist"):
        value = value.tolist()

    if not isinstance(value, (list, tuple)):
        logger.warning(
            "Stored embedding has unexpected type",
            extra={"type": type(value).__name__},
        )
        return None

    if not _all_numbers(value):
        logger.warning("Stored embedding contains non-numeric elements")
        return None

    return [float(x) for x in value]


def _all_numbers(values: Iterable[Any]) -> bool:
    # bool is a Real subclass but never a valid component
    return all(isinstance(x, Real) and not isinstance(x, bool) for x in values)
