"""
Score normalization for untrusted model output.

normalize() is total: whatever the model sends back (strings, None,
NaN, infinities, negative or oversized numbers, booleans) comes out as
finite scores in [0, 1] and a non-negative integer concept count.
"""

from dataclasses import dataclass
import math
from typing import Any


@dataclass(frozen=True)
class NormalizedScores:
    relevance_score: float
    learning_value_score: float
    concept_count: int


def _to_finite_float(value: Any) -> float:
    # bool is an int subclass; a model answering `true` is not a score
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def clamp01(value: Any) -> float:
    """Clamp any input into [0, 1]; non-finite or non-numeric becomes 0."""
    number = _to_finite_float(value)
    return max(0.0, min(1.0, number))


def normalize_count(value: Any) -> int:
    """Floor to an integer and clamp at zero; non-finite or non-numeric becomes 0."""
    number = _to_finite_float(value)
    return max(0, math.floor(number))


def normalize(raw_relevance: Any, raw_learning: Any, raw_concept_count: Any) -> NormalizedScores:
    return NormalizedScores(
        relevance_score=clamp01(raw_relevance),
        learning_value_score=clamp01(raw_learning),
        concept_count=normalize_count(raw_concept_count),
    )
