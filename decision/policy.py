"""
Intervention policies and their threshold table.

The table is built once at import time and never mutated; every request
reads the same PolicyThresholds instances.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
import logging

logger = logging.getLogger(__name__)


class InterventionPolicy(str, Enum):
    focused = "focused"
    aggressive = "aggressive"


DEFAULT_POLICY = InterventionPolicy.focused


@dataclass(frozen=True)
class PolicyThresholds:
    """Numeric thresholds that one intervention policy applies."""
    trigger: float
    high_relevance: float
    high_learning: float
    high_concept_count: int
    low_relevance: float
    low_learning: float
    low_concept_count: int
    min_concept_count: int

    def __post_init__(self):
        if not (self.low_relevance <= self.trigger <= self.high_relevance):
            raise ValueError("relevance bands must satisfy low <= trigger <= high")
        if not (self.low_learning <= self.trigger <= self.high_learning):
            raise ValueError("learning bands must satisfy low <= trigger <= high")
        if not (self.min_concept_count <= self.low_concept_count <= self.high_concept_count):
            raise ValueError("concept counts must satisfy min <= low <= high")


POLICY_TABLE: Mapping[InterventionPolicy, PolicyThresholds] = MappingProxyType({
    InterventionPolicy.focused: PolicyThresholds(
        trigger=0.75,
        high_relevance=0.85,
        high_learning=0.85,
        high_concept_count=6,
        low_relevance=0.65,
        low_learning=0.65,
        low_concept_count=4,
        min_concept_count=4,
    ),
    InterventionPolicy.aggressive: PolicyThresholds(
        trigger=0.6,
        high_relevance=0.75,
        high_learning=0.75,
        high_concept_count=4,
        low_relevance=0.55,
        low_learning=0.55,
        low_concept_count=2,
        min_concept_count=2,
    ),
})


def resolve_policy(value: Any) -> InterventionPolicy:
    """
    Map a caller-supplied policy name onto an InterventionPolicy.

    Unknown, empty or wrong-typed values fall back to the focused policy
    instead of failing the request.
    """
    if isinstance(value, InterventionPolicy):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        for policy in InterventionPolicy:
            if policy.value == key:
                return policy
        if key:
            logger.warning(f"Unknown intervention policy '{value}', falling back to {DEFAULT_POLICY.value}")
    return DEFAULT_POLICY


def get_thresholds(policy: Any) -> PolicyThresholds:
    """Look up the thresholds for a policy (or policy name)."""
    return POLICY_TABLE[resolve_policy(policy)]
