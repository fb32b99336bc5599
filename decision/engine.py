"""
Decision engine: trigger/ignore decision, confidence label and reason code.

All functions here are pure. They read only their arguments and the
read-only POLICY_TABLE, so they are safe to call from concurrent
request handlers without locking.

    NormalizedScores + InterventionPolicy
        -> decide()                 triggered | ignored
        -> classify_confidence()    high | borderline | low
        -> resolve_reason_code()    one of five codes, fixed precedence
        -> DecisionRecord           immutable, one per analyzed item
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from decision.normalizer import NormalizedScores, normalize_count
from decision.policy import InterventionPolicy, get_thresholds, resolve_policy


class SystemDecision(str, Enum):
    triggered = "triggered"
    ignored = "ignored"


class DecisionConfidence(str, Enum):
    high = "high"
    borderline = "borderline"
    low = "low"


class DecisionReasonCode(str, Enum):
    low_scores = "low_scores"
    high_scores = "high_scores"
    policy_blocked = "policy_blocked"
    retrieval_bridge_used = "retrieval_bridge_used"
    insufficient_concepts = "insufficient_concepts"


@dataclass(frozen=True)
class RetrievalSignal:
    """Outcome of the optional bridge-question step."""
    retrieval_used: bool = False
    retrieved_count: int = 0


NO_RETRIEVAL = RetrievalSignal()


@dataclass(frozen=True)
class DecisionRecord:
    system_decision: SystemDecision
    decision_confidence: DecisionConfidence
    decision_reason_code: DecisionReasonCode
    scores: NormalizedScores
    intervention_policy: InterventionPolicy
    retrieval_used: bool = False
    retrieved_count: int = 0

    @property
    def triggered(self) -> bool:
        return self.system_decision is SystemDecision.triggered

    def to_dict(self) -> Dict[str, Any]:
        """Caller-facing serialization; every key is always present."""
        return {
            "system_decision": self.system_decision.value,
            "decision_confidence": self.decision_confidence.value,
            "decision_reason_code": self.decision_reason_code.value,
            "relevance_score": self.scores.relevance_score,
            "learning_value_score": self.scores.learning_value_score,
            "concept_count": self.scores.concept_count,
            "intervention_policy": self.intervention_policy.value,
            "retrieval_used": self.retrieval_used,
            "retrieved_count": self.retrieved_count,
        }


def parse_decision(value: Any) -> Optional[SystemDecision]:
    """Read an asserted decision; anything unrecognized counts as absent."""
    if isinstance(value, SystemDecision):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        for decision in SystemDecision:
            if decision.value == key:
                return decision
    return None


def decide(
    scores: NormalizedScores,
    policy: Any,
    explicit_decision: Any = None,
) -> SystemDecision:
    """
    Compute the trigger/ignore decision.

    An explicit decision is honoured only when one is actually supplied;
    the primary analysis flow never passes one, so the server's own
    threshold check is authoritative there. The telemetry relay passes the
    caller-asserted decision, which then wins over the scores.
    """
    asserted = parse_decision(explicit_decision)
    if asserted is not None:
        return asserted

    threshold = get_thresholds(policy).trigger
    if scores.relevance_score >= threshold and scores.learning_value_score >= threshold:
        return SystemDecision.triggered
    return SystemDecision.ignored


def classify_confidence(scores: NormalizedScores, policy: Any) -> DecisionConfidence:
    """
    Three-level confidence from the policy bands.

    High needs every signal at or above its high band; low needs any one
    signal under its low band. High is checked first.
    """
    bands = get_thresholds(policy)
    if (
        scores.relevance_score >= bands.high_relevance
        and scores.learning_value_score >= bands.high_learning
        and scores.concept_count >= bands.high_concept_count
    ):
        return DecisionConfidence.high
    if (
        scores.relevance_score < bands.low_relevance
        or scores.learning_value_score < bands.low_learning
        or scores.concept_count < bands.low_concept_count
    ):
        return DecisionConfidence.low
    return DecisionConfidence.borderline


def resolve_reason_code(
    decision: SystemDecision,
    scores: NormalizedScores,
    policy: Any,
    retrieval_used: bool = False,
) -> DecisionReasonCode:
    """
    Single explanatory code for a decision; first matching rule wins.

    1. retrieval_bridge_used  triggered and a bridge question was added
    2. insufficient_concepts  too few concepts (unless low scores already
                              explain an ignored decision)
    3. high_scores            triggered
    4. low_scores             ignored with a score under the trigger
    5. policy_blocked         ignored although both scores met the trigger

    Rule 2 is narrower than a strict first-match list: an ignored decision
    with a score under the trigger reports low_scores even when concepts
    are also short, so the code names the cause that blocked the decision.
    """
    thresholds = get_thresholds(policy)
    triggered = decision is SystemDecision.triggered
    below_trigger = (
        scores.relevance_score < thresholds.trigger
        or scores.learning_value_score < thresholds.trigger
    )

    if retrieval_used and triggered:
        return DecisionReasonCode.retrieval_bridge_used

    if scores.concept_count < thresholds.min_concept_count and (triggered or not below_trigger):
        return DecisionReasonCode.insufficient_concepts

    if triggered:
        return DecisionReasonCode.high_scores

    if below_trigger:
        return DecisionReasonCode.low_scores

    return DecisionReasonCode.policy_blocked


def build_decision_record(
    scores: NormalizedScores,
    policy: Any = None,
    retrieval: RetrievalSignal = NO_RETRIEVAL,
    explicit_decision: Any = None,
) -> DecisionRecord:
    """Run decide -> confidence -> reason code and freeze the result."""
    resolved_policy = resolve_policy(policy)
    decision = decide(scores, resolved_policy, explicit_decision)
    retrieval_used = bool(retrieval.retrieval_used)
    retrieved_count = normalize_count(retrieval.retrieved_count) if retrieval_used else 0

    return DecisionRecord(
        system_decision=decision,
        decision_confidence=classify_confidence(scores, resolved_policy),
        decision_reason_code=resolve_reason_code(decision, scores, resolved_policy, retrieval_used),
        scores=scores,
        intervention_policy=resolved_policy,
        retrieval_used=retrieval_used,
        retrieved_count=retrieved_count,
    )
