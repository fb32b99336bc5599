"""
Telemetry event builders.

Every event is one trace with one span. Decision events use a fixed key
set: keys are never omitted, absent values are sent as None / False / 0
so dashboards can rely on the same schema for every decision.

Nothing here may carry content, URLs, goals, questions or answers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from decision.engine import DecisionRecord

CONTENT_DECISION_TRACE = "signal_content_decision"
CONTENT_ANALYSIS_TRACE = "signal_content_analysis"
OBSERVABILITY_TRACE = "signal_observability_event"

DECIDE_SPAN = "decide_action"
USER_FEEDBACK_SPAN = "user_feedback"
RECALL_COMPLETED_SPAN = "recall_completed"
RECALL_GRADED_SPAN = "open_ended_recall_graded"

RETRIEVAL_AGENT_STEPS = ("retrieve_related", "generate_bridge_question")


@dataclass(frozen=True)
class TelemetryEvent:
    trace_name: str
    span_name: str
    trace_ref: str
    input: Dict[str, Any] = field(default_factory=dict)
    output: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    span_metadata: Dict[str, Any] = field(default_factory=dict)
    start_time: Optional[datetime] = None


def build_decision_input(
    record: DecisionRecord,
    content_type: Optional[str] = None,
    content_id: Optional[str] = None,
    agent_steps: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Flatten a DecisionRecord into the stable decision schema."""
    steps: List[str] = [step for step in (agent_steps or []) if isinstance(step, str)]
    return {
        "event_type": "content_evaluation",
        "content.type": content_type,
        "content_id": content_id,
        "system_decision": record.system_decision.value,
        "relevance_score": record.scores.relevance_score,
        "learning_value_score": record.scores.learning_value_score,
        "concept_count": record.scores.concept_count,
        "intervention_policy": record.intervention_policy.value,
        "decision_confidence": record.decision_confidence.value,
        "retrieval_used": record.retrieval_used,
        "retrieved_count": record.retrieved_count,
        "agent_steps": steps,
        "decision_reason_code": record.decision_reason_code.value,
    }


def decision_tags(record: DecisionRecord) -> Dict[str, str]:
    return {
        "tag.intervention_policy": f"intervention_policy:{record.intervention_policy.value}",
        "tag.system_decision": f"system_decision:{record.system_decision.value}",
        "tag.decision_confidence": f"decision_confidence:{record.decision_confidence.value}",
        "tag.retrieval_used": f"retrieval_used:{'true' if record.retrieval_used else 'false'}",
    }


def build_decision_event(
    record: DecisionRecord,
    trace_ref: str,
    user_id_hash: Optional[str] = None,
    content_type: Optional[str] = None,
    content_id: Optional[str] = None,
    agent_steps: Optional[Iterable[str]] = None,
    start_time: Optional[datetime] = None,
    extra_metadata: Optional[Dict[str, Any]] = None,
) -> TelemetryEvent:
    decision_input = build_decision_input(record, content_type, content_id, agent_steps)
    metadata = {
        "signal.trace_id": trace_ref,
        "user.id.hash": user_id_hash,
        "event.type": "content_evaluation",
        **decision_input,
        **(extra_metadata or {}),
        **decision_tags(record),
    }
    output = {
        "system_decision": record.system_decision.value,
        "decision_reason_code": record.decision_reason_code.value,
    }
    return TelemetryEvent(
        trace_name=CONTENT_DECISION_TRACE,
        span_name=DECIDE_SPAN,
        trace_ref=trace_ref,
        input=decision_input,
        output=output,
        metadata=metadata,
        span_metadata=metadata,
        start_time=start_time,
    )


def build_observation_event(
    name: str,
    fields: Dict[str, Any],
    trace_ref: str,
    start_time: Optional[datetime] = None,
    trace_name: str = CONTENT_ANALYSIS_TRACE,
) -> TelemetryEvent:
    """Generic client-reported event (feedback, recall, grading) correlated by trace_ref."""
    payload = {"event.type": name, **{k: v for k, v in fields.items() if v is not None}}
    return TelemetryEvent(
        trace_name=trace_name,
        span_name=name,
        trace_ref=trace_ref,
        input=payload,
        output={},
        metadata={"signal.trace_id": trace_ref, **payload},
        span_metadata=payload,
        start_time=start_time,
    )


def recall_ratio(recall_correct: Optional[int], recall_total: Optional[int]) -> Optional[float]:
    if recall_correct is None or not recall_total:
        return None
    return recall_correct / recall_total


def feedback_fields(
    content_id: str,
    feedback: str,
    recall_correct: Optional[int] = None,
    recall_total: Optional[int] = None,
    reasons: Optional[List[str]] = None,
) -> Dict[str, Any]:
    fields = {
        "feedback": feedback,
        "content.id": content_id,
        "recall.correct": recall_correct,
        "recall.total": recall_total,
        "recall.ratio": recall_ratio(recall_correct, recall_total),
        "trace.kind": CONTENT_ANALYSIS_TRACE,
    }
    if reasons:
        fields["feedback.reasons"] = ",".join(reasons)
    return fields


def recall_fields(content_id: str, recall_correct: int, recall_total: int) -> Dict[str, Any]:
    return {
        "content.id": content_id,
        "recall.correct": recall_correct,
        "recall.total": recall_total,
        "recall.ratio": recall_ratio(recall_correct, recall_total) or 0.0,
    }


def grading_fields(content_id: str, score: float, correct: bool) -> Dict[str, Any]:
    return {
        "content.id": content_id,
        "recall.open_ended.score": score,
        "recall.open_ended.correct": correct,
    }
