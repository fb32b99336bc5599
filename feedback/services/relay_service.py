"""
Client telemetry relay.

Turns relayed client events into telemetry. For content_evaluation
events the caller-asserted decision wins over the scores, while
confidence and reason code are always recomputed from the scores; a
caller asserting `ignored` for scores that meet the trigger therefore
yields `policy_blocked`.
"""
import logging

from decision.engine import DecisionRecord, RetrievalSignal, build_decision_record
from decision.normalizer import normalize
from shared.models.schemas import OpikLogRequest
from telemetry.events import OBSERVABILITY_TRACE, USER_FEEDBACK_SPAN, build_decision_event
from telemetry.sink import TelemetrySink

logger = logging.getLogger(__name__)


def rebuild_decision_record(event: OpikLogRequest) -> DecisionRecord:
    scores = normalize(event.relevance_score, event.learning_value_score, event.concept_count)
    retrieval = RetrievalSignal(
        retrieval_used=bool(event.retrieval_used),
        retrieved_count=event.retrieved_count or 0,
    )
    return build_decision_record(
        scores,
        event.intervention_policy,
        retrieval=retrieval,
        explicit_decision=event.asserted_decision,
    )


def relay_event(event: OpikLogRequest, sink: TelemetrySink) -> None:
    """Send one relayed event synchronously; sink errors propagate."""
    trace_ref = str(event.trace_id)

    if event.event_type == "content_evaluation":
        record = rebuild_decision_record(event)
        sink.log_decision(build_decision_event(
            record,
            trace_ref=trace_ref,
            user_id_hash=event.user_id_hash,
            content_type=event.content_type,
            content_id=event.content_id,
            agent_steps=event.agent_steps,
            start_time=event.timestamp,
        ))
        logger.info(
            f"Relayed content_evaluation: {record.system_decision.value} "
            f"({record.decision_reason_code.value})"
        )
        return

    fields = {
        "content.type": event.content_type,
        "user.feedback": event.user_feedback,
        "user.id.hash": event.user_id_hash,
    }
    sink.log_event(
        USER_FEEDBACK_SPAN,
        fields,
        trace_ref,
        start_time=event.timestamp,
        trace_name=OBSERVABILITY_TRACE,
    )
