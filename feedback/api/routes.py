"""Relay API endpoints: feedback, recall results, recall grading, telemetry relay."""
import logging
import traceback
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session as DBSession

from config import get_settings
from database import get_db
from feedback.services.grading_service import GradingService
from feedback.services.relay_service import relay_event
from shared.api.dependencies import get_llm_service
from shared.api.relay_auth import parse_relay_body, privacy_checked_body, require_relay_token
from shared.models.schemas import (
    FeedbackRequest,
    GradeRecallRequest,
    GradeRecallResponse,
    OpikLogRequest,
    RecallRequest,
    RelayAck,
)
from shared.repositories.feedback_repository import FeedbackRepository
from shared.services.llm_service import LLMService
from shared.utils.exceptions import SignalException
from telemetry.dispatch import dispatch_in_background
from telemetry.events import (
    RECALL_COMPLETED_SPAN,
    RECALL_GRADED_SPAN,
    USER_FEEDBACK_SPAN,
    feedback_fields,
    grading_fields,
    recall_fields,
)
from telemetry.sink import TelemetrySink, get_telemetry_sink

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["relay"],
    dependencies=[Depends(require_relay_token)],
)


def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {str(e)}\n{traceback.format_exc()}")
    message = "Internal server error" if get_settings().is_production else f"Error {action}: {str(e)}"
    return HTTPException(status_code=500, detail={"message": message, "type": type(e).__name__})


@router.post("/feedback", response_model=RelayAck, response_model_exclude_none=True)
def submit_feedback(
    body: Any = Depends(privacy_checked_body),
    db: DBSession = Depends(get_db),
    telemetry_sink: TelemetrySink = Depends(get_telemetry_sink),
):
    """Persist a useful / not_useful verdict and log it."""
    data = parse_relay_body(FeedbackRequest, body)
    try:
        FeedbackRepository(db).create(
            trace_id=str(data.trace_id),
            content_id=data.content_id,
            feedback=data.feedback,
            event_timestamp=data.timestamp,
            recall_correct=data.recall_correct,
            recall_total=data.recall_total,
            reasons=data.reasons,
        )
        dispatch_in_background(
            telemetry_sink.log_event,
            USER_FEEDBACK_SPAN,
            feedback_fields(data.content_id, data.feedback, data.recall_correct, data.recall_total, data.reasons),
            str(data.trace_id),
            data.timestamp,
            grace_seconds=get_settings().telemetry_grace_seconds,
        )
        return RelayAck()
    except SignalException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _internal_error("storing feedback", e)


@router.post("/recall", response_model=RelayAck, response_model_exclude_none=True)
def submit_recall(
    body: Any = Depends(privacy_checked_body),
    telemetry_sink: TelemetrySink = Depends(get_telemetry_sink),
):
    """Log a completed recall quiz."""
    data = parse_relay_body(RecallRequest, body)
    dispatch_in_background(
        telemetry_sink.log_event,
        RECALL_COMPLETED_SPAN,
        recall_fields(data.content_id, data.recall_correct, data.recall_total),
        str(data.trace_id),
        grace_seconds=get_settings().telemetry_grace_seconds,
    )
    return RelayAck()


@router.post("/grade-recall", response_model=GradeRecallResponse)
def grade_recall(
    body: Any = Depends(privacy_checked_body),
    llm_service: LLMService = Depends(get_llm_service),
    telemetry_sink: TelemetrySink = Depends(get_telemetry_sink),
):
    """Grade an open-ended recall answer."""
    data = parse_relay_body(GradeRecallRequest, body)
    settings = get_settings()
    try:
        service = GradingService(llm_service, expose_errors=not settings.is_production)
        result = service.grade(data.content_title, data.question, data.user_answer)
    except SignalException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _internal_error("grading recall", e)

    dispatch_in_background(
        telemetry_sink.log_event,
        RECALL_GRADED_SPAN,
        grading_fields(data.content_id, result.score, result.correct),
        str(data.trace_id),
        data.timestamp,
        grace_seconds=settings.telemetry_grace_seconds,
    )
    return result.to_response()


@router.post("/opik-log", response_model=RelayAck, response_model_exclude_none=True)
def relay_telemetry(
    body: Any = Depends(privacy_checked_body),
    telemetry_sink: TelemetrySink = Depends(get_telemetry_sink),
):
    """Legacy telemetry relay; content_evaluation events are deduplicated by default."""
    data = parse_relay_body(OpikLogRequest, body)

    if data.event_type == "content_evaluation" and get_settings().relay_dedup_content_evaluation:
        return RelayAck(skipped=True, reason="dedup_content_evaluation")

    try:
        relay_event(data, telemetry_sink)
        return RelayAck()
    except SignalException as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _internal_error("relaying telemetry", e)
