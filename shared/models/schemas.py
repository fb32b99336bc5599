"""Pydantic API request/response schemas."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlparse
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from shared.utils.constants import ALLOWED_FEEDBACK_REASONS, MAX_FEEDBACK_REASONS

DecisionValue = Literal["triggered", "ignored"]
FeedbackValue = Literal["useful", "not_useful"]


# ---------------------------------------------------------------------------
# /api/analyze
# ---------------------------------------------------------------------------

class LibraryDigestItem(BaseModel):
    """One previously saved item the client sends for retrieval."""
    content_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    concepts: List[str] = Field(default_factory=list)
    created_at: int = Field(default=0, ge=0)


class AnalyzeRequest(BaseModel):
    """Request to analyze one content URL against a learner goal."""
    content_url: str
    user_id_hash: str = Field(min_length=1)
    goal_id: str = Field(min_length=1)
    goal_description: str = Field(min_length=1)
    intervention_policy: str = "focused"
    learning_mode: Optional[str] = None
    known_concepts: List[str] = Field(default_factory=list)
    weak_concepts: List[str] = Field(default_factory=list)
    library_digest: Optional[List[LibraryDigestItem]] = None

    @field_validator("content_url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("content_url must be an http(s) URL")
        return value


class RelatedItem(BaseModel):
    content_id: str
    title: str
    overlap_concepts: List[str]
    overlap_score: int


class AnalyzeResponse(BaseModel):
    """Analysis result: decision record fields plus questions and related items."""
    trace_id: str
    concepts: List[str]
    learning_mode: str
    recall_questions: List[Dict[str, Any]]
    related_items: List[RelatedItem]
    decision: DecisionValue  # legacy alias of system_decision
    system_decision: DecisionValue
    decision_confidence: Literal["high", "borderline", "low"]
    decision_reason_code: str
    relevance_score: float
    learning_value_score: float
    concept_count: int
    intervention_policy: str
    retrieval_used: bool
    retrieved_count: int


# ---------------------------------------------------------------------------
# Relay endpoints
# ---------------------------------------------------------------------------

class FeedbackRequest(BaseModel):
    """User verdict on an analyzed item, optionally with recall results."""
    trace_id: UUID
    content_id: str = Field(min_length=1)
    feedback: FeedbackValue
    recall_correct: Optional[int] = Field(default=None, ge=0)
    recall_total: Optional[int] = Field(default=None, ge=1)
    reasons: Optional[List[str]] = Field(default=None, max_length=MAX_FEEDBACK_REASONS)
    timestamp: datetime

    @field_validator("reasons")
    @classmethod
    def _allowed_reasons(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        unknown = [reason for reason in value if reason not in ALLOWED_FEEDBACK_REASONS]
        if unknown:
            raise ValueError(f"unknown feedback reasons: {', '.join(unknown)}")
        return value

    @model_validator(mode="after")
    def _recall_within_total(self):
        if self.recall_correct is not None and self.recall_total is not None:
            if self.recall_correct > self.recall_total:
                raise ValueError("recall_correct must be <= recall_total")
        return self


class RecallRequest(BaseModel):
    """Recall quiz outcome for an analyzed item."""
    trace_id: UUID
    content_id: str = Field(min_length=1)
    recall_correct: int = Field(ge=0)
    recall_total: int = Field(ge=1)

    @model_validator(mode="after")
    def _recall_within_total(self):
        if self.recall_correct > self.recall_total:
            raise ValueError("recall_correct must be <= recall_total")
        return self


class GradeRecallRequest(BaseModel):
    """Open-ended recall answer to grade."""
    trace_id: UUID
    content_id: str = Field(min_length=1)
    content_title: str = Field(min_length=1, max_length=500)
    question: str = Field(min_length=5, max_length=1000)
    user_answer: str = Field(min_length=5, max_length=2000)
    timestamp: datetime


class GradeRecallResponse(BaseModel):
    score: float
    correct: bool
    threshold: float
    reasoning: str
    key_points: List[str]
    could_have_said: List[str]


class OpikLogRequest(BaseModel):
    """Legacy telemetry relay event."""
    trace_id: UUID
    event_type: Literal["content_evaluation", "user_feedback"]
    content_type: Optional[Literal["video", "article"]] = None
    content_id: Optional[str] = Field(default=None, min_length=1, max_length=256)
    concept_count: Optional[int] = Field(default=None, ge=0)
    relevance_score: Optional[float] = Field(default=None, ge=0, le=1)
    learning_value_score: Optional[float] = Field(default=None, ge=0, le=1)
    system_decision: Optional[DecisionValue] = None
    decision: Optional[DecisionValue] = None  # legacy alias
    intervention_policy: Optional[Literal["focused", "aggressive"]] = None
    decision_confidence: Optional[Literal["high", "borderline", "low"]] = None
    decision_reason_code: Optional[Literal[
        "low_scores", "high_scores", "policy_blocked", "retrieval_bridge_used", "insufficient_concepts"
    ]] = None
    retrieval_used: Optional[bool] = None
    retrieved_count: Optional[int] = Field(default=None, ge=0)
    agent_steps: Optional[List[str]] = None
    user_feedback: Optional[FeedbackValue] = None
    timestamp: datetime
    user_id_hash: Optional[str] = Field(default=None, min_length=1)

    @property
    def asserted_decision(self) -> Optional[str]:
        return self.system_decision or self.decision


class RelayAck(BaseModel):
    ok: bool = True
    skipped: Optional[bool] = None
    reason: Optional[str] = None
