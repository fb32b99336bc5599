"""
Schema validation for untrusted model output.

The model is asked for JSON with `concepts`, `relevance_score`,
`learning_value_score` and `recall_questions`, but any of those can be
missing, mistyped or out of range. ModelAnalysis absorbs all of that:
validation never fails on field content, it only fails (ModelOutputError)
when the reply is not a JSON object in the first place.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from decision.normalizer import NormalizedScores, clamp01, normalize
from decision.question_plan import RecallQuestion, validate_question_candidates
from shared.utils.constants import MAX_CONCEPT_LENGTH, MAX_CONCEPTS, MIN_CONCEPT_LENGTH, VAGUE_CONCEPTS
from shared.utils.exceptions import ModelOutputError


def normalize_concepts(raw: Any, limit: int = MAX_CONCEPTS) -> List[str]:
    """Strings only, trimmed, sensible length, not vague, de-duplicated case-insensitively."""
    if not isinstance(raw, list):
        return []

    seen = set()
    concepts = []
    for item in raw:
        if not isinstance(item, str):
            continue
        concept = item.strip()
        if not (MIN_CONCEPT_LENGTH <= len(concept) <= MAX_CONCEPT_LENGTH):
            continue
        key = concept.lower()
        if key in VAGUE_CONCEPTS or key in seen:
            continue
        seen.add(key)
        concepts.append(concept)
        if len(concepts) >= limit:
            break
    return concepts


class ModelAnalysis(BaseModel):
    """Typed, already-normalized view of one analysis reply."""
    model_config = ConfigDict(frozen=True)

    concepts: List[str] = Field(default_factory=list)
    relevance_score: float = 0.0
    learning_value_score: float = 0.0
    recall_questions: List[RecallQuestion] = Field(default_factory=list)
    suggested_decision: Optional[str] = None

    @field_validator("concepts", mode="before")
    @classmethod
    def _normalize_concepts(cls, value):
        return normalize_concepts(value)

    @field_validator("relevance_score", "learning_value_score", mode="before")
    @classmethod
    def _clamp_scores(cls, value):
        return clamp01(value)

    @field_validator("recall_questions", mode="before")
    @classmethod
    def _drop_invalid_questions(cls, value):
        return validate_question_candidates(value)

    @field_validator("suggested_decision", mode="before")
    @classmethod
    def _string_or_none(cls, value):
        return value if isinstance(value, str) else None

    @property
    def scores(self) -> NormalizedScores:
        return normalize(self.relevance_score, self.learning_value_score, len(self.concepts))


def parse_model_analysis(payload: Any) -> ModelAnalysis:
    """Validate an already-decoded reply."""
    if not isinstance(payload, dict):
        raise ModelOutputError(f"expected a JSON object, got {type(payload).__name__}")

    return ModelAnalysis.model_validate({
        "concepts": payload.get("concepts"),
        "relevance_score": payload.get("relevance_score"),
        "learning_value_score": payload.get("learning_value_score"),
        "recall_questions": payload.get("recall_questions"),
        "suggested_decision": payload.get("decision"),
    })
