"""
Learning modes, question plans and the question plan enforcer.

A QuestionPlan fixes how many open-ended and multiple-choice recall
questions a triggered item gets and in what order. The enforcer takes
whatever the model proposed, keeps the valid candidates in their original
order, trims surplus, and backfills shortfalls from the concept list so
that the plan's shape always holds.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, List, Literal, Mapping, Optional, Union
import logging
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shared.utils.constants import (
    MAX_CONCEPT_LENGTH,
    MAX_OPTION_LENGTH,
    MAX_QUESTION_LENGTH,
    MCQ_OPTION_COUNT,
    MIN_OPTION_LENGTH,
    MIN_QUESTION_LENGTH,
)

logger = logging.getLogger(__name__)


class LearningMode(str, Enum):
    interview_prep = "interview_prep"
    assessment_exam_prep = "assessment_exam_prep"
    general_learning = "general_learning"


class QuestionOrdering(str, Enum):
    open_first = "open_first"
    balanced = "balanced"
    mcq_first = "mcq_first"


_LEARNING_MODE_ALIASES = {
    "interview_prep": LearningMode.interview_prep,
    "interview": LearningMode.interview_prep,
    "deep_focus": LearningMode.interview_prep,
    "deepfocus": LearningMode.interview_prep,
    "assessment_exam_prep": LearningMode.assessment_exam_prep,
    "assessment_prep": LearningMode.assessment_exam_prep,
    "assessment": LearningMode.assessment_exam_prep,
    "exam_prep": LearningMode.assessment_exam_prep,
    "examprep": LearningMode.assessment_exam_prep,
    "exam": LearningMode.assessment_exam_prep,
    "general_learning": LearningMode.general_learning,
    "general": LearningMode.general_learning,
    "casual": LearningMode.general_learning,
}


def normalize_learning_mode(value: Any) -> LearningMode:
    """
    Case-insensitive, separator-tolerant lookup of a learning mode.

    "Interview Prep", "interview-prep" and "INTERVIEW_PREP" all map to
    interview_prep. Anything unrecognized is general_learning.
    """
    if isinstance(value, LearningMode):
        return value
    if not isinstance(value, str):
        return LearningMode.general_learning
    key = re.sub(r"[-\s]+", "_", value.strip().lower())
    return _LEARNING_MODE_ALIASES.get(key, LearningMode.general_learning)


@dataclass(frozen=True)
class QuestionPlan:
    open_target: int
    mcq_target: int
    ordering: QuestionOrdering

    @property
    def total(self) -> int:
        return self.open_target + self.mcq_target


QUESTION_PLANS: Mapping[LearningMode, QuestionPlan] = MappingProxyType({
    LearningMode.interview_prep: QuestionPlan(open_target=3, mcq_target=1, ordering=QuestionOrdering.open_first),
    LearningMode.assessment_exam_prep: QuestionPlan(open_target=1, mcq_target=3, ordering=QuestionOrdering.mcq_first),
    LearningMode.general_learning: QuestionPlan(open_target=2, mcq_target=2, ordering=QuestionOrdering.balanced),
})


def get_question_plan(mode: Any) -> QuestionPlan:
    return QUESTION_PLANS[normalize_learning_mode(mode)]


# ---------------------------------------------------------------------------
# Recall question candidates
# ---------------------------------------------------------------------------

class OpenRecallQuestion(BaseModel):
    """Open-ended recall question."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    type: Literal["open"] = "open"
    question: str = Field(min_length=MIN_QUESTION_LENGTH, max_length=MAX_QUESTION_LENGTH)


class McqRecallQuestion(BaseModel):
    """Multiple-choice recall question with exactly one correct option."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    type: Literal["mcq"] = "mcq"
    question: str = Field(min_length=MIN_QUESTION_LENGTH, max_length=MAX_QUESTION_LENGTH)
    options: List[str] = Field(min_length=MCQ_OPTION_COUNT, max_length=MCQ_OPTION_COUNT)
    correct_index: int = Field(ge=0, le=MCQ_OPTION_COUNT - 1)

    @field_validator("options", mode="before")
    @classmethod
    def _keep_string_options(cls, value):
        if not isinstance(value, list):
            raise ValueError("options must be a list")
        return [option.strip() for option in value if isinstance(option, str)]

    @field_validator("options")
    @classmethod
    def _check_options(cls, value: List[str]) -> List[str]:
        if len({option.lower() for option in value}) != len(value):
            raise ValueError("options must be unique")
        for option in value:
            if not (MIN_OPTION_LENGTH <= len(option) <= MAX_OPTION_LENGTH):
                raise ValueError(f"option length must be {MIN_OPTION_LENGTH}-{MAX_OPTION_LENGTH}")
        return value

    @field_validator("correct_index", mode="before")
    @classmethod
    def _reject_bool_index(cls, value):
        if isinstance(value, bool):
            raise ValueError("correct_index must be a number")
        return value


RecallQuestion = Union[OpenRecallQuestion, McqRecallQuestion]


def validate_question_candidate(raw: Any) -> Optional[RecallQuestion]:
    """Validate one model-proposed question; invalid candidates become None."""
    if isinstance(raw, (OpenRecallQuestion, McqRecallQuestion)):
        return raw
    if not isinstance(raw, dict):
        return None

    question_type = raw.get("type")
    if not isinstance(question_type, str):
        return None
    model = {"open": OpenRecallQuestion, "mcq": McqRecallQuestion}.get(question_type)
    if model is None:
        return None
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Dropping invalid {question_type} candidate: {e.error_count()} errors")
        return None


def validate_question_candidates(raw_questions: Any) -> List[RecallQuestion]:
    if not isinstance(raw_questions, list):
        return []
    validated = (validate_question_candidate(raw) for raw in raw_questions)
    return [question for question in validated if question is not None]


# ---------------------------------------------------------------------------
# Fallback questions
# ---------------------------------------------------------------------------

PLACEHOLDER_CONCEPT = "this concept"

FALLBACK_OPEN_TEMPLATES = MappingProxyType({
    LearningMode.interview_prep: "How would you explain {concept} in an interview, and what pitfall would you call out?",
    LearningMode.assessment_exam_prep: "Define {concept} and give one example of how it is applied.",
    LearningMode.general_learning: "Explain {concept} in 1-2 sentences and name one common mistake or pitfall.",
})

FALLBACK_MCQ_TEMPLATES = MappingProxyType({
    LearningMode.interview_prep: "An interviewer asks about {concept}. Which answer is most accurate?",
    LearningMode.assessment_exam_prep: "Which statement about {concept} would earn full marks on an exam?",
    LearningMode.general_learning: "Which statement best describes {concept}?",
})

FALLBACK_CORRECT_OPTION = "{concept} is a key idea covered in this content"
FALLBACK_DISTRACTORS = (
    "It is unrelated to the main topic of this content",
    "It only matters for legacy systems that are no longer used",
    "It is a naming convention with no practical effect",
)


class _ConceptCycle:
    """Deterministic concept supply for fallback questions."""

    def __init__(self, concepts: Iterable[str]):
        self.concepts = [
            c.strip()[:MAX_CONCEPT_LENGTH] for c in concepts if isinstance(c, str) and c.strip()
        ] or [PLACEHOLDER_CONCEPT]
        self.position = 0

    def next(self) -> str:
        concept = self.concepts[self.position % len(self.concepts)]
        self.position += 1
        return concept


def build_fallback_open(concept: str, mode: LearningMode) -> OpenRecallQuestion:
    return OpenRecallQuestion(question=FALLBACK_OPEN_TEMPLATES[mode].format(concept=concept))


def build_fallback_mcq(concept: str, mode: LearningMode) -> McqRecallQuestion:
    """Synthesized MCQ; the correct answer is always option 0."""
    return McqRecallQuestion(
        question=FALLBACK_MCQ_TEMPLATES[mode].format(concept=concept),
        options=[FALLBACK_CORRECT_OPTION.format(concept=concept), *FALLBACK_DISTRACTORS],
        correct_index=0,
    )


# ---------------------------------------------------------------------------
# Enforcer
# ---------------------------------------------------------------------------

def _interleave(first: List[RecallQuestion], second: List[RecallQuestion]) -> List[RecallQuestion]:
    merged: List[RecallQuestion] = []
    for idx in range(max(len(first), len(second))):
        if idx < len(first):
            merged.append(first[idx])
        if idx < len(second):
            merged.append(second[idx])
    return merged


def order_questions(
    open_questions: List[RecallQuestion],
    mcq_questions: List[RecallQuestion],
    ordering: QuestionOrdering,
) -> List[RecallQuestion]:
    if ordering is QuestionOrdering.open_first:
        return [*open_questions, *mcq_questions]
    if ordering is QuestionOrdering.mcq_first:
        return [*mcq_questions, *open_questions]
    return _interleave(open_questions, mcq_questions)


def enforce_question_plan(
    candidates: Any,
    concepts: Iterable[str],
    plan: QuestionPlan,
    mode: Any = LearningMode.general_learning,
    triggered: bool = True,
) -> List[RecallQuestion]:
    """
    Shape candidate questions to the plan.

    Returns exactly plan.total questions when triggered, otherwise an
    empty list. Fallback questions are built from the concepts in order,
    cycling when there are fewer concepts than gaps.
    """
    if not triggered:
        return []

    learning_mode = normalize_learning_mode(mode)
    validated = validate_question_candidates(candidates)
    open_pool = [q for q in validated if isinstance(q, OpenRecallQuestion)][:plan.open_target]
    mcq_pool = [q for q in validated if isinstance(q, McqRecallQuestion)][:plan.mcq_target]

    open_missing = plan.open_target - len(open_pool)
    mcq_missing = plan.mcq_target - len(mcq_pool)
    if open_missing or mcq_missing:
        logger.info(
            f"Backfilling recall questions: {open_missing} open, {mcq_missing} mcq "
            f"(mode={learning_mode.value})"
        )

    supply = _ConceptCycle(concepts)
    open_pool.extend(build_fallback_open(supply.next(), learning_mode) for _ in range(open_missing))
    mcq_pool.extend(build_fallback_mcq(supply.next(), learning_mode) for _ in range(mcq_missing))

    return order_questions(open_pool, mcq_pool, plan.ordering)


def questions_to_dicts(questions: Iterable[RecallQuestion]) -> List[dict]:
    return [question.model_dump() for question in questions]
