"""Open-ended recall grading."""
import logging
from dataclasses import dataclass, field
from typing import Any, List

from decision.normalizer import clamp01
from feedback.prompts.grading_prompts import GRADING_SYSTEM_PROMPT, GRADING_USER_PROMPT
from shared.services.llm_service import LLMService, LLMServiceError
from shared.utils.constants import (
    CORRECTNESS_THRESHOLD,
    GRADING_MAX_TOKENS,
    GRADING_TEMPERATURE,
    MAX_GRADING_POINTS,
)
from shared.utils.exceptions import GradingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GradeResult:
    score: float
    reasoning: str = ""
    key_points: List[str] = field(default_factory=list)
    could_have_said: List[str] = field(default_factory=list)
    threshold: float = CORRECTNESS_THRESHOLD

    @property
    def correct(self) -> bool:
        return self.score >= self.threshold

    def to_response(self) -> dict:
        return {
            "score": round(self.score, 2),
            "correct": self.correct,
            "threshold": self.threshold,
            "reasoning": self.reasoning,
            "key_points": list(self.key_points),
            "could_have_said": list(self.could_have_said),
        }


def _string_items(value: Any, limit: int = MAX_GRADING_POINTS) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)][:limit]


def parse_grade(payload: dict) -> GradeResult:
    """Clamp the score and keep only well-typed explanation fields."""
    reasoning = payload.get("reasoning")
    return GradeResult(
        score=clamp01(payload.get("score")),
        reasoning=reasoning if isinstance(reasoning, str) else "",
        key_points=_string_items(payload.get("key_points")),
        could_have_said=_string_items(payload.get("could_have_said")),
    )


class GradingService:
    """Scores a recall answer with the LLM at temperature 0."""

    def __init__(self, llm_service: LLMService, expose_errors: bool = True):
        self.llm_service = llm_service
        self.expose_errors = expose_errors

    def grade(self, content_title: str, question: str, user_answer: str) -> GradeResult:
        prompt = GRADING_USER_PROMPT.render(
            content_title=content_title,
            question=question,
            user_answer=user_answer,
        )
        try:
            payload = self.llm_service.call_json(
                prompt,
                system_prompt=GRADING_SYSTEM_PROMPT,
                temperature=GRADING_TEMPERATURE,
                max_tokens=GRADING_MAX_TOKENS,
            )
        except LLMServiceError as e:
            logger.error(f"Recall grading failed: {e}")
            raise GradingError(str(e), expose_reason=self.expose_errors) from e

        if not isinstance(payload, dict):
            raise GradingError("Grading reply was not a JSON object", expose_reason=self.expose_errors)
        result = parse_grade(payload)
        logger.info(f"Graded recall answer: score={result.score:.2f} correct={result.correct}")
        return result
