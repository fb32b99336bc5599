"""Tests for feedback/services/grading_service.py"""

from unittest.mock import MagicMock

import pytest

from feedback.services.grading_service import GradeResult, GradingService, parse_grade
from shared.services.llm_service import LLMServiceError
from shared.utils.exceptions import GradingError


class TestParseGrade:

    def test_well_formed(self):
        result = parse_grade({
            "score": 0.7,
            "reasoning": "Covers the main idea.",
            "key_points": ["scope-bound cleanup"],
            "could_have_said": ["exception safety"],
        })
        assert result.score == 0.7
        assert result.correct is True
        assert result.key_points == ["scope-bound cleanup"]

    def test_score_clamped_and_fields_sanitized(self):
        result = parse_grade({
            "score": "1.7",
            "reasoning": 12,
            "key_points": ["a", 2, "b", "c", "d"],
            "could_have_said": "not a list",
        })
        assert result.score == 1.0
        assert result.reasoning == ""
        assert result.key_points == ["a", "b", "c"]
        assert result.could_have_said == []

    def test_missing_score_is_zero(self):
        assert parse_grade({}).score == 0.0
        assert parse_grade({}).correct is False

    @pytest.mark.parametrize("score, correct", [(0.6, True), (0.59, False)])
    def test_threshold(self, score, correct):
        assert GradeResult(score=score).correct is correct

    def test_response_rounds_score(self):
        response = GradeResult(score=0.6666).to_response()
        assert response["score"] == 0.67
        assert response["threshold"] == 0.6


class TestGradingService:

    def test_grade_calls_llm_deterministically(self):
        llm = MagicMock()
        llm.call_json.return_value = {"score": 0.9, "reasoning": "Good."}

        result = GradingService(llm).grade("RAII in practice", "Why RAII?", "Destructors run at scope exit.")

        assert result.score == 0.9
        kwargs = llm.call_json.call_args.kwargs
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 220
        prompt = llm.call_json.call_args.args[0]
        assert "RAII in practice" in prompt
        assert "Destructors run at scope exit." in prompt

    def test_llm_error_becomes_grading_error(self):
        llm = MagicMock()
        llm.call_json.side_effect = LLMServiceError("rate limited")

        with pytest.raises(GradingError) as exc_info:
            GradingService(llm, expose_errors=False).grade("t", "question", "answer")
        http_exc = exc_info.value.to_http_exception()
        assert http_exc.status_code == 500
        assert "message" not in http_exc.detail

    def test_non_object_reply(self):
        llm = MagicMock()
        llm.call_json.return_value = ["0.9"]

        with pytest.raises(GradingError):
            GradingService(llm).grade("t", "question", "answer")
