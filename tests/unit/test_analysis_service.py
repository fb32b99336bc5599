"""
Tests for analysis/services/analysis_service.py

The LLM service and content fetcher are MagicMocks; telemetry goes to
the in-memory RecordingTelemetrySink from conftest.
"""

import time
from unittest.mock import MagicMock

import pytest

from analysis.services.analysis_service import AnalysisService
from config import Settings
from shared.models.schemas import AnalyzeRequest
from shared.services.llm_service import LLMServiceError
from shared.utils.exceptions import AnalysisError, ContentFetchError, EmptyContentError
from telemetry.events import DECIDE_SPAN

CONCEPTS = [
    "RAII",
    "move semantics",
    "unique_ptr ownership",
    "copy elision",
    "rule of five",
    "destructor ordering",
    "exception safety",
]


def analysis_payload(relevance=0.9, learning=0.9, concepts=None, questions=None):
    return {
        "concepts": CONCEPTS if concepts is None else concepts,
        "relevance_score": relevance,
        "learning_value_score": learning,
        "recall_questions": questions or [],
    }


def make_request(**overrides):
    values = dict(
        content_url="https://www.youtube.com/watch?v=abc123XYZ",
        user_id_hash="hash-1",
        goal_id="goal-1",
        goal_description="Get fluent in modern C++ resource management",
    )
    values.update(overrides)
    return AnalyzeRequest(**values)


def make_service(llm, fetcher, sink, **settings_overrides):
    settings = Settings(openai_api_key="test-key", **settings_overrides)
    return AnalysisService(llm, fetcher, sink, settings)


@pytest.fixture
def fetcher():
    fetcher = MagicMock()
    fetcher.fetch.return_value = "RAII ties resource lifetime to object scope. " * 10
    return fetcher


class TestAnalyze:

    async def test_triggered_gets_full_question_plan(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.return_value = analysis_payload()
        outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(make_request())

        assert outcome.record.system_decision.value == "triggered"
        assert len(outcome.recall_questions) == 4
        assert outcome.retrieval.used is False

        response = outcome.to_response()
        assert response["decision"] == response["system_decision"] == "triggered"
        assert response["learning_mode"] == "general_learning"
        assert response["related_items"] == []
        assert response["concept_count"] == 7

    async def test_ignored_has_no_questions(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.return_value = analysis_payload(relevance=0.3, learning=0.4, concepts=CONCEPTS[:2])
        outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(make_request())

        assert outcome.record.system_decision.value == "ignored"
        assert outcome.record.decision_reason_code.value == "low_scores"
        assert outcome.recall_questions == []
        # the bridge step never runs for ignored content
        assert mock_llm_service.call_json.call_count == 1

    async def test_learning_mode_shapes_questions(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.return_value = analysis_payload()
        outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(
            make_request(learning_mode="Exam Prep")
        )
        assert [q.type for q in outcome.recall_questions] == ["mcq", "mcq", "mcq", "open"]

    async def test_wrong_typed_question_type_is_absorbed(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.return_value = analysis_payload(
            questions=[{"type": ["open"], "question": "What is RAII and why use it?"}]
        )
        outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(make_request())
        assert [q.type for q in outcome.recall_questions] == ["open", "mcq", "open", "mcq"]

    async def test_model_suggestion_is_logged_beside_decision(
        self, mock_llm_service, fetcher, telemetry_sink, caplog
    ):
        payload = analysis_payload(relevance=0.3, learning=0.4)
        payload["decision"] = "triggered"
        mock_llm_service.call_json.return_value = payload

        with caplog.at_level("INFO", logger="analysis.services.analysis_service"):
            outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(make_request())

        assert outcome.record.system_decision.value == "ignored"
        assert '"model_suggested_decision": "triggered"' in caplog.text
        assert '"system_decision": "ignored"' in caplog.text

    async def test_prompt_carries_goal_and_policy(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.return_value = analysis_payload()
        await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(
            make_request(intervention_policy="aggressive", known_concepts=["pointers"])
        )
        prompt = mock_llm_service.call_json.call_args.args[0]
        assert "modern C++ resource management" in prompt
        assert "aggressive" in prompt
        assert "pointers" in prompt

    async def test_unknown_policy_falls_back_to_focused(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.return_value = analysis_payload(relevance=0.7, learning=0.7)
        outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(
            make_request(intervention_policy="reckless")
        )
        assert outcome.record.intervention_policy.value == "focused"
        assert outcome.record.system_decision.value == "ignored"

    async def test_decision_telemetry_recorded(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.return_value = analysis_payload()
        outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(make_request())

        assert telemetry_sink.spans() == [DECIDE_SPAN]
        event = telemetry_sink.events[0]
        assert event.trace_ref == outcome.trace_id
        assert event.metadata["content.type"] == "video"
        assert event.metadata["user.id.hash"] == "hash-1"
        assert event.metadata["top_overlap_score"] == 0
        assert "goal_description" not in event.metadata

    async def test_telemetry_failure_does_not_fail_request(self, mock_llm_service, fetcher, failing_telemetry_sink):
        mock_llm_service.call_json.return_value = analysis_payload()
        outcome = await make_service(mock_llm_service, fetcher, failing_telemetry_sink).analyze(make_request())
        assert outcome.record.system_decision.value == "triggered"


class TestRetrieval:

    digest = [
        {"content_id": "saved-1", "title": "Smart pointers explained", "concepts": ["RAII", "unique_ptr ownership"], "created_at": 5},
        {"content_id": "saved-2", "title": "Move semantics deep dive", "concepts": ["move semantics", "copy elision", "rule of five"], "created_at": 1},
        {"content_id": "saved-3", "title": "Unrelated", "concepts": ["gardening"], "created_at": 9},
    ]

    async def test_bridge_question_replaces_first_open(self, mock_llm_service, fetcher, telemetry_sink):
        bridge = "How does the rule of five from your earlier video apply to RAII wrappers?"
        mock_llm_service.call_json.side_effect = [analysis_payload(), {"question": bridge}]
        outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(
            make_request(library_digest=self.digest)
        )

        assert outcome.recall_questions[0].question == bridge
        assert outcome.record.retrieval_used is True
        assert outcome.record.retrieved_count == 2
        assert outcome.record.decision_reason_code.value == "retrieval_bridge_used"
        assert [item["content_id"] for item in outcome.to_response()["related_items"]] == ["saved-2", "saved-1"]

        event = telemetry_sink.events[0]
        assert event.metadata["agent_steps"] == ["retrieve_related", "generate_bridge_question"]
        assert event.metadata["top_overlap_score"] == 3
        assert event.metadata["overlap_concepts_count"] == 3

    async def test_bridge_failure_continues_without_retrieval(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.side_effect = [analysis_payload(), LLMServiceError("rate limited")]
        outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(
            make_request(library_digest=self.digest)
        )
        assert outcome.record.retrieval_used is False
        assert outcome.record.retrieved_count == 0
        assert outcome.to_response()["related_items"] == []
        assert len(outcome.recall_questions) == 4

    async def test_invalid_bridge_question_is_dropped(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.side_effect = [analysis_payload(), {"question": "?"}]
        outcome = await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(
            make_request(library_digest=self.digest)
        )
        assert outcome.record.retrieval_used is False

    async def test_no_matching_digest_skips_bridge(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.return_value = analysis_payload()
        await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(
            make_request(library_digest=self.digest[2:])
        )
        assert mock_llm_service.call_json.call_count == 1


class TestFailures:

    async def test_fetch_error_propagates(self, mock_llm_service, fetcher, telemetry_sink):
        fetcher.fetch.side_effect = ContentFetchError("https://example.com", "Failed to fetch content: 404 Not Found")
        with pytest.raises(ContentFetchError):
            await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(make_request())
        assert telemetry_sink.events == []

    async def test_fetch_deadline(self, mock_llm_service, fetcher, telemetry_sink):
        fetcher.fetch.side_effect = lambda url: time.sleep(0.5) or "late"
        service = make_service(mock_llm_service, fetcher, telemetry_sink, content_fetch_timeout_seconds=0.05)
        with pytest.raises(ContentFetchError) as exc_info:
            await service.analyze(make_request())
        assert exc_info.value.reason == "Content fetch timeout"

    async def test_blank_content(self, mock_llm_service, fetcher, telemetry_sink):
        fetcher.fetch.return_value = "   \n "
        with pytest.raises(EmptyContentError):
            await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(make_request())
        mock_llm_service.call_json.assert_not_called()

    async def test_llm_error_becomes_analysis_error(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.side_effect = LLMServiceError("upstream 503")
        with pytest.raises(AnalysisError) as exc_info:
            await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(make_request())
        assert "upstream 503" in exc_info.value.reason
        assert exc_info.value.expose_reason is True

    async def test_non_object_reply_is_analysis_error(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.return_value = ["not", "an", "object"]
        with pytest.raises(AnalysisError):
            await make_service(mock_llm_service, fetcher, telemetry_sink).analyze(make_request())

    async def test_analysis_deadline(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.side_effect = lambda *a, **kw: time.sleep(0.5) or analysis_payload()
        service = make_service(mock_llm_service, fetcher, telemetry_sink, analysis_timeout_seconds=0.05)
        with pytest.raises(AnalysisError) as exc_info:
            await service.analyze(make_request())
        assert exc_info.value.reason == "Analysis timeout"

    async def test_reason_hidden_in_production(self, mock_llm_service, fetcher, telemetry_sink):
        mock_llm_service.call_json.side_effect = LLMServiceError("upstream 503")
        service = make_service(mock_llm_service, fetcher, telemetry_sink, environment="production")
        with pytest.raises(AnalysisError) as exc_info:
            await service.analyze(make_request())
        assert "message" not in exc_info.value.to_http_exception().detail
