"""
Content analysis orchestration.

    fetch content (deadline)  ->  model analysis (deadline)
        -> validate model output  ->  normalize scores  ->  decide
        -> [triggered] enforce question plan
        -> [triggered + related items] bridge question
        -> DecisionRecord  ->  background telemetry (bounded join)

Blocking collaborators (HTTP fetch, OpenAI) run in the default executor
so the deadlines can be enforced with asyncio.wait_for.
"""
import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from analysis.prompts.analysis_prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    ANALYSIS_USER_PROMPT,
    BRIDGE_SYSTEM_PROMPT,
    BRIDGE_USER_PROMPT,
    LEARNING_MODE_GUIDANCE,
)
from analysis.services.content_fetcher import ContentFetcher, get_content_type
from analysis.services.retrieval import (
    RetrievalCandidate,
    apply_bridge_question,
    compute_retrieval_candidates,
    normalize_library_digest,
)
from config import Settings
from decision.engine import DecisionRecord, RetrievalSignal, build_decision_record
from decision.model_output import ModelAnalysis, parse_model_analysis
from decision.policy import resolve_policy
from decision.question_plan import (
    LearningMode,
    OpenRecallQuestion,
    RecallQuestion,
    enforce_question_plan,
    get_question_plan,
    normalize_learning_mode,
    questions_to_dicts,
)
from shared.models.schemas import AnalyzeRequest
from shared.prompts.templates import format_list_for_prompt, format_list_inline
from shared.services.llm_service import LLMService, LLMServiceError
from shared.utils.constants import ANALYSIS_MAX_TOKENS, ANALYSIS_TEMPERATURE, BRIDGE_MAX_TOKENS
from shared.utils.exceptions import (
    AnalysisError,
    ContentFetchError,
    EmptyContentError,
    ModelOutputError,
    TelemetryError,
)
from telemetry.dispatch import dispatch_in_background
from telemetry.events import RETRIEVAL_AGENT_STEPS, build_decision_event
from telemetry.sink import TelemetrySink

logger = logging.getLogger(__name__)

BRIDGE_CONTENT_EXCERPT = 4000


@dataclass
class RetrievalOutcome:
    """What the bridge step produced; unused unless a bridge question was accepted."""
    related_items: List[Dict[str, Any]] = field(default_factory=list)
    top_overlap_score: int = 0
    overlap_concepts_count: int = 0

    @property
    def used(self) -> bool:
        return bool(self.related_items)

    @property
    def signal(self) -> RetrievalSignal:
        return RetrievalSignal(retrieval_used=self.used, retrieved_count=len(self.related_items))

    @property
    def agent_steps(self) -> List[str]:
        return list(RETRIEVAL_AGENT_STEPS) if self.used else []


@dataclass
class AnalysisOutcome:
    trace_id: str
    concepts: List[str]
    learning_mode: LearningMode
    recall_questions: List[RecallQuestion]
    record: DecisionRecord
    retrieval: RetrievalOutcome

    def to_response(self) -> Dict[str, Any]:
        record = self.record.to_dict()
        return {
            "trace_id": self.trace_id,
            "concepts": list(self.concepts),
            "learning_mode": self.learning_mode.value,
            "recall_questions": questions_to_dicts(self.recall_questions),
            "related_items": list(self.retrieval.related_items),
            "decision": record["system_decision"],
            **record,
        }


async def run_with_deadline(fn: Callable[[], Any], timeout: float) -> Any:
    """Run a blocking callable in the executor and give up after `timeout` seconds."""
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.run_in_executor(None, fn), timeout=timeout)


class AnalysisService:
    """Runs one analyze request end to end."""

    def __init__(
        self,
        llm_service: LLMService,
        content_fetcher: ContentFetcher,
        telemetry_sink: TelemetrySink,
        settings: Settings,
    ):
        self.llm_service = llm_service
        self.content_fetcher = content_fetcher
        self.telemetry_sink = telemetry_sink
        self.settings = settings

    async def analyze(self, request: AnalyzeRequest) -> AnalysisOutcome:
        trace_id = str(uuid.uuid4())
        start_time = time.time()
        policy = resolve_policy(request.intervention_policy)
        learning_mode = normalize_learning_mode(request.learning_mode)

        content = await self._fetch_content(request.content_url)
        if not content or not content.strip():
            raise EmptyContentError(request.content_url)

        analysis = await self._run_analysis(content, request, policy.value, learning_mode)
        scores = analysis.scores
        preliminary = build_decision_record(scores, policy)

        questions: List[RecallQuestion] = []
        retrieval = RetrievalOutcome()
        if preliminary.triggered:
            questions = enforce_question_plan(
                analysis.recall_questions,
                analysis.concepts,
                get_question_plan(learning_mode),
                mode=learning_mode,
            )
            candidates = compute_retrieval_candidates(
                analysis.concepts, normalize_library_digest(request.library_digest)
            )
            if candidates:
                bridge = await self._generate_bridge_question(content, request.goal_description, candidates)
                if bridge is not None:
                    questions = apply_bridge_question(questions, bridge)
                    retrieval = self._retrieval_outcome(candidates)

        record = build_decision_record(scores, policy, retrieval=retrieval.signal)
        await self._log_decision(record, trace_id, request, retrieval)

        logger.info(json.dumps({
            "step": "ANALYZE",
            "status": "complete",
            "trace_id": trace_id,
            "system_decision": record.system_decision.value,
            "model_suggested_decision": analysis.suggested_decision,
            "decision_reason_code": record.decision_reason_code.value,
            "question_count": len(questions),
            "retrieval_used": record.retrieval_used,
            "duration_ms": int((time.time() - start_time) * 1000),
        }))

        return AnalysisOutcome(
            trace_id=trace_id,
            concepts=analysis.concepts,
            learning_mode=learning_mode,
            recall_questions=questions,
            record=record,
            retrieval=retrieval,
        )

    async def _fetch_content(self, url: str) -> str:
        try:
            return await run_with_deadline(
                partial(self.content_fetcher.fetch, url),
                self.settings.content_fetch_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ContentFetchError(url, "Content fetch timeout") from e

    async def _run_analysis(
        self,
        content: str,
        request: AnalyzeRequest,
        policy: str,
        learning_mode: LearningMode,
    ) -> ModelAnalysis:
        plan = get_question_plan(learning_mode)
        prompt = ANALYSIS_USER_PROMPT.render(
            goal_description=request.goal_description,
            known_concepts=format_list_inline(request.known_concepts),
            weak_concepts=format_list_inline(request.weak_concepts),
            intervention_policy=policy,
            learning_mode=learning_mode.value,
            mode_guidance=LEARNING_MODE_GUIDANCE[learning_mode.value],
            content=content,
            open_target=plan.open_target,
            mcq_target=plan.mcq_target,
        )
        call = partial(
            self.llm_service.call_json,
            prompt,
            system_prompt=ANALYSIS_SYSTEM_PROMPT,
            temperature=ANALYSIS_TEMPERATURE,
            max_tokens=ANALYSIS_MAX_TOKENS,
        )
        expose = not self.settings.is_production
        try:
            payload = await run_with_deadline(call, self.settings.analysis_timeout_seconds)
            return parse_model_analysis(payload)
        except asyncio.TimeoutError as e:
            raise AnalysisError("Analysis timeout", expose_reason=expose) from e
        except (LLMServiceError, ModelOutputError) as e:
            logger.error(f"OpenAI analysis error: {e}")
            raise AnalysisError(str(e), expose_reason=expose) from e

    async def _generate_bridge_question(
        self,
        content: str,
        goal_description: str,
        candidates: List[RetrievalCandidate],
    ) -> Optional[OpenRecallQuestion]:
        """One open question linking the new content to related items; None on any failure."""
        related = [
            f"\"{c.item.title}\" (shared concepts: {format_list_inline(c.overlap_concepts)})" for c in candidates
        ]
        prompt = BRIDGE_USER_PROMPT.render(
            goal_description=goal_description,
            related_items=format_list_for_prompt(related),
            content_excerpt=content[:BRIDGE_CONTENT_EXCERPT],
        )
        call = partial(
            self.llm_service.call_json,
            prompt,
            system_prompt=BRIDGE_SYSTEM_PROMPT,
            temperature=ANALYSIS_TEMPERATURE,
            max_tokens=BRIDGE_MAX_TOKENS,
        )
        try:
            payload = await run_with_deadline(call, self.settings.analysis_timeout_seconds)
            return OpenRecallQuestion.model_validate({"type": "open", "question": payload.get("question")})
        except asyncio.TimeoutError:
            logger.warning("Bridge question timed out, continuing without retrieval")
        except LLMServiceError as e:
            logger.warning(f"Bridge question failed, continuing without retrieval: {e}")
        except ValidationError as e:
            logger.warning(f"Bridge question rejected ({e.error_count()} errors), continuing without retrieval")
        return None

    @staticmethod
    def _retrieval_outcome(candidates: List[RetrievalCandidate]) -> RetrievalOutcome:
        related = [candidate.to_related_item() for candidate in candidates]
        top = candidates[0]
        return RetrievalOutcome(
            related_items=related,
            top_overlap_score=top.overlap_score,
            overlap_concepts_count=len(top.overlap_concepts),
        )

    async def _log_decision(
        self,
        record: DecisionRecord,
        trace_id: str,
        request: AnalyzeRequest,
        retrieval: RetrievalOutcome,
    ) -> None:
        """Hand the record to the sink in the background; never raises."""
        try:
            event = build_decision_event(
                record,
                trace_ref=trace_id,
                user_id_hash=request.user_id_hash,
                content_type=get_content_type(request.content_url),
                agent_steps=retrieval.agent_steps,
                extra_metadata={
                    "top_overlap_score": retrieval.top_overlap_score,
                    "overlap_concepts_count": retrieval.overlap_concepts_count,
                },
            )
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                partial(
                    dispatch_in_background,
                    self.telemetry_sink.log_decision,
                    event,
                    grace_seconds=self.settings.telemetry_grace_seconds,
                ),
            )
        except (TelemetryError, RuntimeError, ValueError) as e:
            logger.error(f"Failed to dispatch decision telemetry: {e}")
