"""
FastAPI dependencies for collaborators built at startup.

create_app() stores one LLMService and one ContentFetcher on app.state;
handlers receive them through these functions, and tests replace them
with app.dependency_overrides.
"""
from fastapi import Request

from analysis.services.content_fetcher import ContentFetcher
from config import Settings
from shared.services.llm_service import LLMService


def build_llm_service(settings: Settings) -> LLMService:
    return LLMService(
        settings.openai_api_key,
        model_id=settings.llm_model,
        max_retries=settings.llm_max_retries,
        timeout=settings.llm_timeout,
    )


def build_content_fetcher(settings: Settings) -> ContentFetcher:
    return ContentFetcher(
        timeout=settings.http_fetch_timeout_seconds,
        max_length=settings.max_content_length,
    )


def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service


def get_content_fetcher(request: Request) -> ContentFetcher:
    return request.app.state.content_fetcher
