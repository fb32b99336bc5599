"""Content analysis API endpoint."""
import logging
import traceback

from fastapi import APIRouter, Depends, HTTPException

from analysis.services.analysis_service import AnalysisService
from analysis.services.content_fetcher import ContentFetcher
from config import get_settings
from shared.api.dependencies import get_content_fetcher, get_llm_service
from shared.models.schemas import AnalyzeRequest, AnalyzeResponse
from shared.services.llm_service import LLMService
from shared.utils.exceptions import SignalException
from telemetry.sink import TelemetrySink, get_telemetry_sink

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_content(
    request: AnalyzeRequest,
    llm_service: LLMService = Depends(get_llm_service),
    content_fetcher: ContentFetcher = Depends(get_content_fetcher),
    telemetry_sink: TelemetrySink = Depends(get_telemetry_sink),
):
    """Fetch, score and decide on one content item; returns questions when triggered."""
    settings = get_settings()
    try:
        service = AnalysisService(llm_service, content_fetcher, telemetry_sink, settings)
        outcome = await service.analyze(request)
        return outcome.to_response()
    except SignalException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error analyzing content: {str(e)}\n{traceback.format_exc()}")
        message = "Internal server error" if settings.is_production else f"Error analyzing content: {str(e)}"
        raise HTTPException(status_code=500, detail={"message": message, "type": type(e).__name__})
