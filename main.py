"""
Signal Backend - FastAPI Application

Scores content against a learner's goal, decides whether it should
trigger a learning intervention, and relays anonymized telemetry.
Collaborators (LLM service, content fetcher, telemetry sink) are built
once here and injected into handlers.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from analysis.api import routes as analysis_routes
from config import get_settings, validate_required_settings
from database import get_db_manager
from feedback.api import routes as feedback_routes
from shared.api import health
from shared.api.dependencies import build_content_fetcher, build_llm_service
from telemetry.sink import build_telemetry_sink

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Signal Backend",
        description="Content relevance decisions, recall questions and learning telemetry",
        version=health.SERVICE_VERSION,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.llm_service = build_llm_service(settings)
    app.state.content_fetcher = build_content_fetcher(settings)
    app.state.telemetry_sink = build_telemetry_sink(settings)

    app.include_router(health.router)
    app.include_router(analysis_routes.router)
    app.include_router(feedback_routes.router)

    @app.on_event("startup")
    async def startup_event():
        """Create tables and validate the database connection."""
        logger.info("Starting Signal Backend...")
        db_manager = get_db_manager()
        try:
            db_manager.create_tables()
        except Exception as e:
            logger.error(f"Failed to create tables: {e}")

        if not db_manager.health_check():
            logger.warning("Database health check failed on startup")
        else:
            logger.info("Database connection healthy")

        logger.info(
            f"Application started (telemetry {'enabled' if app.state.telemetry_sink.enabled else 'disabled'})"
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        get_db_manager().close()

    return app


# Validate configuration on startup
validate_required_settings()

app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
