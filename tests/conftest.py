"""Pytest configuration and shared fixtures."""
import os

# main.py validates settings at import time
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RELAY_TOKEN"] = "test-relay-token"
os.environ["OPIK_API_KEY"] = ""
os.environ["TELEMETRY_GRACE_SECONDS"] = "2.0"

import pytest
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from config import reset_settings
from shared.models.entities import Base
from telemetry.sink import TelemetrySink

RELAY_TOKEN = "test-relay-token"


class RecordingTelemetrySink(TelemetrySink):
    """Keeps every event in memory instead of sending it."""

    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    def send(self, event):
        if self.fail:
            from shared.utils.exceptions import TelemetryError
            raise TelemetryError("sink unavailable")
        self.events.append(event)

    def spans(self):
        return [event.span_name for event in self.events]


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are memoized; rebuild them around every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a test database session with in-memory SQLite.

    This fixture creates a fresh database for each test function,
    ensuring test isolation.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def telemetry_sink():
    return RecordingTelemetrySink()


@pytest.fixture
def failing_telemetry_sink():
    return RecordingTelemetrySink(fail=True)


@pytest.fixture
def mock_llm_service():
    """LLM service double; tests set call_json.return_value / side_effect."""
    return MagicMock()


@pytest.fixture
def mock_content_fetcher():
    fetcher = MagicMock()
    fetcher.fetch.return_value = "RAII ties resource lifetime to object scope. " * 20
    return fetcher


@pytest.fixture
def client(db_session, telemetry_sink, mock_llm_service, mock_content_fetcher):
    """Test client for the full app with every collaborator replaced."""
    from main import app
    from database import get_db
    from shared.api.dependencies import get_content_fetcher, get_llm_service
    from telemetry.sink import get_telemetry_sink

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_service] = lambda: mock_llm_service
    app.dependency_overrides[get_content_fetcher] = lambda: mock_content_fetcher
    app.dependency_overrides[get_telemetry_sink] = lambda: telemetry_sink

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def relay_headers():
    return {"x-signal-relay-token": RELAY_TOKEN}
