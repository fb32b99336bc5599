"""
Telemetry sinks.

A sink is built once by the application factory and injected into
request handlers through get_telemetry_sink(), so tests can swap in a
fake. OpikTelemetrySink raises TelemetryError on delivery failure;
background callers log and drop it, awaited callers surface it.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional
import json
import logging
import time

import opik
from fastapi import Request

from config import Settings
from shared.utils.exceptions import TelemetryError
from telemetry.events import CONTENT_ANALYSIS_TRACE, TelemetryEvent, build_observation_event

logger = logging.getLogger(__name__)


class TelemetrySink(ABC):
    """Receives decision records and client events, never user content."""

    enabled: bool = True

    @abstractmethod
    def send(self, event: TelemetryEvent) -> None:
        ...

    def log_decision(self, event: TelemetryEvent) -> None:
        self.send(event)

    def log_event(
        self,
        name: str,
        fields: Dict[str, Any],
        trace_ref: str,
        start_time: Optional[datetime] = None,
        trace_name: str = CONTENT_ANALYSIS_TRACE,
    ) -> None:
        self.send(build_observation_event(name, fields, trace_ref, start_time, trace_name))


class NullTelemetrySink(TelemetrySink):
    """Used when no Opik API key is configured."""

    enabled = False

    def send(self, event: TelemetryEvent) -> None:
        logger.debug(f"Telemetry disabled, dropping {event.span_name} event")


class OpikTelemetrySink(TelemetrySink):
    """One Opik trace plus one span per event, flushed before returning."""

    def __init__(self, client: opik.Opik):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpikTelemetrySink":
        client = opik.Opik(
            project_name=settings.opik_project_name,
            workspace=settings.opik_workspace_resolved,
            host=settings.opik_api_url,
            api_key=settings.opik_api_key,
        )
        return cls(client)

    def send(self, event: TelemetryEvent) -> None:
        start = time.time()
        try:
            # Opik assigns its own trace ids; correlation goes through signal.trace_id metadata
            trace = self.client.trace(
                name=event.trace_name,
                start_time=event.start_time,
                input=event.input,
                output=event.output,
                metadata=event.metadata,
            )
            span = trace.span(
                name=event.span_name,
                type="general",
                start_time=event.start_time,
                input=event.input,
                output=event.output,
                metadata=event.span_metadata,
            )
            span.end()
            trace.end()
            self.client.flush()
        except Exception as e:
            raise TelemetryError(f"Failed to send {event.span_name} to Opik: {e}", original_error=e) from e

        logger.info(json.dumps({
            "step": "TELEMETRY",
            "status": "sent",
            "trace_name": event.trace_name,
            "span": event.span_name,
            "duration_ms": int((time.time() - start) * 1000),
        }))


def build_telemetry_sink(settings: Settings) -> TelemetrySink:
    """Opik sink when an API key is configured, otherwise a no-op sink."""
    if not settings.opik_api_key:
        logger.warning("OPIK_API_KEY not set, telemetry disabled")
        return NullTelemetrySink()
    try:
        return OpikTelemetrySink.from_settings(settings)
    except Exception as e:
        logger.error(f"Failed to initialize Opik client, telemetry disabled: {e}")
        return NullTelemetrySink()


def get_telemetry_sink(request: Request) -> TelemetrySink:
    """FastAPI dependency: the sink built at startup."""
    sink = getattr(request.app.state, "telemetry_sink", None)
    return sink if sink is not None else NullTelemetrySink()
