"""
Shared-secret check for client relay endpoints.

Usage:
    @router.post("/api/feedback", dependencies=[Depends(require_relay_token)])
    def relay_endpoint(...):
        ...
"""
import hmac
import logging
from typing import Any, Optional, Type, TypeVar

from fastapi import Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from config import get_settings
from shared.utils.exceptions import PrivacyViolationError, RelayAuthError
from telemetry.privacy import ensure_privacy

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = logging.getLogger("shared.relay_auth")

RELAY_TOKEN_HEADER = "x-signal-relay-token"


def validate_relay_token(token: Optional[str], expected: Optional[str]) -> bool:
    """True only when a token is configured and the presented one matches it."""
    if not expected:
        logger.error("RELAY_TOKEN is not configured; rejecting relay request")
        return False
    if not token:
        return False
    return hmac.compare_digest(token.encode(), expected.encode())


def require_relay_token(
    x_signal_relay_token: Optional[str] = Header(default=None, alias=RELAY_TOKEN_HEADER),
) -> None:
    """FastAPI dependency: 401 unless the relay token header matches."""
    if not validate_relay_token(x_signal_relay_token, get_settings().relay_token):
        raise RelayAuthError().to_http_exception()


async def privacy_checked_body(request: Request) -> Any:
    """
    FastAPI dependency: the raw JSON body, scanned for forbidden keys.

    Runs before schema validation so a body carrying user or content data
    is rejected with 400 even when it would also fail the schema.
    """
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail={"error": "Request body must be valid JSON"})
    try:
        ensure_privacy(body)
    except PrivacyViolationError as e:
        logger.warning(f"Rejected relay body: forbidden key at {e.path}")
        raise e.to_http_exception()
    return body


def parse_relay_body(model: Type[ModelT], body: Any) -> ModelT:
    """Validate a scanned body; schema failures surface as FastAPI 422 responses."""
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))
