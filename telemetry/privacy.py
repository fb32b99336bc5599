"""Recursive forbidden-key scan for relayed client bodies."""

from typing import Any, Optional, Tuple

from shared.utils.exceptions import PrivacyViolationError

FORBIDDEN_FIELDS = frozenset({
    "raw_content",
    "content",
    "transcript",
    "transcripts",
    "user_goals",
    "goals",
    "emotional_feedback",
    "emotion",
    "user_id",
    "email",
    "name",
    "username",
    "device_id",
    "ip_address",
})


def find_forbidden_field(body: Any, path: str = "body") -> Optional[Tuple[str, str]]:
    """
    Depth-first search for a forbidden key.

    Returns (key, path-of-its-parent) for the first hit, or None. Keys are
    compared case-insensitively; scalars are never inspected.
    """
    if isinstance(body, dict):
        for key, value in body.items():
            if str(key).lower() in FORBIDDEN_FIELDS:
                return str(key), path
            hit = find_forbidden_field(value, f"{path}.{key}")
            if hit:
                return hit
    elif isinstance(body, list):
        for idx, item in enumerate(body):
            hit = find_forbidden_field(item, f"{path}[{idx}]")
            if hit:
                return hit
    return None


def ensure_privacy(body: Any) -> None:
    """Raise PrivacyViolationError if the body carries user or content data."""
    hit = find_forbidden_field(body)
    if hit:
        key, path = hit
        raise PrivacyViolationError(key, path)
