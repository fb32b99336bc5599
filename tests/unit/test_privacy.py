"""Tests for telemetry/privacy.py"""

import pytest

from shared.utils.exceptions import PrivacyViolationError
from telemetry.privacy import FORBIDDEN_FIELDS, ensure_privacy, find_forbidden_field


class TestFindForbiddenField:

    def test_clean_body(self):
        body = {
            "trace_id": "00000000-0000-4000-8000-000000000000",
            "feedback": "useful",
            "reasons": ["practical", "clear"],
            "scores": {"relevance_score": 0.8},
        }
        assert find_forbidden_field(body) is None

    def test_top_level_key(self):
        assert find_forbidden_field({"email": "a@b.c"}) == ("email", "body")

    def test_nested_key_reports_parent_path(self):
        body = {"meta": {"items": [{"ok": 1}, {"Transcript": "..."}]}}
        assert find_forbidden_field(body) == ("Transcript", "body.meta.items[1]")

    def test_values_are_not_inspected(self):
        assert find_forbidden_field({"note": "email"}) is None
        assert find_forbidden_field(["user_id", "content"]) is None

    @pytest.mark.parametrize("key", sorted(FORBIDDEN_FIELDS))
    def test_every_forbidden_key_is_caught(self, key):
        assert find_forbidden_field({"wrapper": {key: None}}) == (key, "body.wrapper")

    def test_first_hit_wins(self):
        body = {"a": {"name": "x"}, "b": {"email": "y"}}
        assert find_forbidden_field(body) == ("name", "body.a")


class TestEnsurePrivacy:

    def test_raises_with_key_and_path(self):
        with pytest.raises(PrivacyViolationError) as exc_info:
            ensure_privacy({"payload": {"user_goals": ["learn rust"]}})
        assert exc_info.value.key == "user_goals"
        assert exc_info.value.path == "body.payload"

    def test_http_mapping(self):
        http_exc = PrivacyViolationError("email", "body").to_http_exception()
        assert http_exc.status_code == 400
        assert "email" in http_exc.detail["error"]

    def test_clean_body_passes(self):
        ensure_privacy({"feedback": "useful"})
