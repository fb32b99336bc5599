"""Tests for decision/policy.py"""

import pytest

from decision.policy import (
    DEFAULT_POLICY,
    POLICY_TABLE,
    InterventionPolicy,
    PolicyThresholds,
    get_thresholds,
    resolve_policy,
)


class TestPolicyTable:

    def test_focused_thresholds(self):
        t = POLICY_TABLE[InterventionPolicy.focused]
        assert t.trigger == 0.75
        assert (t.high_relevance, t.high_learning, t.high_concept_count) == (0.85, 0.85, 6)
        assert (t.low_relevance, t.low_learning, t.low_concept_count) == (0.65, 0.65, 4)
        assert t.min_concept_count == 4

    def test_aggressive_thresholds(self):
        t = POLICY_TABLE[InterventionPolicy.aggressive]
        assert t.trigger == 0.6
        assert (t.high_relevance, t.high_learning, t.high_concept_count) == (0.75, 0.75, 4)
        assert (t.low_relevance, t.low_learning, t.low_concept_count) == (0.55, 0.55, 2)
        assert t.min_concept_count == 2

    def test_every_policy_has_thresholds(self):
        assert set(POLICY_TABLE) == set(InterventionPolicy)

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            POLICY_TABLE[InterventionPolicy.focused] = POLICY_TABLE[InterventionPolicy.aggressive]

    def test_thresholds_are_immutable(self):
        with pytest.raises(Exception):
            POLICY_TABLE[InterventionPolicy.focused].trigger = 0.1

    @pytest.mark.parametrize("overrides", [
        {"low_relevance": 0.8},
        {"high_learning": 0.5},
        {"min_concept_count": 5},
        {"high_concept_count": 3},
    ])
    def test_band_invariants_enforced(self, overrides):
        values = dict(
            trigger=0.75, high_relevance=0.85, high_learning=0.85, high_concept_count=6,
            low_relevance=0.65, low_learning=0.65, low_concept_count=4, min_concept_count=4,
        )
        values.update(overrides)
        with pytest.raises(ValueError):
            PolicyThresholds(**values)


class TestResolvePolicy:

    @pytest.mark.parametrize("raw, expected", [
        ("focused", InterventionPolicy.focused),
        ("aggressive", InterventionPolicy.aggressive),
        ("  AGGRESSIVE ", InterventionPolicy.aggressive),
        (InterventionPolicy.aggressive, InterventionPolicy.aggressive),
    ])
    def test_known_values(self, raw, expected):
        assert resolve_policy(raw) is expected

    @pytest.mark.parametrize("raw", ["reckless", "", None, 3, ["focused"]])
    def test_unknown_values_fall_back_to_focused(self, raw):
        assert resolve_policy(raw) is DEFAULT_POLICY is InterventionPolicy.focused

    def test_get_thresholds_accepts_names(self):
        assert get_thresholds("aggressive") is POLICY_TABLE[InterventionPolicy.aggressive]
        assert get_thresholds("unknown") is POLICY_TABLE[InterventionPolicy.focused]
