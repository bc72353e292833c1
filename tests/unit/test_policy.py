"""
Unit tests for risk aggregation and the PolicyEngine.

Tests cover:
- Aggregating live matches into a governing risk
- The confirmation / blocking table per SafetyLevel
- Monotonicity between safety levels
- Explanation and confidence synthesis
"""

import re

import pytest

from shellguard.safety.compiler import CompiledPattern
from shellguard.safety.policy import (
    CONFIDENCE_MATCHED,
    CONFIDENCE_NO_MATCH,
    NO_MATCH_EXPLANATION,
    PolicyEngine,
    aggregate_risk,
    confidence_for,
    explain,
    infer_categories,
)
from shellguard.schema import DangerPattern, RiskLevel, SafetyLevel


# =============================================================================
# Test Fixtures
# =============================================================================


def make_match(risk: RiskLevel, description: str = "test pattern") -> CompiledPattern:
    """Build a compiled pattern standing in for a live match."""
    return CompiledPattern(
        regex=re.compile("x"),
        source=DangerPattern(pattern="x", risk_level=risk, description=description),
    )


@pytest.fixture
def strict_engine() -> PolicyEngine:
    return PolicyEngine(SafetyLevel.STRICT)


# =============================================================================
# Aggregation
# =============================================================================


class TestAggregateRisk:
    """Tests for aggregate_risk()."""

    def test_empty_is_safe(self) -> None:
        """No matches means Safe."""
        assert aggregate_risk([]) == RiskLevel.SAFE

    def test_maximum_wins(self) -> None:
        """The highest risk among matches governs."""
        matches = [
            make_match(RiskLevel.MODERATE),
            make_match(RiskLevel.CRITICAL),
            make_match(RiskLevel.HIGH),
        ]
        assert aggregate_risk(matches) == RiskLevel.CRITICAL

    def test_accepts_generators(self) -> None:
        """Any iterable of matches works."""
        assert aggregate_risk(m for m in [make_match(RiskLevel.HIGH)]) == RiskLevel.HIGH


# =============================================================================
# Policy Engine
# =============================================================================


class TestPolicyEngine:
    """Tests for PolicyEngine decisions."""

    def test_create_engine(self, strict_engine: PolicyEngine) -> None:
        """Engine remembers its safety level."""
        assert strict_engine.safety_level == SafetyLevel.STRICT

    @pytest.mark.parametrize(
        ("level", "risk", "allowed", "confirm", "blocked"),
        [
            (SafetyLevel.STRICT, RiskLevel.SAFE, True, False, False),
            (SafetyLevel.STRICT, RiskLevel.MODERATE, False, True, False),
            (SafetyLevel.STRICT, RiskLevel.HIGH, False, True, True),
            (SafetyLevel.STRICT, RiskLevel.CRITICAL, False, True, True),
            (SafetyLevel.MODERATE, RiskLevel.SAFE, True, False, False),
            (SafetyLevel.MODERATE, RiskLevel.MODERATE, True, False, False),
            (SafetyLevel.MODERATE, RiskLevel.HIGH, False, True, False),
            (SafetyLevel.MODERATE, RiskLevel.CRITICAL, False, True, True),
            (SafetyLevel.PERMISSIVE, RiskLevel.SAFE, True, False, False),
            (SafetyLevel.PERMISSIVE, RiskLevel.MODERATE, True, False, False),
            (SafetyLevel.PERMISSIVE, RiskLevel.HIGH, True, False, False),
            (SafetyLevel.PERMISSIVE, RiskLevel.CRITICAL, False, True, False),
        ],
    )
    def test_decision_table(
        self,
        level: SafetyLevel,
        risk: RiskLevel,
        allowed: bool,
        confirm: bool,
        blocked: bool,
    ) -> None:
        """Every (level, risk) cell matches the documented table."""
        decision = PolicyEngine(level).decide(risk)
        assert decision.allowed is allowed
        assert decision.requires_confirmation is confirm
        assert decision.blocked is blocked
        assert decision.risk_level == risk
        assert decision.safety_level == level

    def test_allowed_is_neither_blocked_nor_confirm(self) -> None:
        """allowed == not blocked and not requires_confirmation, everywhere."""
        for level in SafetyLevel:
            for risk in RiskLevel:
                decision = PolicyEngine(level).decide(risk)
                assert decision.allowed == (
                    not decision.blocked and not decision.requires_confirmation
                )

    def test_evaluate_aggregates(self, strict_engine: PolicyEngine) -> None:
        """evaluate() decides on the highest match."""
        decision = strict_engine.evaluate(
            [make_match(RiskLevel.MODERATE), make_match(RiskLevel.HIGH)]
        )
        assert decision.risk_level == RiskLevel.HIGH
        assert decision.blocked is True

    def test_evaluate_no_matches(self, strict_engine: PolicyEngine) -> None:
        """No matches is allowed even under Strict."""
        decision = strict_engine.evaluate([])
        assert decision.allowed is True
        assert decision.risk_level == RiskLevel.SAFE


class TestMonotonicity:
    """Stricter levels are never more lenient."""

    def _blocked_set(self, level: SafetyLevel) -> set[RiskLevel]:
        engine = PolicyEngine(level)
        return {risk for risk in RiskLevel if engine.decide(risk).blocked}

    def test_moderate_blocking_strict_subset_of_strict(self) -> None:
        """Moderate blocks {Critical}, Strict blocks {High, Critical}."""
        moderate = self._blocked_set(SafetyLevel.MODERATE)
        strict = self._blocked_set(SafetyLevel.STRICT)
        assert moderate == {RiskLevel.CRITICAL}
        assert strict == {RiskLevel.HIGH, RiskLevel.CRITICAL}
        assert moderate < strict

    def test_permissive_never_blocks(self) -> None:
        """Permissive blocks nothing."""
        assert self._blocked_set(SafetyLevel.PERMISSIVE) == set()

    def test_allowed_monotone(self) -> None:
        """Anything allowed under Strict is allowed under Moderate and Permissive."""
        for risk in RiskLevel:
            strict = PolicyEngine(SafetyLevel.STRICT).decide(risk).allowed
            moderate = PolicyEngine(SafetyLevel.MODERATE).decide(risk).allowed
            permissive = PolicyEngine(SafetyLevel.PERMISSIVE).decide(risk).allowed
            assert strict <= moderate <= permissive


# =============================================================================
# Explanation and Confidence
# =============================================================================


class TestExplanation:
    """Tests for explain() and infer_categories()."""

    def test_no_matches(self) -> None:
        """Nothing matched gives the fixed message."""
        assert explain([], RiskLevel.SAFE) == NO_MATCH_EXPLANATION
        assert NO_MATCH_EXPLANATION == "No dangerous patterns detected"

    def test_count_and_level(self) -> None:
        """Explanation carries the count and the risk level."""
        matches = [make_match(RiskLevel.HIGH, "Disable firewall")]
        text = explain(matches, RiskLevel.HIGH)
        assert text.startswith("Detected 1 dangerous pattern(s) at High risk level")

    def test_categories(self) -> None:
        """Keywords are inferred from descriptions."""
        matches = [
            make_match(RiskLevel.CRITICAL, "Recursive deletion of root or home directory"),
            make_match(RiskLevel.HIGH, "Delete files with elevated privileges"),
        ]
        text = explain(matches, RiskLevel.CRITICAL)
        assert text == (
            "Detected 2 dangerous pattern(s) at Critical risk level "
            "(deletion, recursive, privilege escalation)"
        )

    def test_categories_deduplicated_in_order(self) -> None:
        """Each keyword appears once, in first-seen order."""
        assert infer_categories([
            "Netcat bind shell - creates network backdoor",
            "Format disk destroying all data",
            "Netcat shell binding over the network",
        ]) == ["network", "disk"]

    def test_all_keywords(self) -> None:
        """Every keyword family is recognized."""
        assert infer_categories(["delete"]) == ["deletion"]
        assert infer_categories(["Force removal"]) == ["removal"]
        assert infer_categories(["recursive chmod"]) == ["recursive"]
        assert infer_categories(["sudo thing"]) == ["privilege escalation"]
        assert infer_categories(["opens a backdoor"]) == ["network"]
        assert infer_categories(["format drive"]) == ["disk"]

    def test_no_categories(self) -> None:
        """Descriptions without keywords give no parenthesized suffix."""
        text = explain([make_match(RiskLevel.MODERATE, "Changing file ownership")], RiskLevel.MODERATE)
        assert "(" not in text.split("level", 1)[1]


class TestConfidence:
    """Tests for confidence_for()."""

    def test_two_values(self) -> None:
        """0.95 without matches, 1.0 with any."""
        assert confidence_for([]) == CONFIDENCE_NO_MATCH == 0.95
        assert confidence_for([make_match(RiskLevel.MODERATE)]) == CONFIDENCE_MATCHED == 1.0
