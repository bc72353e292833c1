"""
Risk aggregation and policy decisions.

The governing risk of a command is the highest risk among its live pattern
matches (Safe when nothing matched). The PolicyEngine then looks that risk
up in the confirmation and blocking thresholds of its SafetyLevel:

    SafetyLevel   needs confirmation at        blocked at
    Strict        Moderate, High, Critical     High, Critical
    Moderate      High, Critical               Critical
    Permissive    Critical                     (never)

A command is allowed only when it is neither blocked nor in need of
confirmation.
"""

from collections.abc import Iterable, Sequence

from shellguard.safety.compiler import CompiledPattern
from shellguard.schema import PolicyDecision, RiskLevel, SafetyLevel


NO_MATCH_EXPLANATION = "No dangerous patterns detected"

# Coarse two-value heuristic, not a calibrated probability
CONFIDENCE_NO_MATCH = 0.95
CONFIDENCE_MATCHED = 1.0

# (substrings in a lowercased description, category keyword)
_CATEGORY_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("delet",), "deletion"),
    (("remov",), "removal"),
    (("recursive",), "recursive"),
    (("privilege", "root", "sudo"), "privilege escalation"),
    (("network", "backdoor"), "network"),
    (("disk", "format"), "disk"),
)


class PolicyEngine:
    """
    Turns a set of live matches into a verdict for one SafetyLevel.

    Usage:
        engine = PolicyEngine(SafetyLevel.STRICT)
        decision = engine.evaluate(live_matches)
        if decision.blocked:
            # refuse
        elif decision.requires_confirmation:
            # prompt

    Attributes:
        safety_level: The policy preset this engine enforces
    """

    def __init__(self, safety_level: SafetyLevel) -> None:
        self.safety_level = safety_level

    def decide(self, risk: RiskLevel) -> PolicyDecision:
        """Apply the threshold table to a single risk level."""
        requires_confirmation = risk.requires_confirmation(self.safety_level)
        blocked = risk.is_blocked(self.safety_level)
        return PolicyDecision(
            allowed=not blocked and not requires_confirmation,
            requires_confirmation=requires_confirmation,
            blocked=blocked,
            risk_level=risk,
            safety_level=self.safety_level,
        )

    def evaluate(self, matches: Iterable[CompiledPattern]) -> PolicyDecision:
        """Aggregate the matches and decide on the governing risk."""
        return self.decide(aggregate_risk(matches))


def aggregate_risk(matches: Iterable[CompiledPattern]) -> RiskLevel:
    """Highest risk among the matches; Safe when there are none."""
    return max((m.risk_level for m in matches), default=RiskLevel.SAFE)


def infer_categories(descriptions: Iterable[str]) -> list[str]:
    """
    Category keywords suggested by the matched descriptions.

    Keywords are deduplicated and kept in first-seen order so the same
    matches always produce the same explanation.
    """
    categories: list[str] = []
    for description in descriptions:
        lower = description.lower()
        for needles, keyword in _CATEGORY_KEYWORDS:
            if keyword not in categories and any(n in lower for n in needles):
                categories.append(keyword)
    return categories


def explain(matches: Sequence[CompiledPattern], risk: RiskLevel) -> str:
    """One-line summary of what was detected."""
    if not matches:
        return NO_MATCH_EXPLANATION

    categories = infer_categories(m.description for m in matches)
    suffix = f" ({', '.join(categories)})" if categories else ""
    return (
        f"Detected {len(matches)} dangerous pattern(s) "
        f"at {risk.display_name} risk level{suffix}"
    )


def confidence_for(matches: Sequence[CompiledPattern]) -> float:
    """0.95 when nothing matched, 1.0 otherwise."""
    return CONFIDENCE_MATCHED if matches else CONFIDENCE_NO_MATCH
