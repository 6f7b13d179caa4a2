"""
Questionnaire Scoring Engine - Risk Rule Matcher.

============================================================
PURPOSE
============================================================
Classifies a normalized score against a configuration's
rule set.

The first rule with min_score <= score <= max_score wins.
Rule order does not matter for a valid configuration since
valid rules never overlap.

============================================================
FALLBACK
============================================================
When no rule covers the score (only possible for an invalid
or mid-edit configuration) the matcher returns:

    risk_level = NONE
    label      = "No Risk Assessment"
    color      = neutral gray
    actions    = []

It never raises.

============================================================
"""

from typing import Optional, Sequence

from .types import RiskLevel, RiskMatch, ScoringRule


DEFAULT_FALLBACK_LABEL = "No Risk Assessment"
DEFAULT_FALLBACK_COLOR = "#9CA3AF"


class RiskRuleMatcher:
    """Finds the rule covering a score."""

    def __init__(
        self,
        fallback_label: str = DEFAULT_FALLBACK_LABEL,
        fallback_color: str = DEFAULT_FALLBACK_COLOR,
    ):
        self.fallback_label = fallback_label
        self.fallback_color = fallback_color

    def find_rule(self, score: float, rules: Sequence[ScoringRule]) -> Optional[ScoringRule]:
        for rule in rules:
            if rule.contains(score):
                return rule
        return None

    def match(self, score: float, rules: Sequence[ScoringRule]) -> RiskMatch:
        """
        Classify a normalized score.

        Args:
            score: Normalized score
            rules: Rules of the configuration

        Returns:
            RiskMatch of the covering rule, or the fallback
        """
        rule = self.find_rule(score, rules)
        if rule is None:
            return self.fallback()

        return RiskMatch(
            risk_level=RiskLevel(rule.risk_level),
            label=rule.label,
            color=rule.color,
            actions=list(rule.actions),
            rule_id=rule.id,
        )

    def fallback(self) -> RiskMatch:
        return RiskMatch(
            risk_level=RiskLevel.NONE,
            label=self.fallback_label,
            color=self.fallback_color,
            actions=[],
            is_fallback=True,
        )


def match_risk(score: float, rules: Sequence[ScoringRule]) -> RiskMatch:
    """Classify a score with default fallback settings."""
    return RiskRuleMatcher().match(score, rules)
