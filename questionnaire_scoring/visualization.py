"""
Questionnaire Scoring Engine - Visualization Projector.

============================================================
PURPOSE
============================================================
Projects a classified score and its rule set into
percentage space, independent of any chart library.

One zone per rule:

    zone.min = (rule.min_score - config.min_score) / range * 100
    zone.max = (rule.max_score - config.min_score) / range * 100

using the same transform as ScoreResult.percentage.

============================================================
"""

from typing import List

from .aggregators import score_to_percentage
from .types import (
    RiskLevel,
    RiskMatch,
    ScoringConfiguration,
    VisualizationData,
    VisualizationType,
    VisualizationZone,
)


class VisualizationProjector:
    """Builds VisualizationData for gauges, bars, heatmaps, etc."""

    def __init__(self, precision: int = 2):
        self.precision = precision

    def _to_percentage(self, score: float, config: ScoringConfiguration) -> float:
        return score_to_percentage(score, config.min_score, config.max_score, self.precision)

    def zones(self, config: ScoringConfiguration) -> List[VisualizationZone]:
        """Rule bands of a configuration in percentage space."""
        return [
            VisualizationZone(
                min=self._to_percentage(rule.min_score, config),
                max=self._to_percentage(rule.max_score, config),
                color=rule.color,
                label=rule.label,
                risk_level=RiskLevel(rule.risk_level),
            )
            for rule in config.rules
        ]

    def project(
        self,
        normalized_score: float,
        risk_match: RiskMatch,
        config: ScoringConfiguration,
    ) -> VisualizationData:
        """
        Build the renderer-agnostic visualization for a result.

        Args:
            normalized_score: Clamped, rounded score
            risk_match: Classification of that score
            config: The configuration that produced it

        Returns:
            VisualizationData with one zone per rule
        """
        return VisualizationData(
            score=normalized_score,
            min_score=config.min_score,
            max_score=config.max_score,
            passing_score=config.passing_score,
            risk_level=risk_match.risk_level,
            label=risk_match.label,
            visualization_type=VisualizationType(config.visualization_type),
            percentage=self._to_percentage(normalized_score, config),
            zones=self.zones(config),
        )
