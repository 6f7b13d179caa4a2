"""
Questionnaire Scoring Engine - Analytics Read Model.

============================================================
PURPOSE
============================================================
Aggregates already-computed ScoreResults. Performs no
scoring of its own.

============================================================
OUTPUT
============================================================
- total_scores / average_score (mean normalized score)
- risk_distribution: count per level, all five levels present
- risk_percentage: share per level
- high_risk_count: HIGH + CRITICAL
- score_trends: per-day mean score and count, ascending
- trend_direction: later half of the days vs earlier half
    up / down / stable / insufficient_data (< 2 days)
- category_performance: mean sub-score per category name

============================================================
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .aggregators import round_half_up
from .types import RiskLevel, ScoreResult, ScoreTrendPoint, ScoringAnalytics


TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"
TREND_INSUFFICIENT_DATA = "insufficient_data"


def empty_distribution() -> Dict[str, int]:
    return {level.value: 0 for level in RiskLevel.all_levels()}


def build_score_trends(results: Sequence[ScoreResult]) -> List[ScoreTrendPoint]:
    """Bucket results by calculation date (UTC day)."""
    buckets: Dict[str, List[float]] = defaultdict(list)
    for result in results:
        buckets[result.calculated_at.date().isoformat()].append(result.normalized_score)

    return [
        ScoreTrendPoint(
            date=day,
            average_score=round_half_up(sum(scores) / len(scores), 2),
            total_responses=len(scores),
        )
        for day, scores in sorted(buckets.items())
    ]


def determine_trend_direction(
    trends: Sequence[ScoreTrendPoint],
    stability_threshold: float = 0.5,
) -> str:
    """
    Compare the later half of the trend days with the earlier half.

    With an odd number of days the middle day is ignored.
    """
    if len(trends) < 2:
        return TREND_INSUFFICIENT_DATA

    half = len(trends) // 2
    earlier = trends[:half]
    later = trends[-half:]

    earlier_mean = sum(point.average_score for point in earlier) / len(earlier)
    later_mean = sum(point.average_score for point in later) / len(later)
    difference = later_mean - earlier_mean

    if difference > stability_threshold:
        return TREND_UP
    if difference < -stability_threshold:
        return TREND_DOWN
    return TREND_STABLE


def build_category_performance(
    results: Sequence[ScoreResult],
) -> Optional[Dict[str, Dict[str, float]]]:
    totals: Dict[str, List[float]] = defaultdict(list)
    for result in results:
        for name, score in (result.category_scores or {}).items():
            totals[name].append(score)

    if not totals:
        return None

    return {
        name: {
            "average_score": round_half_up(sum(scores) / len(scores), 2),
            "total_responses": len(scores),
        }
        for name, scores in totals.items()
    }


def build_analytics(
    results: Sequence[ScoreResult],
    now: datetime,
    stability_threshold: float = 0.5,
) -> ScoringAnalytics:
    """
    Build the analytics read model for a set of results.

    Args:
        results: Stored results (already filtered by caller)
        now: Timestamp for last_updated
        stability_threshold: Mean difference still considered stable

    Returns:
        ScoringAnalytics
    """
    distribution = empty_distribution()

    if not results:
        return ScoringAnalytics(
            total_scores=0,
            average_score=0.0,
            risk_distribution=distribution,
            risk_percentage={level: 0.0 for level in distribution},
            high_risk_count=0,
            trend_direction=TREND_INSUFFICIENT_DATA,
            score_trends=[],
            last_updated=now,
        )

    total = len(results)
    for result in results:
        distribution[RiskLevel(result.risk_level).value] += 1

    trends = build_score_trends(results)

    return ScoringAnalytics(
        total_scores=total,
        average_score=round_half_up(sum(r.normalized_score for r in results) / total, 2),
        risk_distribution=distribution,
        risk_percentage={
            level: round_half_up(count / total * 100, 2) for level, count in distribution.items()
        },
        high_risk_count=distribution[RiskLevel.HIGH.value] + distribution[RiskLevel.CRITICAL.value],
        trend_direction=determine_trend_direction(trends, stability_threshold),
        score_trends=trends,
        last_updated=now,
        category_performance=build_category_performance(results),
    )
