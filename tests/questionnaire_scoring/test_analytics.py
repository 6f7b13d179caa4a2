"""
Tests for the analytics read model.
"""

from datetime import timedelta

import pytest

from questionnaire_scoring.analytics import (
    TREND_DOWN,
    TREND_INSUFFICIENT_DATA,
    TREND_STABLE,
    TREND_UP,
    build_analytics,
    build_score_trends,
    determine_trend_direction,
)
from questionnaire_scoring.types import (
    RiskLevel,
    ScoreResult,
    ScoreTrendPoint,
    VisualizationData,
    VisualizationType,
)


@pytest.fixture
def make_result(clock):
    """Factory for stored results on a given day offset."""
    counter = {"value": 0}

    def _make(score, risk_level=RiskLevel.LOW, day=0, category_scores=None):
        counter["value"] += 1
        return ScoreResult(
            response_id=counter["value"],
            config_id="config_test",
            questionnaire_id=1,
            total_score=score,
            normalized_score=score,
            percentage=round(score / 21 * 100, 2),
            risk_level=risk_level,
            risk_label=risk_level.value,
            risk_color="#000000",
            visualization_data=VisualizationData(
                score=score, min_score=0, max_score=21, risk_level=risk_level,
                label=risk_level.value, visualization_type=VisualizationType.GAUGE,
                percentage=0,
            ),
            calculated_at=clock.now() + timedelta(days=day),
            category_scores=category_scores,
        )

    return _make


def _points(*averages):
    return [
        ScoreTrendPoint(date=f"2024-01-{15 + i:02d}", average_score=avg, total_responses=1)
        for i, avg in enumerate(averages)
    ]


# =============================================================
# TEST: Summary
# =============================================================

class TestSummary:

    def test_empty(self, clock):
        analytics = build_analytics([], now=clock.now())

        assert analytics.total_scores == 0
        assert analytics.average_score == 0
        assert analytics.risk_distribution == {"none": 0, "low": 0, "medium": 0, "high": 0, "critical": 0}
        assert analytics.high_risk_count == 0
        assert analytics.trend_direction == TREND_INSUFFICIENT_DATA
        assert analytics.score_trends == []
        assert analytics.category_performance is None
        assert analytics.last_updated == clock.now()

    def test_distribution_and_percentages(self, clock, make_result):
        results = [
            make_result(2, RiskLevel.LOW),
            make_result(3, RiskLevel.LOW),
            make_result(12, RiskLevel.HIGH),
            make_result(0, RiskLevel.NONE),
        ]
        analytics = build_analytics(results, now=clock.now())

        assert analytics.total_scores == 4
        assert analytics.average_score == 4.25
        assert analytics.risk_distribution["low"] == 2
        assert analytics.risk_distribution["none"] == 1
        assert analytics.risk_percentage["low"] == 50
        assert analytics.risk_percentage["critical"] == 0
        assert analytics.high_risk_count == 1
        assert sum(analytics.risk_distribution.values()) == analytics.total_scores

    def test_category_performance(self, clock, make_result):
        results = [
            make_result(5, category_scores={"Worry": 4, "Somatic": 1}),
            make_result(7, category_scores={"Worry": 5}),
            make_result(1),
        ]
        analytics = build_analytics(results, now=clock.now())

        assert analytics.category_performance == {
            "Worry": {"average_score": 4.5, "total_responses": 2},
            "Somatic": {"average_score": 1, "total_responses": 1},
        }

    def test_to_dict(self, clock, make_result):
        payload = build_analytics([make_result(4)], now=clock.now()).to_dict()
        assert payload["total_scores"] == 1
        assert payload["score_trends"] == [{"date": "2024-01-15", "average_score": 4, "total_responses": 1}]
        assert payload["last_updated"] == clock.now().isoformat()


# =============================================================
# TEST: Trends
# =============================================================

class TestTrends:

    def test_daily_buckets_ascending(self, make_result):
        results = [make_result(10, day=1), make_result(2, day=0), make_result(4, day=0)]
        trends = build_score_trends(results)

        assert [point.date for point in trends] == ["2024-01-15", "2024-01-16"]
        assert trends[0].average_score == 3
        assert trends[0].total_responses == 2

    @pytest.mark.parametrize("averages, expected", [
        ((5,), TREND_INSUFFICIENT_DATA),
        ((5, 10), TREND_UP),
        ((10, 5), TREND_DOWN),
        ((5, 5.4), TREND_STABLE),
        ((5, 100, 6), TREND_UP),
        ((4, 6, 6, 4), TREND_STABLE),
    ])
    def test_direction(self, averages, expected):
        assert determine_trend_direction(_points(*averages)) == expected

    def test_threshold_is_configurable(self):
        assert determine_trend_direction(_points(5, 6), stability_threshold=2) == TREND_STABLE
        assert determine_trend_direction(_points(5, 6), stability_threshold=0.1) == TREND_UP

    def test_analytics_uses_trend(self, clock, make_result):
        results = [make_result(2, day=0), make_result(15, RiskLevel.CRITICAL, day=3)]
        assert build_analytics(results, now=clock.now()).trend_direction == TREND_UP
