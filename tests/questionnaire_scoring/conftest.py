"""
Shared fixtures for the Questionnaire Scoring tests.
"""

from datetime import datetime, timezone

import pytest

from core.clock import MockClock, TickingClock
from questionnaire_scoring.engine import ScoringEngine
from questionnaire_scoring.service import ScoringConfigurationService
from questionnaire_scoring.store import InMemoryScoringStore
from questionnaire_scoring.types import (
    Answer,
    Question,
    Response,
    RiskLevel,
    ScoringConfiguration,
    ScoringRule,
)


BASE_TIME = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)

GAD7_BANDS = [
    (0, 4, RiskLevel.LOW, "Minimal Anxiety", "#10B981"),
    (5, 9, RiskLevel.MEDIUM, "Mild Anxiety", "#F59E0B"),
    (10, 14, RiskLevel.HIGH, "Moderate Anxiety", "#EF4444"),
    (15, 21, RiskLevel.CRITICAL, "Severe Anxiety", "#DC2626"),
]


# ============================================================
# FACTORIES
# ============================================================

@pytest.fixture
def make_rule():
    """Factory for ScoringRule."""
    counter = {"value": 0}

    def _make(min_score, max_score, risk_level=RiskLevel.LOW, label=None, color="#10B981", actions=None):
        counter["value"] += 1
        return ScoringRule(
            id=f"rule_{counter['value']}",
            min_score=min_score,
            max_score=max_score,
            risk_level=risk_level,
            label=label or f"{min_score}-{max_score}",
            color=color,
            actions=actions or [],
        )

    return _make


@pytest.fixture
def make_config(make_rule):
    """Factory for ScoringConfiguration with GAD-7 style defaults."""

    def _make(
        rules=None,
        scoring_method="sum",
        min_score=0,
        max_score=21,
        **kwargs,
    ):
        if rules is None:
            rules = [
                make_rule(low, high, level, label, color, actions=[f"{label} action"])
                for low, high, level, label, color in GAD7_BANDS
            ]
        kwargs.setdefault("id", "config_test")
        kwargs.setdefault("questionnaire_id", 1)
        kwargs.setdefault("name", "Test GAD-7 Configuration")
        return ScoringConfiguration(
            scoring_method=scoring_method,
            min_score=min_score,
            max_score=max_score,
            rules=rules,
            **kwargs,
        )

    return _make


@pytest.fixture
def likert_questions():
    """Factory for n likert questions with four options."""

    def _make(count=7, questionnaire_id=1):
        return [
            Question(
                id=i + 1,
                type="likert",
                questionnaire_id=questionnaire_id,
                options=["Not at all", "Several days", "More than half the days", "Nearly every day"],
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def numeric_answers():
    """Factory turning a list of values into numeric answers for q1..qn."""

    def _make(values):
        return [Answer(question_id=i + 1, numeric_value=value) for i, value in enumerate(values)]

    return _make


# ============================================================
# COMPONENTS
# ============================================================

@pytest.fixture
def response():
    return Response(id=100, questionnaire_id=1)


@pytest.fixture
def clock():
    return MockClock(BASE_TIME)


@pytest.fixture
def engine(clock):
    return ScoringEngine(clock=clock)


@pytest.fixture
def service():
    """Service over an in-memory store with strictly increasing timestamps."""
    return ScoringConfigurationService(
        InMemoryScoringStore(),
        clock=TickingClock(BASE_TIME, step_seconds=1),
    )


@pytest.fixture
def gad7_data():
    """Authoring payload for a valid GAD-7 configuration."""
    return {
        "questionnaire_id": 1,
        "name": "GAD-7 Standard Scoring",
        "scoring_method": "sum",
        "min_score": 0,
        "max_score": 21,
        "rules": [
            {"min_score": low, "max_score": high, "risk_level": level.value, "label": label, "color": color}
            for low, high, level, label, color in GAD7_BANDS
        ],
    }
