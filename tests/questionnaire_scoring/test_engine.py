"""
Tests for the Scoring Engine orchestrator.

============================================================
PURPOSE
============================================================
End-to-end scoring of one response:
1. Reference scenarios (GAD-7 style sum, weighted, custom)
2. Output guarantees (clamping, percentage bounds)
3. Formula degradation
4. Category sub-scores
5. Batch isolation

============================================================
"""

import logging

import pytest

from questionnaire_scoring.config import ScoringEngineConfig
from questionnaire_scoring.engine import (
    ScoringEngine,
    ScoringRequest,
    format_score_summary,
    is_high_risk,
    requires_immediate_action,
    score_response,
)
from questionnaire_scoring.types import (
    Answer,
    MissingFormulaError,
    Question,
    Response,
    RiskLevel,
    ScoreCategory,
    ScoreResult,
    UnsupportedScoringMethodError,
)


DEEP_FORMULA = "(" * 200 + "total" + ")" * 200


# ============================================================
# REFERENCE SCENARIOS
# ============================================================

class TestReferenceScenarios:
    """GAD-7 style configuration, seven likert questions."""

    def test_all_answers_three_is_critical(self, engine, response, make_config, likert_questions, numeric_answers):
        result = engine.score(response, numeric_answers([3] * 7), likert_questions(), make_config())

        assert result.total_score == 21
        assert result.normalized_score == 21
        assert result.percentage == 100
        assert result.risk_level == RiskLevel.CRITICAL
        assert result.risk_label == "Severe Anxiety"
        assert result.evaluation_error is None

    def test_all_answers_zero_is_low(self, engine, response, make_config, likert_questions, numeric_answers):
        result = engine.score(response, numeric_answers([0] * 7), likert_questions(), make_config())

        assert result.total_score == 0
        assert result.percentage == 0
        assert result.risk_level == RiskLevel.LOW

    def test_mixed_answers_is_medium(self, engine, response, make_config, likert_questions, numeric_answers):
        answers = numeric_answers([1, 1, 2, 1, 0, 1, 1])
        result = engine.score(response, answers, likert_questions(), make_config())

        assert result.total_score == 7
        assert result.risk_level == RiskLevel.MEDIUM
        assert result.percentage == 33.33
        assert result.actions == ["Mild Anxiety action"]

    def test_weighted(self, engine, response, make_config):
        questions = [Question(id=1, type="rating"), Question(id=2, type="rating")]
        answers = [Answer(question_id=1, numeric_value=4), Answer(question_id=2, numeric_value=2)]
        config = make_config(scoring_method="weighted", weights={"question_1": 2, "question_2": 1})

        result = engine.score(response, answers, questions, config)

        assert result.total_score == pytest.approx(3.33, abs=0.01)
        assert result.normalized_score == 3

    def test_custom_formula(self, engine, response, make_config, likert_questions, numeric_answers):
        config = make_config(
            scoring_method="custom", formula="total * 2 + bonus", formula_variables={"bonus": 3}
        )
        result = engine.score(response, numeric_answers([2, 3]), likert_questions(2), config)

        assert result.total_score == 13
        assert result.risk_level == RiskLevel.HIGH

    def test_gap_score_falls_back(self, engine, response, make_config, make_rule, likert_questions, numeric_answers):
        config = make_config(
            rules=[make_rule(0, 4, RiskLevel.LOW), make_rule(6, 10, RiskLevel.HIGH)],
            min_score=0,
            max_score=10,
        )
        result = engine.score(response, numeric_answers([3, 2]), likert_questions(2), config)

        assert result.normalized_score == 5
        assert result.risk_level == RiskLevel.NONE
        assert result.risk_label == "No Risk Assessment"
        assert result.risk_color == "#9CA3AF"
        assert result.actions == []


# ============================================================
# OUTPUT GUARANTEES
# ============================================================

class TestOutputGuarantees:

    @pytest.mark.parametrize("values", [[-50], [100, 100], [3.5], [-0.5]])
    def test_normalized_within_range(self, engine, response, make_config, likert_questions, numeric_answers, values):
        config = make_config()
        result = engine.score(response, numeric_answers(values), likert_questions(len(values)), config)

        assert config.min_score <= result.normalized_score <= config.max_score
        assert 0 <= result.percentage <= 100

    def test_raw_total_is_kept(self, engine, response, make_config, likert_questions, numeric_answers):
        result = engine.score(response, numeric_answers([100]), likert_questions(1), make_config())
        assert result.total_score == 100
        assert result.normalized_score == 21

    def test_half_rounds_up(self, engine, response, make_config, likert_questions, numeric_answers):
        result = engine.score(response, numeric_answers([2, 2.5]), likert_questions(2), make_config())
        assert result.normalized_score == 5
        assert result.risk_level == RiskLevel.MEDIUM

    def test_result_metadata(self, engine, clock, response, make_config, likert_questions, numeric_answers):
        result = engine.score(response, numeric_answers([1]), likert_questions(1), make_config())

        assert result.response_id == 100
        assert result.config_id == "config_test"
        assert result.questionnaire_id == 1
        assert result.calculated_at == clock.now()
        assert result.engine_version == "1.0.0"
        assert result.visualization_data.score == result.normalized_score
        assert len(result.visualization_data.zones) == 4

    def test_result_round_trips_through_dict(self, engine, response, make_config, likert_questions, numeric_answers):
        result = engine.score(response, numeric_answers([1, 2]), likert_questions(2), make_config())
        assert ScoreResult.from_dict(result.to_dict()) == result

    def test_unsupported_method(self, engine, response, make_config, likert_questions):
        with pytest.raises(UnsupportedScoringMethodError):
            engine.score(response, [], likert_questions(1), make_config(scoring_method="median"))

    def test_missing_formula(self, engine, response, make_config, likert_questions):
        with pytest.raises(MissingFormulaError):
            engine.score(response, [], likert_questions(1), make_config(scoring_method="custom"))


# ============================================================
# FORMULA DEGRADATION
# ============================================================

class TestFormulaDegradation:

    @pytest.mark.parametrize("formula", [
        "total / 0", "total + unknown", "total +", "total # 2",
        DEEP_FORMULA, "(" * 2000 + "total" + ")" * 2000,
    ])
    def test_failure_degrades_to_zero(self, engine, response, make_config, likert_questions, numeric_answers, formula):
        config = make_config(scoring_method="custom", formula=formula)
        result = engine.score(response, numeric_answers([3, 3]), likert_questions(2), config)

        assert result.total_score == 0
        assert result.normalized_score == 0
        assert result.evaluation_error
        assert result.is_degraded

    def test_failure_is_logged(self, engine, response, make_config, likert_questions, numeric_answers, caplog):
        config = make_config(scoring_method="custom", formula="total / 0")
        with caplog.at_level(logging.WARNING, logger="questionnaire_scoring.engine"):
            engine.score(response, numeric_answers([1]), likert_questions(1), config)
        assert "Formula evaluation failed" in caplog.text


# ============================================================
# CATEGORIES
# ============================================================

class TestCategoryScores:

    def test_weighted_sub_scores(self, engine, response, make_config, likert_questions, numeric_answers):
        categories = [
            ScoreCategory(id="c2", questionnaire_id=1, name="Somatic", weight=0.5,
                          color="#000", order_num=2, question_ids=[3, 4]),
            ScoreCategory(id="c1", questionnaire_id=1, name="Worry", weight=2,
                          color="#fff", order_num=1, question_ids=[1, 2, 99]),
        ]
        result = engine.score(
            response, numeric_answers([1, 2, 3]), likert_questions(4), make_config(), categories
        )

        assert result.category_scores == {"Worry": 6, "Somatic": 1.5}
        assert list(result.category_scores) == ["Worry", "Somatic"]

    def test_no_categories(self, engine, response, make_config, likert_questions, numeric_answers):
        result = engine.score(response, numeric_answers([1]), likert_questions(1), make_config())
        assert result.category_scores is None


# ============================================================
# BATCH
# ============================================================

class TestBatch:

    def test_failures_do_not_stop_the_batch(self, engine, make_config, likert_questions, numeric_answers):
        good = make_config()
        bad = make_config(id="config_bad", scoring_method="median")
        requests = [
            ScoringRequest(Response(id=1, questionnaire_id=1), numeric_answers([1]), likert_questions(1), good),
            ScoringRequest(Response(id=2, questionnaire_id=1), numeric_answers([1]), likert_questions(1), bad),
            ScoringRequest(Response(id=3, questionnaire_id=1), numeric_answers([3]), likert_questions(1), good),
        ]

        outcomes = engine.score_batch(requests)

        assert [outcome.succeeded for outcome in outcomes] == [True, False, True]
        assert "Unsupported scoring method" in outcomes[1].error
        assert outcomes[2].result.total_score == 3

    def test_deeply_nested_formula_degrades_within_batch(self, engine, make_config, likert_questions, numeric_answers):
        good = make_config()
        nested = make_config(id="config_nested", scoring_method="custom", formula=DEEP_FORMULA)
        requests = [
            ScoringRequest(Response(id=1, questionnaire_id=1), numeric_answers([2]), likert_questions(1), nested),
            ScoringRequest(Response(id=2, questionnaire_id=1), numeric_answers([2]), likert_questions(1), good),
        ]

        outcomes = engine.score_batch(requests)

        assert [outcome.succeeded for outcome in outcomes] == [True, True]
        assert "nested too deeply" in outcomes[0].result.evaluation_error
        assert outcomes[1].result.total_score == 2


# ============================================================
# CONFIGURATION & HELPERS
# ============================================================

class TestEngineHelpers:

    def test_reverse_scoring_switch(self, response, make_config):
        question = Question(
            id=1, type="single_choice", options=["a", "b", "c", "d"],
            metadata={"scoring": {"reverse_score": True}},
        )
        answers = [Answer(question_id=1, value="a")]

        on = ScoringEngine().score(response, answers, [question], make_config())
        off = ScoringEngine(ScoringEngineConfig(apply_reverse_scoring=False)).score(
            response, answers, [question], make_config()
        )

        assert on.total_score == 3
        assert off.total_score == 0

    def test_configured_fallback(self, response, make_config):
        engine = ScoringEngine(ScoringEngineConfig(fallback_label="Unrated", fallback_color="#111111"))
        result = engine.score(response, [], [], make_config(rules=[]))
        assert result.risk_label == "Unrated"
        assert result.risk_color == "#111111"

    def test_risk_helpers(self, engine, response, make_config, likert_questions, numeric_answers):
        critical = engine.score(response, numeric_answers([3] * 7), likert_questions(), make_config())
        high = engine.score(response, numeric_answers([3] * 4), likert_questions(4), make_config())
        low = engine.score(response, numeric_answers([0]), likert_questions(1), make_config())

        assert is_high_risk(critical) and requires_immediate_action(critical)
        assert is_high_risk(high) and not requires_immediate_action(high)
        assert not is_high_risk(low)

    def test_score_response_shortcut(self, response, make_config, likert_questions, numeric_answers):
        result = score_response(response, numeric_answers([2, 2]), likert_questions(2), make_config())
        assert result.total_score == 4

    def test_format_score_summary(self, engine, response, make_config, likert_questions, numeric_answers):
        result = engine.score(response, numeric_answers([3] * 7), likert_questions(), make_config())
        summary = format_score_summary(result)

        assert "SCORE SUMMARY" in summary
        assert "CRITICAL - Severe Anxiety" in summary
        assert "Severe Anxiety action" in summary
