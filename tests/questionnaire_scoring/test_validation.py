"""
Tests for configuration validation.

Validation problems are returned as a list and never raised.
"""

import pytest

from questionnaire_scoring.types import RiskLevel
from questionnaire_scoring.validation import (
    is_valid_configuration,
    validate_configuration,
    validate_rule_coverage,
)


# =============================================================
# TEST: Basic Checks
# =============================================================

class TestBasicChecks:

    def test_valid_configuration(self, make_config):
        config = make_config()
        assert validate_configuration(config) == []
        assert is_valid_configuration(config)

    @pytest.mark.parametrize("name", ["", "   "])
    def test_name_required(self, make_config, name):
        assert "Configuration name is required" in validate_configuration(make_config(name=name))

    @pytest.mark.parametrize("min_score, max_score", [(10, 10), (10, 5)])
    def test_inverted_or_zero_width_range(self, make_config, make_rule, min_score, max_score):
        config = make_config(rules=[make_rule(0, 21)], min_score=min_score, max_score=max_score)
        assert "Maximum score must be greater than minimum score" in validate_configuration(config)

    @pytest.mark.parametrize("passing_score", [-1, 22])
    def test_passing_score_out_of_bounds(self, make_config, passing_score):
        errors = validate_configuration(make_config(passing_score=passing_score))
        assert errors == ["Passing score must be between minimum and maximum scores"]

    def test_passing_score_on_bound_is_valid(self, make_config):
        assert validate_configuration(make_config(passing_score=21)) == []

    def test_rules_required(self, make_config):
        errors = validate_configuration(make_config(rules=[]))
        assert errors[0] == "At least one scoring rule is required"
        assert "Scoring rules must cover all score ranges. Missing coverage from 0 to 21" in errors

    def test_all_problems_reported_together(self, make_config):
        errors = validate_configuration(make_config(name="", rules=[], passing_score=50))
        assert len(errors) >= 3


# =============================================================
# TEST: Rule Coverage
# =============================================================

class TestRuleCoverage:

    def test_gap_reported(self, make_config, make_rule):
        config = make_config(
            rules=[make_rule(0, 4), make_rule(6, 10)], min_score=0, max_score=10,
        )
        errors = validate_configuration(config)
        assert "Scoring rules must cover all score ranges. Gap found at score 5" in errors

    def test_only_first_gap_reported(self, make_config, make_rule):
        config = make_config(
            rules=[make_rule(0, 2), make_rule(4, 6), make_rule(8, 10)], min_score=0, max_score=10,
        )
        gap_errors = [e for e in validate_rule_coverage(config) if "Gap found" in e]
        assert gap_errors == ["Scoring rules must cover all score ranges. Gap found at score 3"]

    def test_first_rule_must_start_at_min(self, make_config, make_rule):
        config = make_config(rules=[make_rule(1, 21)])
        assert validate_rule_coverage(config)[0].endswith("Gap found at score 0")

    def test_overlap_reported(self, make_config, make_rule):
        config = make_config(
            rules=[make_rule(0, 5), make_rule(5, 10)], min_score=0, max_score=10,
        )
        assert validate_rule_coverage(config) == [
            "Scoring rules must not overlap. Overlap found at score 5",
            "Scoring rules must cover all score ranges. Missing coverage from 6 to 10",
        ]

    def test_trailing_missing_coverage(self, make_config, make_rule):
        config = make_config(rules=[make_rule(0, 4), make_rule(5, 9)])
        assert validate_rule_coverage(config) == [
            "Scoring rules must cover all score ranges. Missing coverage from 10 to 21"
        ]

    def test_last_rule_past_maximum(self, make_config, make_rule):
        config = make_config(rules=[make_rule(0, 4), make_rule(5, 30)])
        assert validate_rule_coverage(config) == [
            "Scoring rules must not exceed maximum score. Coverage ends at 30, maximum is 21"
        ]
        assert not is_valid_configuration(config)

    def test_overshoot_not_reported_after_gap(self, make_config, make_rule):
        config = make_config(rules=[make_rule(0, 4), make_rule(6, 30)])
        assert validate_rule_coverage(config) == [
            "Scoring rules must cover all score ranges. Gap found at score 5",
            "Scoring rules must cover all score ranges. Missing coverage from 5 to 21",
        ]

    def test_rule_order_does_not_matter(self, make_config, make_rule):
        config = make_config(
            rules=[make_rule(15, 21, RiskLevel.CRITICAL), make_rule(0, 14)],
        )
        assert validate_rule_coverage(config) == []


# =============================================================
# TEST: Custom Formula
# =============================================================

class TestCustomFormula:

    def test_custom_requires_formula(self, make_config):
        errors = validate_configuration(make_config(scoring_method="custom"))
        assert errors == ["Custom formula is required for custom scoring method"]

    def test_custom_formula_must_parse(self, make_config):
        errors = validate_configuration(make_config(scoring_method="custom", formula="total +"))
        assert len(errors) == 1
        assert errors[0].startswith("Custom formula is invalid")

    def test_valid_custom_formula(self, make_config):
        config = make_config(scoring_method="custom", formula="total * 2 + bonus")
        assert validate_configuration(config) == []

    def test_formula_ignored_for_other_methods(self, make_config):
        assert validate_configuration(make_config(scoring_method="sum", formula="(((")) == []

    @pytest.mark.parametrize("depth", [200, 2000])
    def test_deeply_nested_formula_reported(self, make_config, depth):
        formula = "(" * depth + "total" + ")" * depth
        errors = validate_configuration(make_config(scoring_method="custom", formula=formula))
        assert len(errors) == 1
        assert errors[0].startswith("Custom formula is invalid")
