"""
Tests for the restricted formula language.
"""

import pytest

from questionnaire_scoring.formula import (
    MAX_NESTING_DEPTH,
    MAX_TOKENS,
    evaluate_formula,
    parse_formula,
    tokenize,
)
from questionnaire_scoring.types import FormulaEvaluationError, FormulaSyntaxError


# =============================================================
# TEST: Parsing
# =============================================================

class TestParsing:

    def test_tokenize_identifiers_whole(self):
        kinds = [(token.kind, token.text) for token in tokenize("q_10 + q_1")]
        assert kinds == [("IDENT", "q_10"), ("OP", "+"), ("IDENT", "q_1"), ("END", "")]

    def test_variables_collected(self):
        assert parse_formula("(q_1 + q_10) * bonus / 2").variables() == {"q_1", "q_10", "bonus"}

    @pytest.mark.parametrize("text", ["", "   ", "1 +", "(1 + 2", "1 2", "* 3", "total)"])
    def test_malformed_formulas_rejected(self, text):
        with pytest.raises(FormulaSyntaxError):
            parse_formula(text)

    @pytest.mark.parametrize("text", ["total ** 2", "__import__('os')", "total; 1", "a.b", "2 ^ 3"])
    def test_characters_outside_grammar_rejected(self, text):
        with pytest.raises(FormulaSyntaxError):
            parse_formula(text)

    def test_syntax_error_reports_position(self):
        with pytest.raises(FormulaSyntaxError) as exc_info:
            parse_formula("total $ 2")
        assert exc_info.value.position == 6

    def test_deep_parenthesis_nesting_rejected(self):
        text = "(" * 200 + "total" + ")" * 200
        with pytest.raises(FormulaSyntaxError, match="nested too deeply"):
            parse_formula(text)

    def test_extreme_nesting_is_a_syntax_error(self):
        with pytest.raises(FormulaSyntaxError):
            parse_formula("(" * 2000 + "total" + ")" * 2000)

    def test_deep_unary_nesting_rejected(self):
        with pytest.raises(FormulaSyntaxError, match="nested too deeply"):
            parse_formula("-" * 100 + "1")

    def test_nesting_at_limit_is_accepted(self):
        text = "(" * MAX_NESTING_DEPTH + "total" + ")" * MAX_NESTING_DEPTH
        assert evaluate_formula(text, {"total": 4}) == 4

    def test_overlong_formula_rejected(self):
        with pytest.raises(FormulaSyntaxError, match="too long"):
            parse_formula(" + ".join(["1"] * MAX_TOKENS))

    def test_long_chain_within_limit(self):
        assert evaluate_formula(" + ".join(["1"] * 200), {}) == 200


# =============================================================
# TEST: Evaluation
# =============================================================

class TestEvaluation:

    def test_precedence(self):
        assert evaluate_formula("1 + 2 * 3", {}) == 7
        assert evaluate_formula("(1 + 2) * 3", {}) == 9
        assert evaluate_formula("8 / 4 / 2", {}) == 1
        assert evaluate_formula("10 - 4 - 3", {}) == 3

    def test_unary_operators(self):
        assert evaluate_formula("-total + +2", {"total": 5}) == -3
        assert evaluate_formula("--3", {}) == 3

    def test_decimal_numbers(self):
        assert evaluate_formula("total * 0.5 + .25", {"total": 3}) == pytest.approx(1.75)

    def test_no_collision_between_similar_names(self):
        assert evaluate_formula("q_1 + q_10", {"q_1": 1, "q_10": 10}) == 11

    def test_unknown_variable(self):
        with pytest.raises(FormulaEvaluationError, match="Unknown variable 'missing'"):
            evaluate_formula("total + missing", {"total": 1})

    def test_division_by_zero(self):
        with pytest.raises(FormulaEvaluationError, match="Division by zero"):
            evaluate_formula("total / count", {"total": 1, "count": 0})

    def test_non_finite_result(self):
        with pytest.raises(FormulaEvaluationError):
            evaluate_formula("big * big", {"big": 1e308})

    def test_non_numeric_variable(self):
        with pytest.raises(FormulaEvaluationError):
            evaluate_formula("flag + 1", {"flag": "yes"})
