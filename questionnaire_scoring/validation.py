"""
Questionnaire Scoring Engine - Configuration Validation.

============================================================
PURPOSE
============================================================
Checks a ScoringConfiguration and reports every problem as a
human-readable string. Nothing here raises: authoring UIs
show the whole list at once.

============================================================
CHECKS (in order)
============================================================
1. Name is non-empty
2. max_score > min_score
3. passing_score within [min_score, max_score]
4. At least one rule
5. Sorted rules partition [min_score, max_score]:
   - first rule starts at min_score
   - rule.max_score + 1 == next rule.min_score
   - last rule ends at max_score (never past it)
   The first gap or overlap stops the scan; only that one
   is reported, plus any trailing missing coverage.
6. CUSTOM method: formula present and parseable

An empty list means the configuration is valid.

============================================================
"""

from typing import List

from .formula import parse_formula
from .types import FormulaSyntaxError, ScoringConfiguration, ScoringMethod


def _format_score(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def validate_rule_coverage(config: ScoringConfiguration) -> List[str]:
    """Gap, overlap and overshoot errors of the configuration's rule set."""
    errors: List[str] = []
    expected_min = config.min_score

    for rule in config.sorted_rules():
        if rule.min_score > expected_min:
            errors.append(
                "Scoring rules must cover all score ranges. "
                f"Gap found at score {_format_score(expected_min)}"
            )
            break
        if rule.min_score < expected_min:
            errors.append(
                "Scoring rules must not overlap. "
                f"Overlap found at score {_format_score(rule.min_score)}"
            )
            break
        expected_min = rule.max_score + 1
    else:
        if config.rules and expected_min - 1 > config.max_score:
            errors.append(
                "Scoring rules must not exceed maximum score. "
                f"Coverage ends at {_format_score(expected_min - 1)}, "
                f"maximum is {_format_score(config.max_score)}"
            )

    if expected_min <= config.max_score:
        errors.append(
            "Scoring rules must cover all score ranges. "
            f"Missing coverage from {_format_score(expected_min)} "
            f"to {_format_score(config.max_score)}"
        )

    return errors


def validate_configuration(config: ScoringConfiguration) -> List[str]:
    """
    Validate a scoring configuration.

    Args:
        config: Configuration to check

    Returns:
        List of error messages (empty if valid)
    """
    errors: List[str] = []

    if not config.name or not config.name.strip():
        errors.append("Configuration name is required")

    if config.max_score <= config.min_score:
        errors.append("Maximum score must be greater than minimum score")

    if config.passing_score is not None and not (
        config.min_score <= config.passing_score <= config.max_score
    ):
        errors.append("Passing score must be between minimum and maximum scores")

    if not config.rules:
        errors.append("At least one scoring rule is required")

    errors.extend(validate_rule_coverage(config))

    if config.scoring_method == ScoringMethod.CUSTOM:
        if not config.formula or not config.formula.strip():
            errors.append("Custom formula is required for custom scoring method")
        else:
            try:
                parse_formula(config.formula)
            except FormulaSyntaxError as e:
                errors.append(f"Custom formula is invalid: {e}")

    return errors


def is_valid_configuration(config: ScoringConfiguration) -> bool:
    return not validate_configuration(config)
