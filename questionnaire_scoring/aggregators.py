"""
Questionnaire Scoring Engine - Aggregation Strategies.

============================================================
PURPOSE
============================================================
Combine per-question scores into one raw total.

Each aggregator:
1. Pairs questions with their answers (unanswered are skipped)
2. Resolves each answer through the QuestionScoreResolver
3. Returns the raw, un-clamped total

============================================================
METHODS
============================================================
SUM       sum of resolved scores
AVERAGE   sum / answered count (0 without answers)
WEIGHTED  sum(score * weight) / sum(weight)
          weight key: "question_{id}", then "q_{id}", then
          metadata.scoring.weight, else 1
CUSTOM    formula over total, count, average,
          formula_variables and q_{id} per answered question

An unknown method raises UnsupportedScoringMethodError.
It NEVER falls back to SUM.

============================================================
NORMALIZATION
============================================================
    normalized = clamp(round_half_up(total), min, max)
    percentage = (normalized - min) / (max - min) * 100

============================================================
"""

from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Type

from .formula import evaluate_formula
from .resolver import QuestionScoreResolver
from .types import (
    Answer,
    MissingFormulaError,
    Question,
    ScoringConfiguration,
    ScoringMethod,
    UnsupportedScoringMethodError,
)


# ============================================================
# BASE AGGREGATOR
# ============================================================


class BaseAggregator(ABC):
    """
    Abstract base class for aggregation strategies.

    Provides answer pairing and score resolution shared by
    all methods.
    """

    def __init__(self, resolver: Optional[QuestionScoreResolver] = None):
        self.resolver = resolver or QuestionScoreResolver()

    @property
    @abstractmethod
    def method(self) -> ScoringMethod:
        """Return the scoring method this aggregator implements."""
        pass

    @abstractmethod
    def aggregate(
        self,
        questions: Sequence[Question],
        answers_by_question_id: Mapping[int, Answer],
        config: ScoringConfiguration,
    ) -> float:
        """Compute the raw total for one response."""
        pass

    def _resolved_scores(
        self,
        questions: Sequence[Question],
        answers_by_question_id: Mapping[int, Answer],
    ) -> List[Tuple[Question, float]]:
        """Resolved score for every question that has an answer."""
        scores = []
        for question in questions:
            answer = answers_by_question_id.get(question.id)
            if answer is not None:
                scores.append((question, self.resolver.score(question, answer)))
        return scores


# ============================================================
# STRATEGIES
# ============================================================


class SumAggregator(BaseAggregator):

    @property
    def method(self) -> ScoringMethod:
        return ScoringMethod.SUM

    def aggregate(self, questions, answers_by_question_id, config) -> float:
        return sum(score for _, score in self._resolved_scores(questions, answers_by_question_id))


class AverageAggregator(BaseAggregator):

    @property
    def method(self) -> ScoringMethod:
        return ScoringMethod.AVERAGE

    def aggregate(self, questions, answers_by_question_id, config) -> float:
        scores = self._resolved_scores(questions, answers_by_question_id)
        if not scores:
            return 0
        return sum(score for _, score in scores) / len(scores)


class WeightedAggregator(BaseAggregator):
    """
    Weighted mean of resolved scores.

    Normalizes by total weight, so uniform weights give the
    same result as AVERAGE (not SUM).
    """

    @property
    def method(self) -> ScoringMethod:
        return ScoringMethod.WEIGHTED

    @staticmethod
    def weight_for(question: Question, config: ScoringConfiguration) -> float:
        """Configured weight, then the question's metadata weight, else 1."""
        weights = config.weights or {}
        for key in (f"question_{question.id}", f"q_{question.id}"):
            if weights.get(key) is not None:
                return float(weights[key])

        scoring = question.scoring
        if scoring is not None and scoring.weight is not None:
            return float(scoring.weight)
        return 1.0

    def aggregate(self, questions, answers_by_question_id, config) -> float:
        weighted_sum = 0.0
        total_weight = 0.0

        for question, score in self._resolved_scores(questions, answers_by_question_id):
            weight = self.weight_for(question, config)
            weighted_sum += score * weight
            total_weight += weight

        if total_weight == 0:
            return 0
        return weighted_sum / total_weight


class CustomAggregator(BaseAggregator):
    """
    Formula-based aggregation.

    Raises MissingFormulaError without a formula. Parse and
    evaluation failures surface as FormulaError; the engine
    decides how to degrade them.
    """

    @property
    def method(self) -> ScoringMethod:
        return ScoringMethod.CUSTOM

    def build_variables(
        self,
        questions: Sequence[Question],
        answers_by_question_id: Mapping[int, Answer],
        config: ScoringConfiguration,
    ) -> Dict[str, float]:
        """Variable bag the formula is evaluated against."""
        scores = self._resolved_scores(questions, answers_by_question_id)
        total = sum(score for _, score in scores)
        count = len(scores)

        variables: Dict[str, float] = {
            "total": total,
            "count": count,
            "average": total / count if count else 0,
        }
        variables.update(config.formula_variables or {})

        for question, score in scores:
            variables[question.variable_name] = score

        return variables

    def aggregate(self, questions, answers_by_question_id, config) -> float:
        if not config.formula or not config.formula.strip():
            raise MissingFormulaError(config.id)

        variables = self.build_variables(questions, answers_by_question_id, config)
        return evaluate_formula(config.formula, variables)


# ============================================================
# REGISTRY
# ============================================================


AGGREGATORS: Dict[ScoringMethod, Type[BaseAggregator]] = {
    ScoringMethod.SUM: SumAggregator,
    ScoringMethod.AVERAGE: AverageAggregator,
    ScoringMethod.WEIGHTED: WeightedAggregator,
    ScoringMethod.CUSTOM: CustomAggregator,
}


def get_aggregator(
    method: str,
    resolver: Optional[QuestionScoreResolver] = None,
) -> BaseAggregator:
    """
    Return the aggregator for a scoring method.

    Raises:
        UnsupportedScoringMethodError: For unknown methods
    """
    try:
        scoring_method = ScoringMethod(method)
    except ValueError:
        raise UnsupportedScoringMethodError(method) from None
    return AGGREGATORS[scoring_method](resolver)


def aggregate(
    method: str,
    questions: Sequence[Question],
    answers_by_question_id: Mapping[int, Answer],
    config: ScoringConfiguration,
    resolver: Optional[QuestionScoreResolver] = None,
) -> float:
    """Compute the raw total with the given method."""
    return get_aggregator(method, resolver).aggregate(questions, answers_by_question_id, config)


# ============================================================
# NORMALIZATION
# ============================================================


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero (2.5 -> 3), unlike round()."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def normalize_score(total: float, min_score: float, max_score: float) -> int:
    """Round a raw total and clamp it into [min_score, max_score]."""
    clamped = max(min_score, min(max_score, round_half_up(total)))
    return int(clamped) if float(clamped).is_integer() else clamped


def score_to_percentage(
    score: float,
    min_score: float,
    max_score: float,
    precision: int = 2,
) -> float:
    """Linear position of score within the range, in percent."""
    score_range = max_score - min_score
    if score_range <= 0:
        return 0.0
    return round_half_up((score - min_score) / score_range * 100, precision)
