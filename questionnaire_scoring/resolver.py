"""
Questionnaire Scoring Engine - Question Score Resolver.

============================================================
PURPOSE
============================================================
Resolves the point value of one answer to one question.

============================================================
RESOLUTION ORDER
============================================================
1. metadata.scoring.points is a list:
       points[selected option index]
2. metadata.scoring.points is a number:
       that number, unconditionally
3. question type semantics:
       single_choice / multiple_choice -> option index
       rating / slider                 -> numeric value
       boolean                         -> 1 / 0
       likert                          -> numeric value,
                                          else option index
       anything else                   -> 0

Missing or unresolvable data scores 0. The resolver never
raises for well-formed input.

============================================================
REVERSE SCORING
============================================================
With reverse scoring enabled, metadata.scoring.reverse_score
inverts the resolved score on the question's scale:
- index based:  max_index - index
- numeric:      scale_min + scale_max - value

Weighting is NOT applied here; see aggregators.

============================================================
"""

import logging
from typing import Optional, Tuple

from .types import Answer, Question, QuestionScoring, QuestionType

logger = logging.getLogger(__name__)


_CHOICE_TYPES = (QuestionType.SINGLE_CHOICE.value, QuestionType.MULTIPLE_CHOICE.value)
_NUMERIC_TYPES = (QuestionType.RATING.value, QuestionType.SLIDER.value)


class QuestionScoreResolver:
    """
    Pure per-question scoring.

    Same (question, answer) pair always yields the same score.
    """

    def __init__(self, apply_reverse_scoring: bool = True):
        self.apply_reverse_scoring = apply_reverse_scoring

    def score(self, question: Question, answer: Answer) -> float:
        """
        Resolve the points for an answer.

        Args:
            question: The answered question
            answer: The answer given

        Returns:
            Point value (0 when unscoreable)
        """
        scoring = question.scoring

        if scoring is not None:
            if isinstance(scoring.points, list):
                return self._score_from_points(question, answer, scoring)
            if scoring.points is not None:
                return scoring.points

        return self._score_by_type(question, answer, scoring)

    # --------------------------------------------------------
    # POINT TABLES
    # --------------------------------------------------------

    def _score_from_points(
        self,
        question: Question,
        answer: Answer,
        scoring: QuestionScoring,
    ) -> float:
        points = scoring.points
        index = self._selected_option_index(question, answer)

        if index is None or not 0 <= index < len(points):
            return 0

        if self._should_reverse(scoring):
            index = len(points) - 1 - index

        return points[index] or 0

    @staticmethod
    def _selected_option_index(question: Question, answer: Answer) -> Optional[int]:
        """
        Index of the selected option.

        Returns 0 when options or the answer value are absent,
        None when the value is not one of the options.
        """
        if not question.options or answer.value is None:
            return 0
        try:
            return question.options.index(answer.value)
        except ValueError:
            return None

    # --------------------------------------------------------
    # TYPE SEMANTICS
    # --------------------------------------------------------

    def _score_by_type(
        self,
        question: Question,
        answer: Answer,
        scoring: Optional[QuestionScoring],
    ) -> float:
        question_type = question.type

        if question_type in _CHOICE_TYPES:
            return self._option_index_score(question, answer, scoring)

        if question_type in _NUMERIC_TYPES:
            if answer.numeric_value is None:
                return 0
            return self._reverse_numeric(answer.numeric_value, question, scoring)

        if question_type == QuestionType.BOOLEAN.value:
            value = 1 if answer.boolean_value else 0
            if answer.boolean_value is None:
                return value
            return self._reverse_numeric(value, question, scoring, default_scale=(0, 1))

        if question_type == QuestionType.LIKERT.value:
            if answer.numeric_value is not None:
                return self._reverse_numeric(answer.numeric_value, question, scoring)
            return self._option_index_score(question, answer, scoring)

        logger.debug(f"Question {question.id} of type {question_type!r} is not scoreable")
        return 0

    def _option_index_score(
        self,
        question: Question,
        answer: Answer,
        scoring: Optional[QuestionScoring],
    ) -> float:
        if not question.options or answer.value is None:
            return 0
        try:
            index = question.options.index(answer.value)
        except ValueError:
            return 0

        if self._should_reverse(scoring):
            return len(question.options) - 1 - index
        return index

    # --------------------------------------------------------
    # REVERSE SCORING
    # --------------------------------------------------------

    def _should_reverse(self, scoring: Optional[QuestionScoring]) -> bool:
        return self.apply_reverse_scoring and scoring is not None and scoring.reverse_score

    def _reverse_numeric(
        self,
        value: float,
        question: Question,
        scoring: Optional[QuestionScoring],
        default_scale: Optional[Tuple[float, float]] = None,
    ) -> float:
        if not self._should_reverse(scoring):
            return value

        low, high = scoring.min_value, scoring.max_value
        if (low is None or high is None) and question.options:
            low = 0 if low is None else low
            high = len(question.options) - 1 if high is None else high
        if (low is None or high is None) and default_scale is not None:
            low = default_scale[0] if low is None else low
            high = default_scale[1] if high is None else high

        if low is None or high is None:
            logger.debug(
                f"Question {question.id} is reverse scored but has no scale; "
                f"keeping value {value}"
            )
            return value

        return low + high - value


_default_resolver = QuestionScoreResolver()


def score_answer(question: Question, answer: Answer) -> float:
    """Resolve one answer with the default resolver."""
    return _default_resolver.score(question, answer)
