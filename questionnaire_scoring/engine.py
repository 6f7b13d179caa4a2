"""
Questionnaire Scoring Engine - Main Orchestrator.

============================================================
PURPOSE
============================================================
The ScoringEngine is the main entry point for scoring a
completed questionnaire response.

It orchestrates:
1. Answer indexing
2. Aggregation (resolver + strategy)
3. Normalization and percentage
4. Risk rule matching
5. Visualization projection
6. Category sub-scores
7. Result packaging

============================================================
DESIGN PRINCIPLES
============================================================
- Orchestration only; delegates to components
- Stateless per call: independent responses can be scored
  concurrently without coordination
- Formula failures degrade to 0 and are recorded on the
  result, never raised
- Unsupported methods and missing formulas are hard errors

============================================================
USAGE
============================================================
    from questionnaire_scoring import ScoringEngine

    engine = ScoringEngine()
    result = engine.score(response, answers, questions, configuration)

    print(f"Risk Level: {result.risk_level.value}")
    print(f"Score: {result.normalized_score} ({result.percentage}%)")

============================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from core.clock import ClockProtocol, SystemClock

from .aggregators import get_aggregator, normalize_score, round_half_up, score_to_percentage
from .config import ScoringEngineConfig
from .matcher import RiskRuleMatcher
from .resolver import QuestionScoreResolver
from .types import (
    Answer,
    FormulaError,
    Question,
    Response,
    RiskLevel,
    ScoreCategory,
    ScoreResult,
    ScoringConfiguration,
    ScoringError,
)
from .visualization import VisualizationProjector

logger = logging.getLogger(__name__)


# ============================================================
# BATCH CONTRACTS
# ============================================================


@dataclass(frozen=True)
class ScoringRequest:
    """One response to score as part of a batch."""

    response: Response
    answers: List[Answer]
    questions: List[Question]
    configuration: ScoringConfiguration
    categories: List[ScoreCategory] = field(default_factory=list)


@dataclass(frozen=True)
class BatchScoreOutcome:
    """Result or failure of one batch item."""

    response_id: int
    result: Optional[ScoreResult] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


# ============================================================
# ENGINE
# ============================================================


class ScoringEngine:
    """
    Main orchestrator for questionnaire scoring.

    ============================================================
    RESPONSIBILITIES
    ============================================================
    1. Resolve per-question scores
    2. Aggregate with the configured method
    3. Clamp, round and convert to percentage
    4. Classify against the rule set
    5. Project into visualization zones
    6. Package an immutable ScoreResult

    ============================================================
    """

    def __init__(
        self,
        config: Optional[ScoringEngineConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        """
        Initialize the Scoring Engine.

        Args:
            config: Engine configuration. Uses defaults if not provided.
            clock: Time source for calculated_at timestamps.
        """
        self.config = config or ScoringEngineConfig()
        self.clock = clock or SystemClock()

        self.resolver = QuestionScoreResolver(
            apply_reverse_scoring=self.config.apply_reverse_scoring
        )
        self.matcher = RiskRuleMatcher(
            fallback_label=self.config.fallback_label,
            fallback_color=self.config.fallback_color,
        )
        self.projector = VisualizationProjector(precision=self.config.percentage_precision)

    def score(
        self,
        response: Response,
        answers: Sequence[Answer],
        questions: Sequence[Question],
        configuration: ScoringConfiguration,
        categories: Optional[Sequence[ScoreCategory]] = None,
    ) -> ScoreResult:
        """
        Score one response with one configuration.

        Args:
            response: The response being scored
            answers: Its answers
            questions: The questionnaire's questions
            configuration: Scoring configuration to apply
            categories: Optional categories for sub-scores

        Returns:
            ScoreResult for the response

        Raises:
            UnsupportedScoringMethodError: Unknown scoring method
            MissingFormulaError: CUSTOM method without formula
        """
        # --------------------------------------------------
        # Step 1: Index answers
        # --------------------------------------------------
        answers_by_question_id = {answer.question_id: answer for answer in answers}

        # --------------------------------------------------
        # Step 2: Aggregate
        # --------------------------------------------------
        aggregator = get_aggregator(configuration.scoring_method, self.resolver)
        evaluation_error: Optional[str] = None

        try:
            total_score = aggregator.aggregate(questions, answers_by_question_id, configuration)
        except FormulaError as e:
            logger.warning(
                f"Formula evaluation failed for config={configuration.id} "
                f"response={response.id}, scoring as 0: {e}"
            )
            total_score = 0
            evaluation_error = str(e)

        # --------------------------------------------------
        # Step 3: Normalize
        # --------------------------------------------------
        normalized_score = normalize_score(
            total_score, configuration.min_score, configuration.max_score
        )
        percentage = score_to_percentage(
            normalized_score,
            configuration.min_score,
            configuration.max_score,
            self.config.percentage_precision,
        )

        # --------------------------------------------------
        # Step 4: Classify
        # --------------------------------------------------
        risk_match = self.matcher.match(normalized_score, configuration.rules)
        if risk_match.is_fallback:
            logger.debug(
                f"No rule of config={configuration.id} covers score {normalized_score}"
            )

        # --------------------------------------------------
        # Step 5: Visualize
        # --------------------------------------------------
        visualization_data = self.projector.project(normalized_score, risk_match, configuration)

        # --------------------------------------------------
        # Step 6: Category sub-scores
        # --------------------------------------------------
        category_scores = self.calculate_category_scores(
            questions, answers_by_question_id, categories or []
        )

        return ScoreResult(
            response_id=response.id,
            config_id=configuration.id,
            questionnaire_id=configuration.questionnaire_id,
            total_score=total_score,
            normalized_score=normalized_score,
            percentage=percentage,
            risk_level=risk_match.risk_level,
            risk_label=risk_match.label,
            risk_color=risk_match.color,
            actions=list(risk_match.actions),
            category_scores=category_scores,
            visualization_data=visualization_data,
            calculated_at=self.clock.now(),
            evaluation_error=evaluation_error,
            engine_version=self.config.engine_version,
        )

    def calculate_category_scores(
        self,
        questions: Sequence[Question],
        answers_by_question_id: Mapping[int, Answer],
        categories: Sequence[ScoreCategory],
    ) -> Optional[Dict[str, float]]:
        """
        Weighted sub-score per category.

        Each category scores the sum of its answered questions
        multiplied by the category weight.

        Returns:
            Scores keyed by category name, None without categories
        """
        if not categories:
            return None

        questions_by_id = {question.id: question for question in questions}
        scores: Dict[str, float] = {}

        for category in sorted(categories, key=lambda c: c.order_num):
            subtotal = 0.0
            for question_id in category.question_ids:
                question = questions_by_id.get(question_id)
                answer = answers_by_question_id.get(question_id)
                if question is not None and answer is not None:
                    subtotal += self.resolver.score(question, answer)
            scores[category.name] = round_half_up(
                subtotal * category.weight, self.config.percentage_precision
            )

        return scores

    def score_batch(self, requests: Iterable[ScoringRequest]) -> List[BatchScoreOutcome]:
        """
        Score many responses independently.

        A failing item is recorded on its outcome and does not
        stop the rest of the batch.
        """
        outcomes: List[BatchScoreOutcome] = []

        for request in requests:
            try:
                result = self.score(
                    request.response,
                    request.answers,
                    request.questions,
                    request.configuration,
                    request.categories,
                )
                outcomes.append(BatchScoreOutcome(response_id=request.response.id, result=result))
            except ScoringError as e:
                logger.warning(f"Scoring failed for response={request.response.id}: {e}")
                outcomes.append(BatchScoreOutcome(response_id=request.response.id, error=str(e)))

        return outcomes

    def get_config(self) -> ScoringEngineConfig:
        """Return the current engine configuration."""
        return self.config


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


def score_response(
    response: Response,
    answers: Sequence[Answer],
    questions: Sequence[Question],
    configuration: ScoringConfiguration,
    config: Optional[ScoringEngineConfig] = None,
) -> ScoreResult:
    """
    Convenience function to score a response in one call.

    For repeated scoring, prefer a persistent ScoringEngine.
    """
    return ScoringEngine(config=config).score(response, answers, questions, configuration)


def is_high_risk(result: ScoreResult) -> bool:
    """True if the result is classified HIGH or CRITICAL."""
    return RiskLevel(result.risk_level) in (RiskLevel.HIGH, RiskLevel.CRITICAL)


def requires_immediate_action(result: ScoreResult) -> bool:
    """
    True if the result is classified CRITICAL.

    Note: The engine itself triggers nothing. Notification
    and follow-up belong to the consumers of the result.
    """
    return RiskLevel(result.risk_level) == RiskLevel.CRITICAL


def format_score_summary(result: ScoreResult) -> str:
    """
    Format a human-readable score summary.

    Useful for logging and review tooling.
    """
    lines = [
        "=" * 50,
        "SCORE SUMMARY",
        "=" * 50,
        f"Response:   {result.response_id}",
        f"Config:     {result.config_id}",
        f"Score:      {result.normalized_score} "
        f"({result.visualization_data.min_score}-{result.visualization_data.max_score})",
        f"Percentage: {result.percentage}%",
        f"Risk Level: {RiskLevel(result.risk_level).value.upper()} - {result.risk_label}",
    ]

    if result.actions:
        lines.append("")
        lines.append("Recommended Actions:")
        lines.extend(f"  - {action}" for action in result.actions)

    if result.category_scores:
        lines.append("")
        lines.append("Categories:")
        lines.extend(f"  {name}: {score}" for name, score in result.category_scores.items())

    if result.evaluation_error:
        lines.append("")
        lines.append(f"WARNING: formula failed, total degraded to 0 ({result.evaluation_error})")

    lines.append("=" * 50)
    return "\n".join(lines)
