"""
Questionnaire Scoring Engine - Package.

============================================================
PURPOSE
============================================================
Scores completed questionnaire responses and classifies them
into risk levels with clinician-authored scoring
configurations.

============================================================
PIPELINE
============================================================
1. RESOLVE: point value per answered question
2. AGGREGATE: sum, average, weighted or custom formula
3. NORMALIZE: round half-up, clamp into [min, max], percentage
4. CLASSIFY: first rule whose inclusive band holds the score
5. PROJECT: rules as zones in percentage space
6. EMIT: immutable ScoreResult

============================================================
RISK LEVELS
============================================================
NONE < LOW < MEDIUM < HIGH < CRITICAL

NONE doubles as the fallback when no rule matches.

============================================================
USAGE
============================================================
    from questionnaire_scoring import (
        ScoringConfigurationService,
        InMemoryScoringStore,
        install_standard_configurations,
    )

    service = ScoringConfigurationService(InMemoryScoringStore())
    install_standard_configurations(service)

    result = service.calculate_score(response, answers, questions)
    print(f"{result.normalized_score} -> {result.risk_label}")

The SQL store (questionnaire_scoring.repository), the
FastAPI router (questionnaire_scoring.router) and the API
app (questionnaire_scoring.api) are imported explicitly by
hosts that need them.

============================================================
"""

from .types import (
    # Enums
    ScoringMethod,
    RiskLevel,
    VisualizationType,
    QuestionType,
    # Inputs
    Question,
    QuestionScoring,
    Answer,
    Response,
    # Configuration
    ScoringRule,
    ScoringConfiguration,
    ScoreCategory,
    # Outputs
    RiskMatch,
    VisualizationZone,
    VisualizationData,
    ScoreResult,
    ScoreTrendPoint,
    ScoringAnalytics,
    # Errors
    ScoringError,
    NotFoundError,
    ConfigurationNotFoundError,
    DefaultConfigurationNotFoundError,
    RuleNotFoundError,
    ScoreNotFoundError,
    UnsupportedScoringMethodError,
    MissingFormulaError,
    FormulaError,
    FormulaSyntaxError,
    FormulaEvaluationError,
    InvalidDefaultConfigurationError,
    InactiveConfigurationError,
)

from .config import (
    ScoringEngineConfig,
    get_default_config,
    configure_logging,
)

from .resolver import QuestionScoreResolver, score_answer
from .formula import parse_formula, evaluate_formula
from .aggregators import (
    get_aggregator,
    aggregate,
    round_half_up,
    normalize_score,
    score_to_percentage,
)
from .matcher import RiskRuleMatcher, match_risk
from .visualization import VisualizationProjector
from .validation import validate_configuration, validate_rule_coverage, is_valid_configuration
from .analytics import build_analytics

from .engine import (
    ScoringEngine,
    ScoringRequest,
    BatchScoreOutcome,
    score_response,
    is_high_risk,
    requires_immediate_action,
    format_score_summary,
)

from .schemas import (
    CreateScoringConfigData,
    UpdateScoringConfigData,
    ScoringRuleCreate,
    ScoringRuleUpdate,
    CreateScoreCategoryData,
    ScoreCalculationRequest,
)
from .store import ScoringStore, InMemoryScoringStore
from .service import ScoringConfigurationService
from .presets import (
    gad7_configuration_data,
    phq9_configuration_data,
    install_standard_configurations,
)


__all__ = [
    # Enums
    "ScoringMethod",
    "RiskLevel",
    "VisualizationType",
    "QuestionType",
    # Inputs
    "Question",
    "QuestionScoring",
    "Answer",
    "Response",
    # Configuration
    "ScoringRule",
    "ScoringConfiguration",
    "ScoreCategory",
    # Outputs
    "RiskMatch",
    "VisualizationZone",
    "VisualizationData",
    "ScoreResult",
    "ScoreTrendPoint",
    "ScoringAnalytics",
    # Errors
    "ScoringError",
    "NotFoundError",
    "ConfigurationNotFoundError",
    "DefaultConfigurationNotFoundError",
    "RuleNotFoundError",
    "ScoreNotFoundError",
    "UnsupportedScoringMethodError",
    "MissingFormulaError",
    "FormulaError",
    "FormulaSyntaxError",
    "FormulaEvaluationError",
    "InvalidDefaultConfigurationError",
    "InactiveConfigurationError",
    # Config
    "ScoringEngineConfig",
    "get_default_config",
    "configure_logging",
    # Components
    "QuestionScoreResolver",
    "score_answer",
    "parse_formula",
    "evaluate_formula",
    "get_aggregator",
    "aggregate",
    "round_half_up",
    "normalize_score",
    "score_to_percentage",
    "RiskRuleMatcher",
    "match_risk",
    "VisualizationProjector",
    "validate_configuration",
    "validate_rule_coverage",
    "is_valid_configuration",
    "build_analytics",
    # Engine
    "ScoringEngine",
    "ScoringRequest",
    "BatchScoreOutcome",
    "score_response",
    "is_high_risk",
    "requires_immediate_action",
    "format_score_summary",
    # Lifecycle
    "CreateScoringConfigData",
    "UpdateScoringConfigData",
    "ScoringRuleCreate",
    "ScoringRuleUpdate",
    "CreateScoreCategoryData",
    "ScoreCalculationRequest",
    "ScoringStore",
    "InMemoryScoringStore",
    "ScoringConfigurationService",
    "gad7_configuration_data",
    "phq9_configuration_data",
    "install_standard_configurations",
]
