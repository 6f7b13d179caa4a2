"""
Questionnaire Scoring Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the Questionnaire Scoring Engine.

This module defines all types, enums, and dataclasses used
by the scoring system: the questionnaire inputs the engine
consumes, the scoring configuration it is driven by, and
the results it produces.

============================================================
DESIGN PRINCIPLES
============================================================
- All types are immutable (frozen dataclasses)
- Enums for discrete values
- Mutations produce new snapshots via dataclasses.replace
- Clear separation between input, configuration and output

============================================================
RISK LEVELS
============================================================
Every classification resolves to exactly one of:

    NONE < LOW < MEDIUM < HIGH < CRITICAL

NONE is also the fallback when no rule covers a score.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# ============================================================
# ENUMS
# ============================================================


class ScoringMethod(str, Enum):
    """
    Aggregation method used to combine per-question scores.

    - SUM: plain total of answered questions
    - AVERAGE: total divided by answered question count
    - WEIGHTED: weighted mean using configuration weights
    - CUSTOM: restricted arithmetic formula over a variable bag
    """

    SUM = "sum"
    AVERAGE = "average"
    WEIGHTED = "weighted"
    CUSTOM = "custom"


class RiskLevel(str, Enum):
    """Risk classification attached to a scoring rule."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def all_levels(cls) -> List["RiskLevel"]:
        """Return all levels in ascending severity."""
        return [cls.NONE, cls.LOW, cls.MEDIUM, cls.HIGH, cls.CRITICAL]

    @property
    def severity_order(self) -> int:
        """Numeric ordering for severity comparison."""
        return {"none": 0, "low": 1, "medium": 2, "high": 3, "critical": 4}[self.value]


class VisualizationType(str, Enum):
    """Chart family a renderer should use for a result."""

    GAUGE = "gauge"
    BAR = "bar"
    LINE = "line"
    RADAR = "radar"
    PIE = "pie"
    HEATMAP = "heatmap"


class QuestionType(str, Enum):
    """
    Question types with built-in scoring semantics.

    Questions of any other type are accepted but score 0
    unless they carry explicit scoring metadata.
    """

    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    RATING = "rating"
    SLIDER = "slider"
    BOOLEAN = "boolean"
    LIKERT = "likert"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ============================================================
# QUESTIONNAIRE INPUT CONTRACTS
# ============================================================


@dataclass(frozen=True)
class QuestionScoring:
    """
    Per-question scoring metadata (question.metadata["scoring"]).

    points:
        - list: point value per option index
        - number: fixed points for any answer
        - None: fall back to question type semantics
    weight:
        Question weight for the WEIGHTED method when the
        configuration has no weight for the question.
    reverse_score:
        Invert the resolved score on the question's scale.
    min_value / max_value:
        Scale bounds used to reverse numeric answers.
    """

    points: Union[None, float, List[float]] = None
    weight: Optional[float] = None
    reverse_score: bool = False
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    @classmethod
    def from_metadata(cls, metadata: Optional[Dict[str, Any]]) -> Optional["QuestionScoring"]:
        """Build from a question metadata dict, None when absent."""
        if not metadata or not isinstance(metadata.get("scoring"), dict):
            return None

        scoring = metadata["scoring"]
        points = scoring.get("points")
        if isinstance(points, (list, tuple)):
            points = list(points)
        elif isinstance(points, bool) or not isinstance(points, (int, float)):
            points = None

        weight = scoring.get("weight")
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            weight = None

        return cls(
            points=points,
            weight=weight,
            reverse_score=bool(scoring.get("reverse_score", False)),
            min_value=scoring.get("min_value"),
            max_value=scoring.get("max_value"),
        )


@dataclass(frozen=True)
class Question:
    """A questionnaire question as consumed by the engine."""

    id: int
    type: str
    questionnaire_id: Optional[int] = None
    options: Optional[List[str]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def scoring(self) -> Optional[QuestionScoring]:
        return QuestionScoring.from_metadata(self.metadata)

    @property
    def variable_name(self) -> str:
        """Name under which this question's score appears in formulas."""
        return f"q_{self.id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(
            id=data["id"],
            type=data.get("type", ""),
            questionnaire_id=data.get("questionnaire_id"),
            options=data.get("options"),
            metadata=data.get("metadata") or {},
        )


@dataclass(frozen=True)
class Answer:
    """
    One answer of a response.

    Exactly one typed value field is expected to be populated,
    depending on the question type.
    """

    question_id: int
    value: Optional[str] = None
    numeric_value: Optional[float] = None
    boolean_value: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Answer":
        return cls(
            question_id=data["question_id"],
            value=data.get("value"),
            numeric_value=data.get("numeric_value"),
            boolean_value=data.get("boolean_value"),
        )


@dataclass(frozen=True)
class Response:
    """A completed questionnaire response."""

    id: int
    questionnaire_id: int
    score: Optional[float] = None
    risk_level: Optional[str] = None
    completion_time: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Response":
        return cls(
            id=data["id"],
            questionnaire_id=data["questionnaire_id"],
            score=data.get("score"),
            risk_level=data.get("risk_level"),
            completion_time=data.get("completion_time"),
        )


# ============================================================
# CONFIGURATION CONTRACTS
# ============================================================


@dataclass(frozen=True)
class ScoringRule:
    """
    One inclusive score band and its classification.

    The rules of a configuration must partition the
    configuration's [min_score, max_score] range; see
    validation.validate_configuration.
    """

    id: str
    min_score: float
    max_score: float
    risk_level: RiskLevel
    label: str
    color: str
    actions: List[str] = field(default_factory=list)
    description: Optional[str] = None
    order_num: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def contains(self, score: float) -> bool:
        """Check whether score falls inside this band."""
        return self.min_score <= score <= self.max_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "min_score": self.min_score,
            "max_score": self.max_score,
            "risk_level": RiskLevel(self.risk_level).value,
            "label": self.label,
            "description": self.description,
            "color": self.color,
            "actions": list(self.actions),
            "order_num": self.order_num,
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoringRule":
        return cls(
            id=data["id"],
            min_score=data["min_score"],
            max_score=data["max_score"],
            risk_level=RiskLevel(data["risk_level"]),
            label=data["label"],
            color=data.get("color", ""),
            actions=list(data.get("actions") or []),
            description=data.get("description"),
            order_num=data.get("order_num", 0),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass(frozen=True)
class ScoringConfiguration:
    """
    A named, versioned scoring definition for one questionnaire.

    ============================================================
    INVARIANTS (enforced by the lifecycle service)
    ============================================================
    - At most one default configuration per questionnaire
    - A default configuration is valid and active

    ============================================================
    INVARIANTS (reported by validate, never auto-repaired)
    ============================================================
    - max_score > min_score
    - passing_score within [min_score, max_score]
    - rules partition [min_score, max_score] without gaps

    ============================================================
    """

    id: str
    questionnaire_id: int
    name: str
    scoring_method: str
    min_score: float
    max_score: float
    rules: List[ScoringRule] = field(default_factory=list)
    description: Optional[str] = None
    weights: Dict[str, float] = field(default_factory=dict)
    formula: Optional[str] = None
    formula_variables: Dict[str, float] = field(default_factory=dict)
    passing_score: Optional[float] = None
    visualization_type: VisualizationType = VisualizationType.GAUGE
    visualization_config: Optional[Dict[str, Any]] = None
    is_active: bool = True
    is_default: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def score_range(self) -> float:
        return self.max_score - self.min_score

    def sorted_rules(self) -> List[ScoringRule]:
        """Rules ordered by min_score."""
        return sorted(self.rules, key=lambda rule: rule.min_score)

    def get_rule(self, rule_id: str) -> Optional[ScoringRule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        method = self.scoring_method
        return {
            "id": self.id,
            "questionnaire_id": self.questionnaire_id,
            "name": self.name,
            "description": self.description,
            "scoring_method": method.value if isinstance(method, Enum) else method,
            "weights": dict(self.weights),
            "formula": self.formula,
            "formula_variables": dict(self.formula_variables),
            "max_score": self.max_score,
            "min_score": self.min_score,
            "passing_score": self.passing_score,
            "visualization_type": VisualizationType(self.visualization_type).value,
            "visualization_config": self.visualization_config,
            "is_active": self.is_active,
            "is_default": self.is_default,
            "rules": [rule.to_dict() for rule in self.rules],
            "created_by": self.created_by,
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoringConfiguration":
        return cls(
            id=data["id"],
            questionnaire_id=data["questionnaire_id"],
            name=data.get("name", ""),
            scoring_method=data["scoring_method"],
            min_score=data["min_score"],
            max_score=data["max_score"],
            rules=[ScoringRule.from_dict(rule) for rule in data.get("rules") or []],
            description=data.get("description"),
            weights=dict(data.get("weights") or {}),
            formula=data.get("formula"),
            formula_variables=dict(data.get("formula_variables") or {}),
            passing_score=data.get("passing_score"),
            visualization_type=VisualizationType(data.get("visualization_type", "gauge")),
            visualization_config=data.get("visualization_config"),
            is_active=data.get("is_active", True),
            is_default=data.get("is_default", False),
            created_by=data.get("created_by"),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass(frozen=True)
class ScoreCategory:
    """Named group of questions producing a weighted sub-score."""

    id: str
    questionnaire_id: int
    name: str
    weight: float
    color: str
    order_num: int
    question_ids: List[int] = field(default_factory=list)
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "questionnaire_id": self.questionnaire_id,
            "name": self.name,
            "description": self.description,
            "weight": self.weight,
            "color": self.color,
            "order_num": self.order_num,
            "question_ids": list(self.question_ids),
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
        }


# ============================================================
# OUTPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class RiskMatch:
    """Classification of a normalized score against a rule set."""

    risk_level: RiskLevel
    label: str
    color: str
    actions: List[str] = field(default_factory=list)
    rule_id: Optional[str] = None
    is_fallback: bool = False


@dataclass(frozen=True)
class VisualizationZone:
    """One rule projected into percentage space."""

    min: float
    max: float
    color: str
    label: str
    risk_level: RiskLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min": self.min,
            "max": self.max,
            "color": self.color,
            "label": self.label,
            "risk_level": RiskLevel(self.risk_level).value,
        }


@dataclass(frozen=True)
class VisualizationData:
    """
    Renderer-agnostic description of a scored result.

    Carries everything a gauge, bar or heatmap renderer needs
    without re-deriving anything from the raw rules.
    """

    score: float
    min_score: float
    max_score: float
    risk_level: RiskLevel
    label: str
    visualization_type: VisualizationType
    percentage: float
    zones: List[VisualizationZone] = field(default_factory=list)
    passing_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "max_score": self.max_score,
            "min_score": self.min_score,
            "passing_score": self.passing_score,
            "risk_level": RiskLevel(self.risk_level).value,
            "label": self.label,
            "visualization_type": VisualizationType(self.visualization_type).value,
            "percentage": self.percentage,
            "zones": [zone.to_dict() for zone in self.zones],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VisualizationData":
        return cls(
            score=data["score"],
            min_score=data["min_score"],
            max_score=data["max_score"],
            risk_level=RiskLevel(data["risk_level"]),
            label=data["label"],
            visualization_type=VisualizationType(data["visualization_type"]),
            percentage=data["percentage"],
            zones=[
                VisualizationZone(
                    min=zone["min"],
                    max=zone["max"],
                    color=zone["color"],
                    label=zone["label"],
                    risk_level=RiskLevel(zone["risk_level"]),
                )
                for zone in data.get("zones") or []
            ],
            passing_score=data.get("passing_score"),
        )


@dataclass(frozen=True)
class ScoreResult:
    """
    Immutable outcome of scoring one response with one configuration.

    ============================================================
    OUTPUT GUARANTEES
    ============================================================
    - normalized_score: always within [min_score, max_score]
    - percentage: always 0-100 for a valid configuration
    - risk_level: always set (NONE when no rule matched)
    - evaluation_error: set only when a custom formula failed
      and total_score degraded to 0

    ============================================================
    """

    response_id: int
    config_id: str
    total_score: float
    normalized_score: int
    percentage: float
    risk_level: RiskLevel
    risk_label: str
    risk_color: str
    visualization_data: VisualizationData
    calculated_at: datetime
    actions: List[str] = field(default_factory=list)
    questionnaire_id: Optional[int] = None
    category_scores: Optional[Dict[str, float]] = None
    evaluation_error: Optional[str] = None
    engine_version: str = "1.0.0"

    @property
    def is_degraded(self) -> bool:
        """True when the total was degraded because of a formula failure."""
        return self.evaluation_error is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "response_id": self.response_id,
            "config_id": self.config_id,
            "questionnaire_id": self.questionnaire_id,
            "total_score": self.total_score,
            "normalized_score": self.normalized_score,
            "percentage": self.percentage,
            "risk_level": RiskLevel(self.risk_level).value,
            "risk_label": self.risk_label,
            "risk_color": self.risk_color,
            "actions": list(self.actions),
            "category_scores": dict(self.category_scores) if self.category_scores else None,
            "visualization_data": self.visualization_data.to_dict(),
            "calculated_at": self.calculated_at.isoformat(),
            "evaluation_error": self.evaluation_error,
            "engine_version": self.engine_version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoreResult":
        return cls(
            response_id=data["response_id"],
            config_id=data["config_id"],
            questionnaire_id=data.get("questionnaire_id"),
            total_score=data["total_score"],
            normalized_score=data["normalized_score"],
            percentage=data["percentage"],
            risk_level=RiskLevel(data["risk_level"]),
            risk_label=data["risk_label"],
            risk_color=data["risk_color"],
            actions=list(data.get("actions") or []),
            category_scores=data.get("category_scores"),
            visualization_data=VisualizationData.from_dict(data["visualization_data"]),
            calculated_at=_parse_datetime(data["calculated_at"]),
            evaluation_error=data.get("evaluation_error"),
            engine_version=data.get("engine_version", "1.0.0"),
        )


@dataclass(frozen=True)
class ScoreTrendPoint:
    """Mean normalized score and response count for one day."""

    date: str
    average_score: float
    total_responses: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "average_score": self.average_score,
            "total_responses": self.total_responses,
        }


@dataclass(frozen=True)
class ScoringAnalytics:
    """Aggregate read model over stored score results."""

    total_scores: int
    average_score: float
    risk_distribution: Dict[str, int]
    risk_percentage: Dict[str, float]
    high_risk_count: int
    trend_direction: str
    score_trends: List[ScoreTrendPoint]
    last_updated: datetime
    category_performance: Optional[Dict[str, Dict[str, float]]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_scores": self.total_scores,
            "average_score": self.average_score,
            "risk_distribution": dict(self.risk_distribution),
            "risk_percentage": dict(self.risk_percentage),
            "high_risk_count": self.high_risk_count,
            "trend_direction": self.trend_direction,
            "score_trends": [point.to_dict() for point in self.score_trends],
            "category_performance": self.category_performance,
            "last_updated": self.last_updated.isoformat(),
        }


# ============================================================
# ERROR TYPES
# ============================================================


class ScoringError(Exception):
    """Base exception for scoring errors."""
    pass


class NotFoundError(ScoringError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ConfigurationNotFoundError(NotFoundError):
    def __init__(self, config_id: str) -> None:
        super().__init__("Scoring configuration", config_id)


class DefaultConfigurationNotFoundError(NotFoundError):
    def __init__(self, questionnaire_id: int) -> None:
        super().__init__("Default scoring configuration for questionnaire", questionnaire_id)


class RuleNotFoundError(NotFoundError):
    def __init__(self, rule_id: str) -> None:
        super().__init__("Scoring rule", rule_id)


class ScoreNotFoundError(NotFoundError):
    def __init__(self, response_id: int, config_id: str) -> None:
        super().__init__("Score result", f"{response_id}_{config_id}")
        self.response_id = response_id
        self.config_id = config_id


class UnsupportedScoringMethodError(ScoringError):
    """Raised for a scoring_method outside ScoringMethod."""

    def __init__(self, method: Any) -> None:
        super().__init__(f"Unsupported scoring method: {method}")
        self.method = method


class MissingFormulaError(ScoringError):
    """Raised when the custom method is used without a formula."""

    def __init__(self, config_id: Optional[str] = None) -> None:
        super().__init__("Custom formula is required for custom scoring method")
        self.config_id = config_id


class FormulaError(ScoringError):
    """
    Base class for formula parse and evaluation failures.

    NOTE: The engine degrades these to a total of 0 and
    records the message on ScoreResult.evaluation_error.
    """
    pass


class FormulaSyntaxError(FormulaError):
    """Raised when a formula cannot be tokenized or parsed."""

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)
        self.position = position


class FormulaEvaluationError(FormulaError):
    """Raised when a parsed formula cannot produce a finite number."""
    pass


class InvalidDefaultConfigurationError(ScoringError):
    """Raised when an invalid or inactive configuration is made default."""

    def __init__(self, config_id: str, errors: List[str]) -> None:
        super().__init__(
            f"Configuration {config_id} cannot be default: " + "; ".join(errors)
        )
        self.config_id = config_id
        self.errors = list(errors)


class InactiveConfigurationError(ScoringError):
    """Raised when scoring is requested with an inactive configuration."""

    def __init__(self, config_id: str) -> None:
        super().__init__(f"Scoring configuration is inactive: {config_id}")
        self.config_id = config_id
