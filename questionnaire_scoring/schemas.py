"""
Pydantic Schemas for Scoring Configuration Authoring.

Plain data shapes accepted by the lifecycle service and the
REST router. All fields are JSON-safe, so any transport can
carry them verbatim.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .types import (
    Answer,
    Question,
    Response,
    RiskLevel,
    ScoringMethod,
    VisualizationType,
)


# =============================================================
# RULE SCHEMAS
# =============================================================

class ScoringRuleCreate(BaseModel):
    """Schema for a new scoring rule (id and timestamps are generated)."""
    min_score: float
    max_score: float
    risk_level: RiskLevel
    label: str
    description: Optional[str] = None
    color: str = "#9CA3AF"
    actions: List[str] = Field(default_factory=list)
    order_num: int = 0


class ScoringRuleUpdate(BaseModel):
    """Partial rule update; only fields that are set are applied."""
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    risk_level: Optional[RiskLevel] = None
    label: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    actions: Optional[List[str]] = None
    order_num: Optional[int] = None


# =============================================================
# CONFIGURATION SCHEMAS
# =============================================================

class CreateScoringConfigData(BaseModel):
    """Schema for creating a scoring configuration."""
    questionnaire_id: int
    name: str
    description: Optional[str] = None
    scoring_method: ScoringMethod = ScoringMethod.SUM
    weights: Optional[Dict[str, float]] = None
    formula: Optional[str] = None
    formula_variables: Optional[Dict[str, float]] = None
    max_score: float
    min_score: float
    passing_score: Optional[float] = None
    visualization_type: VisualizationType = VisualizationType.GAUGE
    visualization_config: Optional[Dict[str, Any]] = None
    is_active: bool = True
    is_default: bool = False
    rules: List[ScoringRuleCreate] = Field(default_factory=list)


class UpdateScoringConfigData(BaseModel):
    """
    Schema for updating a scoring configuration.

    Only fields explicitly set are merged onto the stored
    configuration. Providing rules replaces the rule set.
    """
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    scoring_method: Optional[ScoringMethod] = None
    weights: Optional[Dict[str, float]] = None
    formula: Optional[str] = None
    formula_variables: Optional[Dict[str, float]] = None
    max_score: Optional[float] = None
    min_score: Optional[float] = None
    passing_score: Optional[float] = None
    visualization_type: Optional[VisualizationType] = None
    visualization_config: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None
    rules: Optional[List[ScoringRuleCreate]] = None


class UpdateScoringConfigBody(BaseModel):
    """Update body for the REST surface, where the id is in the path."""
    name: Optional[str] = None
    description: Optional[str] = None
    scoring_method: Optional[ScoringMethod] = None
    weights: Optional[Dict[str, float]] = None
    formula: Optional[str] = None
    formula_variables: Optional[Dict[str, float]] = None
    max_score: Optional[float] = None
    min_score: Optional[float] = None
    passing_score: Optional[float] = None
    visualization_type: Optional[VisualizationType] = None
    visualization_config: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None
    rules: Optional[List[ScoringRuleCreate]] = None


# =============================================================
# CATEGORY SCHEMAS
# =============================================================

class CreateScoreCategoryData(BaseModel):
    """Schema for creating a score category."""
    questionnaire_id: int
    name: str
    description: Optional[str] = None
    weight: float = 1.0
    color: str = "#6B7280"
    order_num: int = 0
    question_ids: List[int] = Field(default_factory=list)


# =============================================================
# CALCULATION SCHEMAS
# =============================================================

class ResponseSchema(BaseModel):
    id: int
    questionnaire_id: int
    score: Optional[float] = None
    risk_level: Optional[str] = None
    completion_time: Optional[float] = None

    def to_response(self) -> Response:
        return Response(**self.model_dump())


class QuestionSchema(BaseModel):
    id: int
    type: str
    questionnaire_id: Optional[int] = None
    options: Optional[List[str]] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_question(self) -> Question:
        return Question(**self.model_dump())


class AnswerSchema(BaseModel):
    question_id: int
    value: Optional[str] = None
    numeric_value: Optional[float] = None
    boolean_value: Optional[bool] = None

    def to_answer(self) -> Answer:
        return Answer(**self.model_dump())


class ScoreCalculationRequest(BaseModel):
    """Schema for scoring one response over the REST surface."""
    response: ResponseSchema
    answers: List[AnswerSchema] = Field(default_factory=list)
    questions: List[QuestionSchema] = Field(default_factory=list)
    store_result: bool = False


# =============================================================
# RESPONSE SCHEMAS
# =============================================================

class ValidationResponse(BaseModel):
    """Result of validating a configuration."""
    config_id: str
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
