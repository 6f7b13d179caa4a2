"""
Questionnaire Scoring Engine - Database Models.

============================================================
PURPOSE
============================================================
SQLAlchemy ORM models for scoring persistence.

Tables:
1. ScoringConfigurationRecord: configuration snapshot
2. ScoringRuleRecord: score bands owned by a configuration
3. ScoreCategoryRecord: question groupings
4. ScoreResultRecord: one result per (response, config)

Domain dataclasses stay the source of truth; records are
converted with to_domain / from_domain.

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database.engine import Base

from .types import (
    RiskLevel,
    ScoreCategory,
    ScoreResult,
    ScoringConfiguration,
    ScoringRule,
    VisualizationType,
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================
# CONFIGURATION MODEL
# ============================================================


class ScoringConfigurationRecord(Base):
    """
    Scoring configuration snapshot.

    ============================================================
    RELATIONSHIPS
    ============================================================
    - Has many ScoringRuleRecord (deleted with the configuration)

    ============================================================
    """

    __tablename__ = "scoring_configurations"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    questionnaire_id: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    scoring_method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="sum, average, weighted, custom",
    )

    weights: Mapped[Optional[Dict[str, float]]] = mapped_column(JSON, nullable=True)

    formula: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    formula_variables: Mapped[Optional[Dict[str, float]]] = mapped_column(JSON, nullable=True)

    min_score: Mapped[float] = mapped_column(Float, nullable=False)

    max_score: Mapped[float] = mapped_column(Float, nullable=False)

    passing_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    visualization_type: Mapped[str] = mapped_column(String(20), nullable=False, default="gauge")

    visualization_config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    rules: Mapped[List["ScoringRuleRecord"]] = relationship(
        "ScoringRuleRecord",
        back_populates="configuration",
        cascade="all, delete-orphan",
        order_by="ScoringRuleRecord.pk",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_scoring_configurations_questionnaire", "questionnaire_id"),
    )

    def __repr__(self) -> str:
        return (
            f"ScoringConfigurationRecord("
            f"id={self.id}, "
            f"questionnaire={self.questionnaire_id}, "
            f"method={self.scoring_method}, "
            f"default={self.is_default})"
        )

    def apply(self, configuration: ScoringConfiguration) -> None:
        """Copy a configuration snapshot onto this record (rules excluded)."""
        self.id = configuration.id
        self.questionnaire_id = configuration.questionnaire_id
        self.name = configuration.name
        self.description = configuration.description
        method = configuration.scoring_method
        self.scoring_method = getattr(method, "value", method)
        self.weights = dict(configuration.weights)
        self.formula = configuration.formula
        self.formula_variables = dict(configuration.formula_variables)
        self.min_score = configuration.min_score
        self.max_score = configuration.max_score
        self.passing_score = configuration.passing_score
        self.visualization_type = VisualizationType(configuration.visualization_type).value
        self.visualization_config = configuration.visualization_config
        self.is_active = configuration.is_active
        self.is_default = configuration.is_default
        self.created_by = configuration.created_by
        self.created_at = configuration.created_at
        self.updated_at = configuration.updated_at

    def to_domain(self) -> ScoringConfiguration:
        return ScoringConfiguration(
            id=self.id,
            questionnaire_id=self.questionnaire_id,
            name=self.name,
            scoring_method=self.scoring_method,
            min_score=self.min_score,
            max_score=self.max_score,
            rules=[rule.to_domain() for rule in self.rules],
            description=self.description,
            weights=dict(self.weights or {}),
            formula=self.formula,
            formula_variables=dict(self.formula_variables or {}),
            passing_score=self.passing_score,
            visualization_type=VisualizationType(self.visualization_type),
            visualization_config=self.visualization_config,
            is_active=self.is_active,
            is_default=self.is_default,
            created_by=self.created_by,
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )


# ============================================================
# RULE MODEL
# ============================================================


class ScoringRuleRecord(Base):
    """One inclusive score band of a configuration."""

    __tablename__ = "scoring_rules"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    id: Mapped[str] = mapped_column(String(64), nullable=False)

    configuration_pk: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("scoring_configurations.pk", ondelete="CASCADE"),
        nullable=False,
    )

    min_score: Mapped[float] = mapped_column(Float, nullable=False)

    max_score: Mapped[float] = mapped_column(Float, nullable=False)

    risk_level: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="none, low, medium, high, critical",
    )

    label: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    color: Mapped[str] = mapped_column(String(32), nullable=False)

    actions: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    order_num: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    configuration: Mapped["ScoringConfigurationRecord"] = relationship(
        "ScoringConfigurationRecord",
        back_populates="rules",
    )

    __table_args__ = (
        Index("ix_scoring_rules_configuration", "configuration_pk"),
    )

    @classmethod
    def from_domain(cls, rule: ScoringRule) -> "ScoringRuleRecord":
        return cls(
            id=rule.id,
            min_score=rule.min_score,
            max_score=rule.max_score,
            risk_level=RiskLevel(rule.risk_level).value,
            label=rule.label,
            description=rule.description,
            color=rule.color,
            actions=list(rule.actions),
            order_num=rule.order_num,
            created_at=rule.created_at,
            updated_at=rule.updated_at,
        )

    def to_domain(self) -> ScoringRule:
        return ScoringRule(
            id=self.id,
            min_score=self.min_score,
            max_score=self.max_score,
            risk_level=RiskLevel(self.risk_level),
            label=self.label,
            color=self.color,
            actions=list(self.actions or []),
            description=self.description,
            order_num=self.order_num,
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )


# ============================================================
# CATEGORY MODEL
# ============================================================


class ScoreCategoryRecord(Base):
    """Named group of questions with a sub-score weight."""

    __tablename__ = "score_categories"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    questionnaire_id: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    color: Mapped[str] = mapped_column(String(32), nullable=False)

    order_num: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    question_ids: Mapped[Optional[List[int]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_score_categories_questionnaire", "questionnaire_id"),
    )

    @classmethod
    def from_domain(cls, category: ScoreCategory) -> "ScoreCategoryRecord":
        return cls(
            id=category.id,
            questionnaire_id=category.questionnaire_id,
            name=category.name,
            description=category.description,
            weight=category.weight,
            color=category.color,
            order_num=category.order_num,
            question_ids=list(category.question_ids),
            created_at=category.created_at,
            updated_at=category.updated_at,
        )

    def to_domain(self) -> ScoreCategory:
        return ScoreCategory(
            id=self.id,
            questionnaire_id=self.questionnaire_id,
            name=self.name,
            weight=self.weight,
            color=self.color,
            order_num=self.order_num,
            question_ids=list(self.question_ids or []),
            description=self.description,
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )


# ============================================================
# RESULT MODEL
# ============================================================


class ScoreResultRecord(Base):
    """
    Stored ScoreResult.

    Filter columns are denormalized; the full result lives in
    result_json.
    """

    __tablename__ = "score_results"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    response_id: Mapped[int] = mapped_column(Integer, nullable=False)

    config_id: Mapped[str] = mapped_column(String(64), nullable=False)

    questionnaire_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    normalized_score: Mapped[int] = mapped_column(Integer, nullable=False)

    risk_level: Mapped[str] = mapped_column(String(20), nullable=False)

    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    result_json: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        comment="Full ScoreResult as JSON",
    )

    __table_args__ = (
        UniqueConstraint("response_id", "config_id", name="uq_score_results_response_config"),
        Index("ix_score_results_questionnaire", "questionnaire_id"),
        Index("ix_score_results_calculated_at", "calculated_at"),
    )

    def apply(self, result: ScoreResult) -> None:
        self.response_id = result.response_id
        self.config_id = result.config_id
        self.questionnaire_id = result.questionnaire_id
        self.normalized_score = result.normalized_score
        self.risk_level = RiskLevel(result.risk_level).value
        self.calculated_at = result.calculated_at
        self.result_json = result.to_dict()

    def to_domain(self) -> ScoreResult:
        return ScoreResult.from_dict(self.result_json)
