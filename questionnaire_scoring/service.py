"""
Questionnaire Scoring Engine - Configuration Lifecycle Service.

============================================================
PURPOSE
============================================================
Owns scoring configurations, their rules, score categories
and stored results, and keeps the configuration invariants:

- At most one default configuration per questionnaire
- A configuration can only become default when it
  validates cleanly and is active

Coverage of the rule set is reported by validate() and
never repaired automatically.

============================================================
CONCURRENCY
============================================================
Every mutating operation for a questionnaire runs under the
store's questionnaire_lock, so two concurrent set_default
calls can never leave two defaults behind. Reads return
immutable snapshots.

============================================================
USAGE
============================================================
    service = ScoringConfigurationService(InMemoryScoringStore())
    config = service.create(CreateScoringConfigData(...), created_by="clinician-1")
    result = service.calculate_score(response, answers, questions)

============================================================
"""

import logging
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Union

from core.clock import ClockProtocol, SystemClock

from .analytics import build_analytics
from .config import ScoringEngineConfig, get_default_config
from .engine import ScoringEngine
from .schemas import (
    CreateScoreCategoryData,
    CreateScoringConfigData,
    ScoringRuleCreate,
    ScoringRuleUpdate,
    UpdateScoringConfigData,
)
from .store import InMemoryScoringStore, ScoringStore
from .types import (
    Answer,
    ConfigurationNotFoundError,
    DefaultConfigurationNotFoundError,
    InactiveConfigurationError,
    InvalidDefaultConfigurationError,
    Question,
    Response,
    RuleNotFoundError,
    ScoreCategory,
    ScoreNotFoundError,
    ScoreResult,
    ScoringAnalytics,
    ScoringConfiguration,
    ScoringRule,
)
from .validation import validate_configuration

logger = logging.getLogger(__name__)


INACTIVE_DEFAULT_ERROR = "Default configuration must be active"


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


class ScoringConfigurationService:
    """
    Configuration Lifecycle Manager.

    ============================================================
    OPERATIONS
    ============================================================
    Configurations: create, validate, get, get_by_questionnaire,
        get_default, update, delete, set_default
    Rules: add_rule, update_rule, delete_rule
    Categories: create_category, get_categories
    Results: calculate_score, store_score, get_score,
        get_scores_for_response, get_analytics

    ============================================================
    """

    def __init__(
        self,
        store: Optional[ScoringStore] = None,
        engine: Optional[ScoringEngine] = None,
        clock: Optional[ClockProtocol] = None,
        config: Optional[ScoringEngineConfig] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Persistence backend (in-memory when omitted)
            engine: Scoring engine (built from config when omitted)
            clock: Time source for timestamps
            config: Engine configuration
        """
        self.config = config or (engine.config if engine else get_default_config())
        self.clock = clock or (engine.clock if engine else SystemClock())
        self.store = store or InMemoryScoringStore()
        self.engine = engine or ScoringEngine(config=self.config, clock=self.clock)

    # --------------------------------------------------------
    # CONFIGURATIONS
    # --------------------------------------------------------

    def create(
        self,
        data: Union[CreateScoringConfigData, Dict[str, Any]],
        created_by: Optional[str] = None,
    ) -> ScoringConfiguration:
        """
        Create a configuration.

        Rule coverage is not enforced here; call validate().

        Raises:
            InvalidDefaultConfigurationError: is_default requested
                for an invalid or inactive configuration
        """
        if not isinstance(data, CreateScoringConfigData):
            data = CreateScoringConfigData.model_validate(data)

        now = self.clock.now()
        configuration = ScoringConfiguration(
            id=_new_id("config"),
            questionnaire_id=data.questionnaire_id,
            name=data.name,
            description=data.description,
            scoring_method=_enum_value(data.scoring_method),
            weights=dict(data.weights or {}),
            formula=data.formula,
            formula_variables=dict(data.formula_variables or {}),
            min_score=data.min_score,
            max_score=data.max_score,
            passing_score=data.passing_score,
            visualization_type=data.visualization_type,
            visualization_config=data.visualization_config,
            is_active=data.is_active,
            is_default=data.is_default,
            rules=[self._build_rule(rule, now) for rule in data.rules],
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

        with self.store.questionnaire_lock(configuration.questionnaire_id):
            if configuration.is_default:
                self._ensure_can_be_default(configuration)
                self._clear_other_defaults(configuration.questionnaire_id, configuration.id, now)
            self.store.save_configuration(configuration)

        logger.info(
            f"Created scoring configuration {configuration.id} "
            f"'{configuration.name}' for questionnaire {configuration.questionnaire_id} "
            f"(method={configuration.scoring_method}, rules={len(configuration.rules)}, "
            f"default={configuration.is_default})"
        )
        return configuration

    def validate(self, configuration: Union[ScoringConfiguration, str]) -> List[str]:
        """
        Validate a configuration or a stored configuration id.

        Returns:
            Human-readable problems, empty when valid
        """
        if isinstance(configuration, str):
            configuration = self.get(configuration)
        return validate_configuration(configuration)

    def get(self, config_id: str) -> ScoringConfiguration:
        """
        Raises:
            ConfigurationNotFoundError
        """
        configuration = self.store.get_configuration(config_id)
        if configuration is None:
            raise ConfigurationNotFoundError(config_id)
        return configuration

    def get_by_questionnaire(self, questionnaire_id: int) -> List[ScoringConfiguration]:
        """All configurations of a questionnaire, newest first."""
        return self.store.list_configurations(questionnaire_id)

    def get_default(self, questionnaire_id: int) -> Optional[ScoringConfiguration]:
        for configuration in self.get_by_questionnaire(questionnaire_id):
            if configuration.is_default:
                return configuration
        return None

    def update(self, data: Union[UpdateScoringConfigData, Dict[str, Any]]) -> ScoringConfiguration:
        """
        Merge the provided fields onto a stored configuration.

        Providing rules replaces the whole rule set. Turning
        is_default on unsets it on the questionnaire's other
        configurations.

        Raises:
            ConfigurationNotFoundError
            InvalidDefaultConfigurationError
        """
        if not isinstance(data, UpdateScoringConfigData):
            data = UpdateScoringConfigData.model_validate(data)

        changes = data.model_dump(exclude_unset=True)
        config_id = changes.pop("id")
        questionnaire_id = self.get(config_id).questionnaire_id

        with self.store.questionnaire_lock(questionnaire_id):
            existing = self.get(config_id)
            now = self.clock.now()

            if "rules" in changes:
                changes["rules"] = [self._build_rule(rule, now) for rule in data.rules or []]
            if "scoring_method" in changes:
                changes["scoring_method"] = _enum_value(data.scoring_method)
            if "visualization_type" in changes:
                changes["visualization_type"] = data.visualization_type
            for key in ("weights", "formula_variables"):
                if key in changes:
                    changes[key] = dict(changes[key] or {})
            for key in ("name", "scoring_method", "min_score", "max_score",
                        "visualization_type", "is_active", "is_default"):
                # These fields are not nullable
                if key in changes and changes[key] is None:
                    changes.pop(key)

            updated = replace(existing, **changes, updated_at=now)

            if updated.is_default:
                self._ensure_can_be_default(updated)
                if not existing.is_default:
                    self._clear_other_defaults(updated.questionnaire_id, updated.id, now)

            self.store.save_configuration(updated)

        logger.info(
            f"Updated scoring configuration {config_id}: {sorted(changes)}"
        )
        return updated

    def delete(self, config_id: str) -> bool:
        """
        Delete a configuration and its rules.

        Stored results referencing it are kept and become stale.

        Raises:
            ConfigurationNotFoundError
        """
        questionnaire_id = self.get(config_id).questionnaire_id

        with self.store.questionnaire_lock(questionnaire_id):
            if not self.store.delete_configuration(config_id):
                raise ConfigurationNotFoundError(config_id)

        logger.info(f"Deleted scoring configuration {config_id}")
        return True

    def set_default(self, config_id: str) -> ScoringConfiguration:
        """Make a configuration the questionnaire's default."""
        configuration = self.update(UpdateScoringConfigData(id=config_id, is_default=True))
        logger.info(
            f"Configuration {config_id} is now default for "
            f"questionnaire {configuration.questionnaire_id}"
        )
        return configuration

    def _ensure_can_be_default(self, configuration: ScoringConfiguration) -> None:
        errors = validate_configuration(configuration)
        if not configuration.is_active:
            errors.append(INACTIVE_DEFAULT_ERROR)
        if errors:
            raise InvalidDefaultConfigurationError(configuration.id, errors)

    def _clear_other_defaults(self, questionnaire_id: int, keep_id: str, now) -> None:
        for other in self.store.list_configurations(questionnaire_id):
            if other.is_default and other.id != keep_id:
                self.store.save_configuration(replace(other, is_default=False, updated_at=now))
                logger.info(f"Unset default flag on configuration {other.id}")

    # --------------------------------------------------------
    # RULES
    # --------------------------------------------------------

    def _build_rule(self, data: Union[ScoringRuleCreate, Dict[str, Any]], now) -> ScoringRule:
        if not isinstance(data, ScoringRuleCreate):
            data = ScoringRuleCreate.model_validate(data)
        return ScoringRule(
            id=_new_id("rule"),
            min_score=data.min_score,
            max_score=data.max_score,
            risk_level=data.risk_level,
            label=data.label,
            description=data.description,
            color=data.color,
            actions=list(data.actions),
            order_num=data.order_num,
            created_at=now,
            updated_at=now,
        )

    def add_rule(
        self,
        config_id: str,
        data: Union[ScoringRuleCreate, Dict[str, Any]],
    ) -> ScoringRule:
        """Append a rule. Coverage is not re-validated."""
        questionnaire_id = self.get(config_id).questionnaire_id

        with self.store.questionnaire_lock(questionnaire_id):
            configuration = self.get(config_id)
            now = self.clock.now()
            rule = self._build_rule(data, now)
            self.store.save_configuration(
                replace(configuration, rules=configuration.rules + [rule], updated_at=now)
            )

        logger.info(
            f"Added rule {rule.id} [{rule.min_score}-{rule.max_score}] "
            f"{rule.risk_level.value} to configuration {config_id}"
        )
        return rule

    def update_rule(
        self,
        config_id: str,
        rule_id: str,
        data: Union[ScoringRuleUpdate, Dict[str, Any]],
    ) -> ScoringRule:
        """
        Raises:
            ConfigurationNotFoundError
            RuleNotFoundError
        """
        if not isinstance(data, ScoringRuleUpdate):
            data = ScoringRuleUpdate.model_validate(data)
        changes = {
            key: value for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }

        questionnaire_id = self.get(config_id).questionnaire_id

        with self.store.questionnaire_lock(questionnaire_id):
            configuration = self.get(config_id)
            existing = configuration.get_rule(rule_id)
            if existing is None:
                raise RuleNotFoundError(rule_id)

            now = self.clock.now()
            updated_rule = replace(existing, **changes, updated_at=now)
            rules = [updated_rule if rule.id == rule_id else rule for rule in configuration.rules]
            self.store.save_configuration(replace(configuration, rules=rules, updated_at=now))

        logger.info(f"Updated rule {rule_id} of configuration {config_id}: {sorted(changes)}")
        return updated_rule

    def delete_rule(self, config_id: str, rule_id: str) -> bool:
        """
        Remove a rule.

        Returns:
            False when the configuration has no such rule
        """
        questionnaire_id = self.get(config_id).questionnaire_id

        with self.store.questionnaire_lock(questionnaire_id):
            configuration = self.get(config_id)
            if configuration.get_rule(rule_id) is None:
                return False

            rules = [rule for rule in configuration.rules if rule.id != rule_id]
            self.store.save_configuration(
                replace(configuration, rules=rules, updated_at=self.clock.now())
            )

        logger.info(f"Deleted rule {rule_id} from configuration {config_id}")
        return True

    # --------------------------------------------------------
    # CATEGORIES
    # --------------------------------------------------------

    def create_category(
        self,
        data: Union[CreateScoreCategoryData, Dict[str, Any]],
    ) -> ScoreCategory:
        if not isinstance(data, CreateScoreCategoryData):
            data = CreateScoreCategoryData.model_validate(data)

        now = self.clock.now()
        category = ScoreCategory(
            id=_new_id("category"),
            questionnaire_id=data.questionnaire_id,
            name=data.name,
            description=data.description,
            weight=data.weight,
            color=data.color,
            order_num=data.order_num,
            question_ids=list(data.question_ids),
            created_at=now,
            updated_at=now,
        )

        with self.store.questionnaire_lock(category.questionnaire_id):
            self.store.save_category(category)

        logger.info(
            f"Created score category {category.id} '{category.name}' "
            f"for questionnaire {category.questionnaire_id}"
        )
        return category

    def get_categories(self, questionnaire_id: int) -> List[ScoreCategory]:
        """Categories ordered by order_num."""
        return self.store.list_categories(questionnaire_id)

    # --------------------------------------------------------
    # RESULTS
    # --------------------------------------------------------

    def calculate_score(
        self,
        response: Union[Response, Dict[str, Any]],
        answers: Sequence[Union[Answer, Dict[str, Any]]],
        questions: Sequence[Union[Question, Dict[str, Any]]],
        config_id: Optional[str] = None,
        store_result: bool = False,
    ) -> ScoreResult:
        """
        Score a response.

        Uses the questionnaire's default configuration when no
        config_id is given.

        Raises:
            ConfigurationNotFoundError
            DefaultConfigurationNotFoundError
            InactiveConfigurationError
            UnsupportedScoringMethodError
            MissingFormulaError
        """
        if isinstance(response, dict):
            response = Response.from_dict(response)
        answers = [a if isinstance(a, Answer) else Answer.from_dict(a) for a in answers]
        questions = [q if isinstance(q, Question) else Question.from_dict(q) for q in questions]

        if config_id is not None:
            configuration = self.get(config_id)
        else:
            configuration = self.get_default(response.questionnaire_id)
            if configuration is None:
                raise DefaultConfigurationNotFoundError(response.questionnaire_id)

        if not configuration.is_active:
            raise InactiveConfigurationError(configuration.id)

        categories = self.store.list_categories(configuration.questionnaire_id)
        result = self.engine.score(response, answers, questions, configuration, categories)

        logger.debug(
            f"Scored response {response.id} with {configuration.id}: "
            f"{result.normalized_score} ({result.risk_level.value})"
        )

        if store_result:
            self.store_score(result)

        return result

    def store_score(self, result: ScoreResult) -> ScoreResult:
        """Persist a result, replacing any for the same response and config."""
        self.store.save_score(result)
        logger.info(
            f"Stored score for response {result.response_id} "
            f"with configuration {result.config_id}"
        )
        return result

    def get_score(self, response_id: int, config_id: str) -> ScoreResult:
        """
        Raises:
            ScoreNotFoundError
        """
        result = self.store.get_score(response_id, config_id)
        if result is None:
            raise ScoreNotFoundError(response_id, config_id)
        return result

    def get_scores_for_response(self, response_id: int) -> List[ScoreResult]:
        return self.store.list_scores_for_response(response_id)

    def get_analytics(
        self,
        questionnaire_id: Optional[int] = None,
        config_id: Optional[str] = None,
    ) -> ScoringAnalytics:
        """Read model over stored results; scores nothing."""
        results = self.store.list_scores(questionnaire_id=questionnaire_id, config_id=config_id)
        return build_analytics(
            results,
            now=self.clock.now(),
            stability_threshold=self.config.trend_stability_threshold,
        )
