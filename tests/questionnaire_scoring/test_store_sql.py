"""
Tests for the SQLAlchemy-backed scoring store.

Runs the lifecycle service against an in-memory SQLite
database so snapshots are read back through the ORM.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select, text

from core.clock import TickingClock
from database.engine import (
    DatabasePersistenceError,
    create_all_tables,
    create_database_engine,
    get_session_factory,
    transaction_scope,
    verify_database_connection,
)
from questionnaire_scoring.models import ScoringConfigurationRecord, ScoringRuleRecord
from questionnaire_scoring.repository import SqlAlchemyScoringStore
from questionnaire_scoring.service import ScoringConfigurationService
from questionnaire_scoring.types import (
    Answer,
    ConfigurationNotFoundError,
    InvalidDefaultConfigurationError,
    Question,
    Response,
    RiskLevel,
)


BASE_TIME = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sql_engine():
    engine = create_database_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sql_engine):
    return get_session_factory(sql_engine)


@pytest.fixture
def sql_service(session_factory):
    return ScoringConfigurationService(
        SqlAlchemyScoringStore(session_factory),
        clock=TickingClock(BASE_TIME, step_seconds=1),
    )


def _count(session_factory, model):
    with transaction_scope(session_factory) as session:
        return session.execute(select(func.count()).select_from(model)).scalar_one()


# =============================================================
# TEST: Database Helpers
# =============================================================

class TestDatabaseHelpers:

    def test_verify_connection(self, sql_engine):
        assert verify_database_connection(sql_engine) is True

    def test_sql_failures_are_wrapped(self, session_factory):
        with pytest.raises(DatabasePersistenceError):
            with transaction_scope(session_factory) as session:
                session.execute(text("SELECT * FROM no_such_table"))

    def test_other_failures_propagate_and_roll_back(self, session_factory, sql_service, gad7_data):
        config = sql_service.create(gad7_data)

        with pytest.raises(RuntimeError):
            with transaction_scope(session_factory) as session:
                session.execute(
                    ScoringConfigurationRecord.__table__.update().values(name="Changed")
                )
                raise RuntimeError("abort")

        assert sql_service.get(config.id).name == "GAD-7 Standard Scoring"


# =============================================================
# TEST: Configuration Persistence
# =============================================================

class TestConfigurationPersistence:

    def test_round_trip(self, sql_service, gad7_data):
        created = sql_service.create({**gad7_data, "weights": {"question_1": 2}}, created_by="clinician-1")
        loaded = sql_service.get(created.id)

        assert loaded.name == created.name
        assert loaded.weights == {"question_1": 2}
        assert loaded.created_by == "clinician-1"
        assert loaded.created_at == created.created_at
        assert [rule.id for rule in loaded.rules] == [rule.id for rule in created.rules]
        assert loaded.rules[3].risk_level == RiskLevel.CRITICAL
        assert sql_service.validate(loaded) == []

    def test_newest_first(self, sql_service, gad7_data):
        first = sql_service.create(gad7_data)
        second = sql_service.create(gad7_data)
        assert [c.id for c in sql_service.get_by_questionnaire(1)] == [second.id, first.id]

    def test_single_default(self, sql_service, gad7_data):
        a = sql_service.create({**gad7_data, "is_default": True})
        b = sql_service.create(gad7_data)
        sql_service.set_default(b.id)

        defaults = [c.id for c in sql_service.get_by_questionnaire(1) if c.is_default]
        assert defaults == [b.id]
        assert sql_service.get(a.id).is_default is False

    def test_rejected_default_rolls_back(self, sql_service, gad7_data):
        default = sql_service.create({**gad7_data, "is_default": True})
        broken = sql_service.create({**gad7_data, "rules": []})

        with pytest.raises(InvalidDefaultConfigurationError):
            sql_service.set_default(broken.id)

        assert sql_service.get_default(1).id == default.id
        assert sql_service.get(broken.id).is_default is False

    def test_update_replaces_rule_rows(self, sql_service, session_factory, gad7_data):
        config = sql_service.create(gad7_data)
        sql_service.update({
            "id": config.id,
            "rules": [{"min_score": 0, "max_score": 21, "risk_level": "low", "label": "Any"}],
        })

        assert [rule.label for rule in sql_service.get(config.id).rules] == ["Any"]
        assert _count(session_factory, ScoringRuleRecord) == 1

    def test_delete_cascades_rules(self, sql_service, session_factory, gad7_data):
        config = sql_service.create(gad7_data)
        sql_service.delete(config.id)

        with pytest.raises(ConfigurationNotFoundError):
            sql_service.get(config.id)
        assert _count(session_factory, ScoringRuleRecord) == 0

    def test_rule_operations(self, sql_service, gad7_data):
        config = sql_service.create(gad7_data)
        rule = sql_service.add_rule(config.id, {
            "min_score": 22, "max_score": 30, "risk_level": "critical", "label": "Extreme",
        })
        sql_service.update_rule(config.id, rule.id, {"label": "Very Extreme"})

        assert sql_service.get(config.id).get_rule(rule.id).label == "Very Extreme"
        assert sql_service.delete_rule(config.id, rule.id) is True
        assert sql_service.delete_rule(config.id, rule.id) is False
        assert len(sql_service.get(config.id).rules) == 4


# =============================================================
# TEST: Categories and Results
# =============================================================

class TestResultPersistence:

    def test_categories(self, sql_service):
        sql_service.create_category({"questionnaire_id": 1, "name": "B", "order_num": 2, "question_ids": [2]})
        sql_service.create_category({"questionnaire_id": 1, "name": "A", "order_num": 1, "question_ids": [1]})

        categories = sql_service.get_categories(1)
        assert [c.name for c in categories] == ["A", "B"]
        assert categories[0].question_ids == [1]

    def test_store_and_replace_score(self, sql_service, gad7_data):
        config = sql_service.create({**gad7_data, "is_default": True})
        questions = [Question(id=i, type="likert", options=["0", "1", "2", "3"]) for i in (1, 2)]
        response = Response(id=42, questionnaire_id=1)

        sql_service.calculate_score(
            response, [Answer(question_id=1, numeric_value=1)], questions, store_result=True
        )
        stored = sql_service.calculate_score(
            response,
            [Answer(question_id=1, numeric_value=3), Answer(question_id=2, numeric_value=3)],
            questions,
            store_result=True,
        )

        assert sql_service.get_score(42, config.id) == stored
        assert len(sql_service.get_scores_for_response(42)) == 1

    def test_analytics_over_stored_results(self, sql_service, gad7_data):
        config = sql_service.create({**gad7_data, "is_default": True})
        questions = [Question(id=1, type="rating")]
        for response_id, value in enumerate([2, 12, 18], start=1):
            sql_service.calculate_score(
                Response(id=response_id, questionnaire_id=1),
                [Answer(question_id=1, numeric_value=value)],
                questions,
                store_result=True,
            )

        analytics = sql_service.get_analytics(config_id=config.id)
        assert analytics.total_scores == 3
        assert analytics.high_risk_count == 2
        assert analytics.risk_distribution["low"] == 1
