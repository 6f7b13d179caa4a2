"""
Questionnaire Scoring Engine - SQL Repository.

============================================================
PURPOSE
============================================================
ScoringStore implementation over SQLAlchemy sessions.

- Saving configurations, categories and results
- Querying by questionnaire, response and configuration
- Per-questionnaire serialization via SELECT ... FOR UPDATE

============================================================
TRANSACTIONS
============================================================
Outside questionnaire_lock every call runs in its own
transaction_scope. Inside questionnaire_lock all calls made
by the locking thread share the lock's transaction, which
commits when the block exits and rolls back on error.

============================================================
"""

import logging
import threading
from contextlib import contextmanager
from typing import Generator, List, Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.orm import Session, sessionmaker

from database.engine import transaction_scope

from .models import (
    ScoreCategoryRecord,
    ScoreResultRecord,
    ScoringConfigurationRecord,
    ScoringRuleRecord,
)
from .store import ScoringStore
from .types import ScoreCategory, ScoreResult, ScoringConfiguration

logger = logging.getLogger(__name__)


class SqlAlchemyScoringStore(ScoringStore):
    """
    Repository for scoring persistence operations.

    ============================================================
    METHODS
    ============================================================
    - save_configuration / delete_configuration
    - list_configurations: newest first
    - save_category / list_categories
    - save_score / get_score / list_scores

    ============================================================
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Initialize repository with a session factory.

        Args:
            session_factory: SQLAlchemy sessionmaker
        """
        self._session_factory = session_factory
        self._local = threading.local()

    # --------------------------------------------------------
    # SESSION HANDLING
    # --------------------------------------------------------

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        current = getattr(self._local, "session", None)
        if current is not None:
            yield current
            return

        with transaction_scope(self._session_factory) as session:
            yield session

    @contextmanager
    def questionnaire_lock(self, questionnaire_id: int) -> Generator[None, None, None]:
        if getattr(self._local, "session", None) is not None:
            # Re-entrant: the outer lock already holds the rows
            yield
            return

        with transaction_scope(self._session_factory) as session:
            session.execute(
                select(ScoringConfigurationRecord.pk)
                .where(ScoringConfigurationRecord.questionnaire_id == questionnaire_id)
                .with_for_update()
            ).all()
            self._local.session = session
            try:
                yield
                session.flush()
            finally:
                self._local.session = None

    # --------------------------------------------------------
    # CONFIGURATIONS
    # --------------------------------------------------------

    def _find_configuration(
        self,
        session: Session,
        config_id: str,
    ) -> Optional[ScoringConfigurationRecord]:
        return session.execute(
            select(ScoringConfigurationRecord).where(ScoringConfigurationRecord.id == config_id)
        ).scalar_one_or_none()

    def get_configuration(self, config_id: str) -> Optional[ScoringConfiguration]:
        with self._session() as session:
            record = self._find_configuration(session, config_id)
            return record.to_domain() if record else None

    def list_configurations(self, questionnaire_id: int) -> List[ScoringConfiguration]:
        with self._session() as session:
            records = session.execute(
                select(ScoringConfigurationRecord)
                .where(ScoringConfigurationRecord.questionnaire_id == questionnaire_id)
                .order_by(
                    desc(ScoringConfigurationRecord.created_at),
                    desc(ScoringConfigurationRecord.pk),
                )
            ).scalars().all()
            return [record.to_domain() for record in records]

    def save_configuration(self, configuration: ScoringConfiguration) -> ScoringConfiguration:
        with self._session() as session:
            record = self._find_configuration(session, configuration.id)
            if record is None:
                record = ScoringConfigurationRecord()
                session.add(record)

            record.apply(configuration)
            # Rules are replaced as a whole with the snapshot
            record.rules = [ScoringRuleRecord.from_domain(rule) for rule in configuration.rules]
            session.flush()

            logger.debug(
                f"Persisted configuration {configuration.id} with {len(configuration.rules)} rules"
            )
            return configuration

    def delete_configuration(self, config_id: str) -> bool:
        with self._session() as session:
            record = self._find_configuration(session, config_id)
            if record is None:
                return False
            session.delete(record)
            session.flush()
            return True

    # --------------------------------------------------------
    # CATEGORIES
    # --------------------------------------------------------

    def save_category(self, category: ScoreCategory) -> ScoreCategory:
        with self._session() as session:
            session.execute(delete(ScoreCategoryRecord).where(ScoreCategoryRecord.id == category.id))
            session.add(ScoreCategoryRecord.from_domain(category))
            session.flush()
            return category

    def list_categories(self, questionnaire_id: int) -> List[ScoreCategory]:
        with self._session() as session:
            records = session.execute(
                select(ScoreCategoryRecord)
                .where(ScoreCategoryRecord.questionnaire_id == questionnaire_id)
                .order_by(ScoreCategoryRecord.order_num, ScoreCategoryRecord.pk)
            ).scalars().all()
            return [record.to_domain() for record in records]

    # --------------------------------------------------------
    # RESULTS
    # --------------------------------------------------------

    def save_score(self, result: ScoreResult) -> ScoreResult:
        with self._session() as session:
            record = session.execute(
                select(ScoreResultRecord).where(
                    ScoreResultRecord.response_id == result.response_id,
                    ScoreResultRecord.config_id == result.config_id,
                )
            ).scalar_one_or_none()
            if record is None:
                record = ScoreResultRecord()
                session.add(record)

            record.apply(result)
            session.flush()
            return result

    def get_score(self, response_id: int, config_id: str) -> Optional[ScoreResult]:
        with self._session() as session:
            record = session.execute(
                select(ScoreResultRecord).where(
                    ScoreResultRecord.response_id == response_id,
                    ScoreResultRecord.config_id == config_id,
                )
            ).scalar_one_or_none()
            return record.to_domain() if record else None

    def list_scores_for_response(self, response_id: int) -> List[ScoreResult]:
        with self._session() as session:
            records = session.execute(
                select(ScoreResultRecord)
                .where(ScoreResultRecord.response_id == response_id)
                .order_by(ScoreResultRecord.calculated_at, ScoreResultRecord.pk)
            ).scalars().all()
            return [record.to_domain() for record in records]

    def list_scores(
        self,
        questionnaire_id: Optional[int] = None,
        config_id: Optional[str] = None,
    ) -> List[ScoreResult]:
        query = select(ScoreResultRecord)
        if questionnaire_id is not None:
            query = query.where(ScoreResultRecord.questionnaire_id == questionnaire_id)
        if config_id is not None:
            query = query.where(ScoreResultRecord.config_id == config_id)

        with self._session() as session:
            records = session.execute(
                query.order_by(ScoreResultRecord.calculated_at, ScoreResultRecord.pk)
            ).scalars().all()
            return [record.to_domain() for record in records]
