"""
Questionnaire Scoring Engine - Store Interface.

============================================================
PURPOSE
============================================================
Persistence boundary of the Configuration Lifecycle Manager.

The service talks only to ScoringStore. Two implementations
exist:
- InMemoryScoringStore (this module)
- SqlAlchemyScoringStore (repository.py)

============================================================
CONTRACT
============================================================
- Stored values are immutable snapshots. Saving a
  configuration replaces the previous snapshot as a whole.
- questionnaire_lock(questionnaire_id) serializes mutating
  sequences for one questionnaire. It is re-entrant.
- list_configurations returns newest first (created_at
  descending, insertion order breaks ties).
- At most one result is kept per (response_id, config_id);
  saving again replaces it.

============================================================
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Generator, List, Optional, Tuple

from .types import ScoreCategory, ScoreResult, ScoringConfiguration


class ScoringStore(ABC):
    """Abstract store for configurations, categories and results."""

    # --------------------------------------------------------
    # LOCKING
    # --------------------------------------------------------

    @abstractmethod
    @contextmanager
    def questionnaire_lock(self, questionnaire_id: int) -> Generator[None, None, None]:
        """Serialize mutations for one questionnaire."""
        pass

    # --------------------------------------------------------
    # CONFIGURATIONS
    # --------------------------------------------------------

    @abstractmethod
    def get_configuration(self, config_id: str) -> Optional[ScoringConfiguration]:
        pass

    @abstractmethod
    def list_configurations(self, questionnaire_id: int) -> List[ScoringConfiguration]:
        pass

    @abstractmethod
    def save_configuration(self, configuration: ScoringConfiguration) -> ScoringConfiguration:
        """Insert or replace a configuration snapshot."""
        pass

    @abstractmethod
    def delete_configuration(self, config_id: str) -> bool:
        pass

    # --------------------------------------------------------
    # CATEGORIES
    # --------------------------------------------------------

    @abstractmethod
    def save_category(self, category: ScoreCategory) -> ScoreCategory:
        pass

    @abstractmethod
    def list_categories(self, questionnaire_id: int) -> List[ScoreCategory]:
        """Categories of a questionnaire ordered by order_num."""
        pass

    # --------------------------------------------------------
    # RESULTS
    # --------------------------------------------------------

    @abstractmethod
    def save_score(self, result: ScoreResult) -> ScoreResult:
        pass

    @abstractmethod
    def get_score(self, response_id: int, config_id: str) -> Optional[ScoreResult]:
        pass

    @abstractmethod
    def list_scores_for_response(self, response_id: int) -> List[ScoreResult]:
        pass

    @abstractmethod
    def list_scores(
        self,
        questionnaire_id: Optional[int] = None,
        config_id: Optional[str] = None,
    ) -> List[ScoreResult]:
        """Stored results, optionally filtered, oldest first."""
        pass


class InMemoryScoringStore(ScoringStore):
    """
    Process-local store backed by dictionaries.

    One RLock per questionnaire guards mutating sequences; a
    store-wide lock guards the dictionaries themselves.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._questionnaire_locks: Dict[int, threading.RLock] = {}

        self._configurations: Dict[str, ScoringConfiguration] = {}
        self._config_sequence: Dict[str, int] = {}
        self._categories: Dict[str, ScoreCategory] = {}
        self._scores: Dict[Tuple[int, str], ScoreResult] = {}
        self._sequence = 0

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    @contextmanager
    def questionnaire_lock(self, questionnaire_id: int) -> Generator[None, None, None]:
        with self._lock:
            lock = self._questionnaire_locks.setdefault(questionnaire_id, threading.RLock())
        with lock:
            yield

    def get_configuration(self, config_id: str) -> Optional[ScoringConfiguration]:
        with self._lock:
            return self._configurations.get(config_id)

    def list_configurations(self, questionnaire_id: int) -> List[ScoringConfiguration]:
        with self._lock:
            matching = [
                config for config in self._configurations.values()
                if config.questionnaire_id == questionnaire_id
            ]
            return sorted(
                matching,
                key=lambda config: (
                    config.created_at is not None,
                    config.created_at,
                    self._config_sequence[config.id],
                ),
                reverse=True,
            )

    def save_configuration(self, configuration: ScoringConfiguration) -> ScoringConfiguration:
        with self._lock:
            if configuration.id not in self._config_sequence:
                self._config_sequence[configuration.id] = self._next_sequence()
            self._configurations[configuration.id] = configuration
            return configuration

    def delete_configuration(self, config_id: str) -> bool:
        with self._lock:
            if self._configurations.pop(config_id, None) is None:
                return False
            self._config_sequence.pop(config_id, None)
            return True

    def save_category(self, category: ScoreCategory) -> ScoreCategory:
        with self._lock:
            self._categories[category.id] = category
            return category

    def list_categories(self, questionnaire_id: int) -> List[ScoreCategory]:
        with self._lock:
            return sorted(
                (c for c in self._categories.values() if c.questionnaire_id == questionnaire_id),
                key=lambda c: c.order_num,
            )

    def save_score(self, result: ScoreResult) -> ScoreResult:
        with self._lock:
            self._scores[(result.response_id, result.config_id)] = result
            return result

    def get_score(self, response_id: int, config_id: str) -> Optional[ScoreResult]:
        with self._lock:
            return self._scores.get((response_id, config_id))

    def list_scores_for_response(self, response_id: int) -> List[ScoreResult]:
        with self._lock:
            return sorted(
                (r for r in self._scores.values() if r.response_id == response_id),
                key=lambda r: r.calculated_at,
            )

    def list_scores(
        self,
        questionnaire_id: Optional[int] = None,
        config_id: Optional[str] = None,
    ) -> List[ScoreResult]:
        with self._lock:
            results = list(self._scores.values())

        if questionnaire_id is not None:
            results = [r for r in results if r.questionnaire_id == questionnaire_id]
        if config_id is not None:
            results = [r for r in results if r.config_id == config_id]

        return sorted(results, key=lambda r: r.calculated_at)
