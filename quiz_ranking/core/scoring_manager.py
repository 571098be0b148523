"""Business logic facade shared by the HTTP layer and the entry point."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
import logging
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quiz_ranking.constants.scoring_constants import DEFAULT_LEADERBOARD_SIZE
from quiz_ranking.core.errors import ScoringError, StorageError
from quiz_ranking.core.models import (
    CategoryStats,
    CategorySuccessRate,
    Difficulty,
    GlobalLeaderboardEntry,
    LeaderboardEntry,
    ProgressionStats,
    QuestionInsight,
    Quiz,
    QuizDefinition,
    QuizStats,
    ScoreResult,
    UserStats,
)
from quiz_ranking.core.quiz_importer import load_quiz_from_file
from quiz_ranking.core.score_calculator import DEFAULT_POLICY, ScoringPolicy
from quiz_ranking.core.services.catalog_repository import CatalogRepository
from quiz_ranking.core.services.progression import ProgressionAnalytics
from quiz_ranking.core.services.quiz_statistics import QuizStatistics
from quiz_ranking.core.services.ranking import RankingEngine
from quiz_ranking.core.services.submission_ledger import Clock, SubmissionLedger, utc_now
from quiz_ranking.storage.database import Database

logger = logging.getLogger(__name__)


class ScoringManager:
    """Facade for the scoring services: Catalog, Ledger, Ranking and Analytics."""

    def __init__(
        self,
        database: Database,
        policy: ScoringPolicy = DEFAULT_POLICY,
        clock: Clock = utc_now,
    ) -> None:
        self._database = database
        self._policy = policy

        # Services
        self._catalog = CatalogRepository()
        self._ledger = SubmissionLedger(self._catalog, policy=policy, clock=clock)
        self._ranking = RankingEngine(self._catalog)
        self._progression = ProgressionAnalytics(self._catalog, pass_threshold=policy.pass_threshold)
        self._statistics = QuizStatistics(pass_threshold=policy.pass_threshold)

    @property
    def policy(self) -> ScoringPolicy:
        return self._policy

    @contextmanager
    def _unit_of_work(self, *, write: bool) -> Iterator[Session]:
        scope = self._database.transaction() if write else self._database.session()
        try:
            with scope as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("Storage failure; transaction rolled back")
            raise StorageError("The score store is unavailable, please retry.") from exc

    # --- Submission ---

    def submit_quiz(
        self,
        quiz_id: int,
        user_id: int,
        answers: Sequence[int],
        elapsed_seconds: int,
    ) -> ScoreResult:
        """Grade, persist and rank a quiz submission."""
        try:
            with self._unit_of_work(write=True) as session:
                submission = self._ledger.submit(session, quiz_id, user_id, answers, elapsed_seconds)
                rank = self._ranking.get_user_rank(session, quiz_id, user_id)
        except StorageError:
            raise
        except ScoringError as exc:
            logger.warning(
                "Rejected submission from user %s on quiz %s: %s", user_id, quiz_id, exc.reason
            )
            raise

        return ScoreResult(
            score=submission.record,
            quiz_name=submission.quiz.name,
            is_passed=submission.scored.passed,
            rank=rank,
            attempt_number=submission.attempt_number,
            previous_best_percentage=submission.previous_best_percentage,
            answer_details=submission.scored.answer_details,
        )

    # --- Ranking Delegation ---

    def get_user_rank(self, quiz_id: int, user_id: int) -> int:
        with self._unit_of_work(write=False) as session:
            return self._ranking.get_user_rank(session, quiz_id, user_id)

    def get_leaderboard(self, quiz_id: int, limit: int = DEFAULT_LEADERBOARD_SIZE) -> list[LeaderboardEntry]:
        with self._unit_of_work(write=False) as session:
            return self._ranking.get_leaderboard(session, quiz_id, limit)

    def get_global_leaderboard(
        self,
        limit: int = DEFAULT_LEADERBOARD_SIZE,
        difficulty: Difficulty | None = None,
    ) -> list[GlobalLeaderboardEntry]:
        with self._unit_of_work(write=False) as session:
            return self._ranking.get_global_leaderboard(session, limit, difficulty)

    # --- Progression Delegation ---

    def get_user_stats(self, user_id: int) -> UserStats:
        with self._unit_of_work(write=False) as session:
            return self._progression.get_user_stats(session, user_id)

    def get_user_trend(self, user_id: int) -> ProgressionStats:
        with self._unit_of_work(write=False) as session:
            self._catalog.get_username(session, user_id)
            return self._progression.calculate_trend(session, user_id)

    def get_category_breakdown(self, user_id: int) -> list[CategoryStats]:
        with self._unit_of_work(write=False) as session:
            self._catalog.get_username(session, user_id)
            return self._progression.category_breakdown(session, user_id)

    # --- Quiz Analytics ---

    def get_quiz_stats(self, quiz_id: int) -> QuizStats:
        with self._unit_of_work(write=False) as session:
            return self._statistics.get_quiz_stats(session, quiz_id)

    def get_difficult_questions(self, limit: int = 20) -> list[QuestionInsight]:
        with self._unit_of_work(write=False) as session:
            return self._statistics.get_difficult_questions(session, limit)

    def get_category_success_rates(self) -> list[CategorySuccessRate]:
        with self._unit_of_work(write=False) as session:
            return self._statistics.get_category_success_rates(session)

    def recompute_quiz_aggregates(self, quiz_id: int) -> QuizStats:
        with self._unit_of_work(write=True) as session:
            return self._statistics.recompute_quiz_aggregates(session, quiz_id)

    # --- Catalog Delegation ---

    def get_quiz(self, quiz_id: int) -> Quiz:
        with self._unit_of_work(write=False) as session:
            return self._catalog.get_quiz_with_questions(session, quiz_id)

    def register_user(self, username: str) -> int:
        with self._unit_of_work(write=True) as session:
            return self._catalog.add_user(session, username)

    def add_quiz(self, definition: QuizDefinition) -> int:
        with self._unit_of_work(write=True) as session:
            quiz_id = self._catalog.add_quiz(session, definition)
        logger.info("Added quiz %s '%s' with %s questions", quiz_id, definition.name, len(definition.questions))
        return quiz_id

    def publish_quiz(self, quiz_id: int, published: bool = True) -> None:
        with self._unit_of_work(write=True) as session:
            self._catalog.set_published(session, quiz_id, published)

    def import_quiz_file(self, file_path: Path) -> int:
        """Parse a quiz file and store it in the catalog."""
        imported = load_quiz_from_file(file_path)
        return self.add_quiz(imported.definition)
