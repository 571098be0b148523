"""Service that records quiz submissions and maintains derived aggregates."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from quiz_ranking.core.errors import (
    EmptyQuizError,
    QuizNotFoundError,
    QuizNotPublishedError,
    UserNotFoundError,
)
from quiz_ranking.core.models import Quiz, ScoredResult, ScoreRecord
from quiz_ranking.core.score_calculator import (
    DEFAULT_POLICY,
    ScoringPolicy,
    calculate_score,
    format_time_spent,
)
from quiz_ranking.core.services.catalog_repository import CatalogRepository
from quiz_ranking.storage.tables import QuestionRow, QuizRow, ScoreRow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Submission:
    """What the ledger hands back once a score row has been written."""

    quiz: Quiz
    scored: ScoredResult
    record: ScoreRecord
    previous_best_percentage: int | None
    attempt_number: int


class SubmissionLedger:
    """Persists one score per submission and keeps counters consistent.

    All methods take the caller's session; the caller owns the transaction so
    the score insert, the best-score transition and the counter updates
    commit or roll back together.
    """

    def __init__(
        self,
        catalog: CatalogRepository,
        policy: ScoringPolicy = DEFAULT_POLICY,
        clock: Clock = utc_now,
    ) -> None:
        self._catalog = catalog
        self._policy = policy
        self._clock = clock

    def submit(
        self,
        session: Session,
        quiz_id: int,
        user_id: int,
        answers: Sequence[int],
        elapsed_seconds: int,
    ) -> Submission:
        """Grade and record a submission."""
        self._lock_quiz(session, quiz_id)
        quiz = self._catalog.get_quiz_with_questions(session, quiz_id)
        if not quiz.published:
            raise QuizNotPublishedError(quiz_id)
        if not quiz.questions:
            raise EmptyQuizError(quiz_id)
        if not self._catalog.user_exists(session, user_id):
            raise UserNotFoundError(user_id)

        scored = calculate_score(
            answers, quiz.questions, elapsed_seconds, quiz.duration_minutes, self._policy
        )

        # Nothing has been written yet; from here on every statement shares the
        # caller's transaction.
        previous_best = self._current_best(session, quiz_id, user_id)
        is_best = previous_best is None or scored.score_percentage > previous_best.score_percentage
        if is_best and previous_best is not None:
            previous_best.is_best_score = False
            session.flush()

        row = ScoreRow(
            user_id=user_id,
            quiz_id=quiz_id,
            score_percentage=scored.score_percentage,
            correct_answers=scored.correct_answers,
            total_questions=scored.total_questions,
            time_spent_seconds=scored.time_spent_seconds,
            completed_at=self._clock(),
            badge=scored.badge,
            is_best_score=is_best,
        )
        session.add(row)
        session.flush()

        self._record_attempt(session, quiz_id, scored.score_percentage)
        self._record_question_usage(session, scored)

        attempt_number = session.scalar(
            select(func.count(ScoreRow.id)).where(
                ScoreRow.quiz_id == quiz_id, ScoreRow.user_id == user_id
            )
        )
        logger.info(
            "Recorded score %s for user %s on quiz %s: %s%% in %s, badge=%s, best=%s",
            row.id,
            user_id,
            quiz_id,
            scored.score_percentage,
            format_time_spent(scored.time_spent_seconds),
            scored.badge.value if scored.badge else "none",
            is_best,
        )
        return Submission(
            quiz=quiz,
            scored=scored,
            record=to_score_record(row),
            previous_best_percentage=previous_best.score_percentage if previous_best else None,
            attempt_number=attempt_number or 1,
        )

    @staticmethod
    def _lock_quiz(session: Session, quiz_id: int) -> None:
        # Serializes submissions per quiz; a no-op clause on SQLite, which
        # already holds the database write lock.
        locked = session.scalar(
            select(QuizRow.id).where(QuizRow.id == quiz_id).with_for_update()
        )
        if locked is None:
            raise QuizNotFoundError(quiz_id)

    @staticmethod
    def _current_best(session: Session, quiz_id: int, user_id: int) -> ScoreRow | None:
        return session.scalars(
            select(ScoreRow)
            .where(
                ScoreRow.quiz_id == quiz_id,
                ScoreRow.user_id == user_id,
                ScoreRow.is_best_score.is_(True),
            )
            .with_for_update()
        ).one_or_none()

    @staticmethod
    def _record_attempt(session: Session, quiz_id: int, score_percentage: int) -> None:
        """Increment the attempt counter and fold the score into the running mean.

        Both columns are assigned in one UPDATE, so the right-hand sides read
        the pre-update values.
        """
        session.execute(
            update(QuizRow)
            .where(QuizRow.id == quiz_id)
            .values(
                average_score=(
                    QuizRow.average_score * QuizRow.times_attempted + score_percentage
                )
                / (QuizRow.times_attempted + 1),
                times_attempted=QuizRow.times_attempted + 1,
            )
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def _record_question_usage(session: Session, scored: ScoredResult) -> None:
        asked_ids = [detail.question_id for detail in scored.answer_details]
        correct_ids = [detail.question_id for detail in scored.answer_details if detail.is_correct]
        session.execute(
            update(QuestionRow)
            .where(QuestionRow.id.in_(asked_ids))
            .values(times_asked=QuestionRow.times_asked + 1)
            .execution_options(synchronize_session=False)
        )
        if correct_ids:
            session.execute(
                update(QuestionRow)
                .where(QuestionRow.id.in_(correct_ids))
                .values(times_answered_correctly=QuestionRow.times_answered_correctly + 1)
                .execution_options(synchronize_session=False)
            )


def to_score_record(row: ScoreRow) -> ScoreRecord:
    return ScoreRecord(
        id=row.id,
        user_id=row.user_id,
        quiz_id=row.quiz_id,
        score_percentage=row.score_percentage,
        correct_answers=row.correct_answers,
        total_questions=row.total_questions,
        time_spent_seconds=row.time_spent_seconds,
        completed_at=row.completed_at,
        badge=row.badge,
        is_best_score=row.is_best_score,
    )
