"""Service for per-quiz and per-question analytics."""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from quiz_ranking.constants.scoring_constants import (
    DIFFICULT_QUESTION_MIN_ASKED,
    DIFFICULT_QUESTION_SUCCESS_RATE,
    PASS_SCORE_THRESHOLD,
    SCORE_BUCKET_WIDTH,
)
from quiz_ranking.core.errors import QuizNotFoundError
from quiz_ranking.core.models import CategorySuccessRate, QuestionInsight, QuizStats, ScoreBucket
from quiz_ranking.core.services.ranking import clamp_limit
from quiz_ranking.storage.tables import QuestionRow, QuizRow, ScoreRow

logger = logging.getLogger(__name__)


class QuizStatistics:
    """Reads quiz counters and score history, and repairs drifted counters."""

    def __init__(self, pass_threshold: int = PASS_SCORE_THRESHOLD) -> None:
        self._pass_threshold = pass_threshold

    def get_quiz_stats(self, session: Session, quiz_id: int) -> QuizStats:
        quiz = session.get(QuizRow, quiz_id, populate_existing=True)
        if quiz is None:
            raise QuizNotFoundError(quiz_id)

        distinct_players = session.scalar(
            select(func.count(func.distinct(ScoreRow.user_id))).where(ScoreRow.quiz_id == quiz_id)
        )
        passed_players = session.scalar(
            select(func.count(ScoreRow.id)).where(
                ScoreRow.quiz_id == quiz_id,
                ScoreRow.is_best_score.is_(True),
                ScoreRow.score_percentage >= self._pass_threshold,
            )
        )
        recorded_average = session.scalar(
            select(func.avg(ScoreRow.score_percentage)).where(ScoreRow.quiz_id == quiz_id)
        )

        return QuizStats(
            quiz_id=quiz.id,
            quiz_name=quiz.name,
            times_attempted=quiz.times_attempted,
            average_score=quiz.average_score,
            recorded_average_score=float(recorded_average) if recorded_average is not None else None,
            distinct_players=distinct_players or 0,
            passed_players=passed_players or 0,
            score_distribution=self.score_distribution(session, quiz_id),
        )

    def score_distribution(self, session: Session, quiz_id: int) -> list[ScoreBucket]:
        """Histogram of best scores in buckets of ten points (100 gets its own bucket)."""
        percentages = session.scalars(
            select(ScoreRow.score_percentage).where(
                ScoreRow.quiz_id == quiz_id, ScoreRow.is_best_score.is_(True)
            )
        )
        counts: dict[int, int] = {}
        for percentage in percentages:
            lower_bound = (percentage // SCORE_BUCKET_WIDTH) * SCORE_BUCKET_WIDTH
            counts[lower_bound] = counts.get(lower_bound, 0) + 1
        return [ScoreBucket(lower_bound=bound, count=counts[bound]) for bound in sorted(counts)]

    def get_difficult_questions(self, session: Session, limit: int) -> list[QuestionInsight]:
        """Frequently asked questions that most learners get wrong, hardest first."""
        success_rate = _success_rate_expression()
        rows = session.scalars(
            select(QuestionRow)
            .where(
                QuestionRow.times_asked > DIFFICULT_QUESTION_MIN_ASKED,
                success_rate < DIFFICULT_QUESTION_SUCCESS_RATE,
            )
            .order_by(success_rate.asc(), QuestionRow.id.asc())
            .limit(clamp_limit(limit))
        )
        return [
            QuestionInsight(
                question_id=row.id,
                title=row.title,
                category=row.category,
                times_asked=row.times_asked,
                times_answered_correctly=row.times_answered_correctly,
                success_rate=row.times_answered_correctly * 100.0 / row.times_asked,
            )
            for row in rows
        ]

    def get_category_success_rates(self, session: Session) -> list[CategorySuccessRate]:
        """Mean success rate of asked questions per category, best category first."""
        average_rate = func.avg(_success_rate_expression())
        rows = session.execute(
            select(
                QuestionRow.category,
                average_rate.label("success_rate"),
                func.count(QuestionRow.id).label("questions"),
            )
            .where(QuestionRow.times_asked > 0)
            .group_by(QuestionRow.category)
            .order_by(average_rate.desc(), QuestionRow.category.asc())
        )
        return [
            CategorySuccessRate(
                category=row.category,
                success_rate=float(row.success_rate),
                questions_count=row.questions,
            )
            for row in rows
        ]

    def recompute_quiz_aggregates(self, session: Session, quiz_id: int) -> QuizStats:
        """Rebuild ``times_attempted`` and ``average_score`` from the score history."""
        if session.get(QuizRow, quiz_id) is None:
            raise QuizNotFoundError(quiz_id)
        attempts, average = session.execute(
            select(func.count(ScoreRow.id), func.avg(ScoreRow.score_percentage)).where(
                ScoreRow.quiz_id == quiz_id
            )
        ).one()
        session.execute(
            update(QuizRow)
            .where(QuizRow.id == quiz_id)
            .values(times_attempted=attempts, average_score=float(average or 0.0))
            .execution_options(synchronize_session=False)
        )
        logger.info(
            "Recomputed aggregates for quiz %s: %s attempts, average %.2f",
            quiz_id,
            attempts,
            average or 0.0,
        )
        return self.get_quiz_stats(session, quiz_id)


def _success_rate_expression():
    # The division may run before the times_asked filter.
    return QuestionRow.times_answered_correctly * 100.0 / func.nullif(QuestionRow.times_asked, 0)
