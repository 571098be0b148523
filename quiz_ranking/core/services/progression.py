"""Service for longitudinal learner statistics."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quiz_ranking.constants.scoring_constants import (
    PASS_SCORE_THRESHOLD,
    STATS_RECENT_ACTIVITY,
    STATS_TOP_SCORES,
    TREND_SIGNIFICANCE_DELTA,
    TREND_WINDOW_SIZE,
)
from quiz_ranking.core.models import (
    CategoryStats,
    ProgressionStats,
    ScoreSummary,
    TrendLabel,
    UserStats,
)
from quiz_ranking.core.services.catalog_repository import CatalogRepository
from quiz_ranking.storage.tables import QuestionRow, QuizQuestionLink, QuizRow, ScoreRow


def compute_trend(
    percentages_newest_first: Sequence[int],
    window: int = TREND_WINDOW_SIZE,
    delta: float = TREND_SIGNIFICANCE_DELTA,
) -> ProgressionStats:
    """Compare the newest ``window`` scores with the ``window`` before them."""
    if len(percentages_newest_first) < window * 2:
        return ProgressionStats(
            recent_average=None,
            previous_average=None,
            trend=TrendLabel.INSUFFICIENT_DATA,
            improvement=0.0,
        )

    recent = percentages_newest_first[:window]
    previous = percentages_newest_first[window : window * 2]
    recent_average = sum(recent) / window
    previous_average = sum(previous) / window
    improvement = recent_average - previous_average

    if improvement > delta:
        trend = TrendLabel.IMPROVING
    elif improvement < -delta:
        trend = TrendLabel.DECLINING
    else:
        trend = TrendLabel.STABLE
    return ProgressionStats(
        recent_average=recent_average,
        previous_average=previous_average,
        trend=trend,
        improvement=improvement,
    )


class ProgressionAnalytics:
    """Trend, category breakdown and dashboard statistics for one learner."""

    def __init__(self, catalog: CatalogRepository, pass_threshold: int = PASS_SCORE_THRESHOLD) -> None:
        self._catalog = catalog
        self._pass_threshold = pass_threshold

    def calculate_trend(self, session: Session, user_id: int) -> ProgressionStats:
        percentages = session.scalars(
            select(ScoreRow.score_percentage)
            .where(ScoreRow.user_id == user_id)
            .order_by(ScoreRow.completed_at.desc(), ScoreRow.id.desc())
            .limit(TREND_WINDOW_SIZE * 2)
        ).all()
        return compute_trend(percentages)

    def category_breakdown(self, session: Session, user_id: int) -> list[CategoryStats]:
        """Average score per question category, strongest category first.

        A score counts once for every distinct category present in its quiz,
        however many questions of that category the quiz holds.
        """
        score_categories = (
            select(ScoreRow.id, ScoreRow.score_percentage, QuestionRow.category)
            .select_from(ScoreRow)
            .join(QuizQuestionLink, QuizQuestionLink.quiz_id == ScoreRow.quiz_id)
            .join(QuestionRow, QuestionRow.id == QuizQuestionLink.question_id)
            .where(ScoreRow.user_id == user_id)
            .distinct()
            .subquery()
        )
        average = func.avg(score_categories.c.score_percentage)
        rows = session.execute(
            select(
                score_categories.c.category,
                average.label("average"),
                func.count().label("attempts"),
            )
            .group_by(score_categories.c.category)
            .order_by(average.desc(), score_categories.c.category.asc())
        )
        return [
            CategoryStats(
                category=row.category,
                average_score=float(row.average),
                attempts_count=row.attempts,
            )
            for row in rows
        ]

    def get_user_stats(self, session: Session, user_id: int) -> UserStats:
        username = self._catalog.get_username(session, user_id)

        total_attempts = session.scalar(
            select(func.count(ScoreRow.id)).where(ScoreRow.user_id == user_id)
        )
        unique_quizzes = session.scalar(
            select(func.count(func.distinct(ScoreRow.quiz_id))).where(ScoreRow.user_id == user_id)
        )
        best_filter = (ScoreRow.user_id == user_id, ScoreRow.is_best_score.is_(True))
        passed_quizzes = session.scalar(
            select(func.count(func.distinct(ScoreRow.quiz_id))).where(
                *best_filter, ScoreRow.score_percentage >= self._pass_threshold
            )
        )
        average_score = session.scalar(select(func.avg(ScoreRow.score_percentage)).where(*best_filter))

        best_scores = self._summaries(
            session,
            select(ScoreRow, QuizRow.name)
            .join(QuizRow, QuizRow.id == ScoreRow.quiz_id)
            .where(*best_filter)
            .order_by(ScoreRow.score_percentage.desc(), ScoreRow.time_spent_seconds.asc())
            .limit(STATS_TOP_SCORES),
        )
        recent_activity = self._summaries(
            session,
            select(ScoreRow, QuizRow.name)
            .join(QuizRow, QuizRow.id == ScoreRow.quiz_id)
            .where(ScoreRow.user_id == user_id)
            .order_by(ScoreRow.completed_at.desc(), ScoreRow.id.desc())
            .limit(STATS_RECENT_ACTIVITY),
        )

        return UserStats(
            user_id=user_id,
            username=username,
            total_attempts=total_attempts or 0,
            unique_quizzes_attempted=unique_quizzes or 0,
            passed_quizzes=passed_quizzes or 0,
            average_score=float(average_score) if average_score is not None else None,
            best_scores=best_scores,
            recent_activity=recent_activity,
            progression=self.calculate_trend(session, user_id),
            category_stats=self.category_breakdown(session, user_id),
        )

    @staticmethod
    def _summaries(session: Session, query) -> list[ScoreSummary]:
        return [
            ScoreSummary(
                quiz_id=score.quiz_id,
                quiz_name=quiz_name,
                score_percentage=score.score_percentage,
                badge=score.badge,
                completed_at=score.completed_at,
            )
            for score, quiz_name in session.execute(query)
        ]
