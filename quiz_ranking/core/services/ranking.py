"""Service for ranking best scores on quiz and global leaderboards.

Only rows flagged ``is_best_score`` take part: a learner who attempted a quiz
five times appears once, with their best attempt. Ordering is higher
percentage first, then lower time spent; completion time and row id only
make the order deterministic among exact ties.
"""

from __future__ import annotations

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from quiz_ranking.constants.scoring_constants import DEFAULT_LEADERBOARD_SIZE, MAX_LEADERBOARD_SIZE
from quiz_ranking.core.errors import InvalidLimitError
from quiz_ranking.core.models import Difficulty, GlobalLeaderboardEntry, LeaderboardEntry
from quiz_ranking.core.services.catalog_repository import CatalogRepository
from quiz_ranking.storage.tables import QuizRow, ScoreRow, UserRow


def clamp_limit(limit: int) -> int:
    """Bound a requested leaderboard size to ``1..MAX_LEADERBOARD_SIZE``."""
    if limit < 1:
        raise InvalidLimitError(limit)
    return min(limit, MAX_LEADERBOARD_SIZE)


class RankingEngine:
    """Computes rank positions and ordered leaderboards."""

    def __init__(self, catalog: CatalogRepository) -> None:
        self._catalog = catalog

    def rank_for_score(
        self,
        session: Session,
        quiz_id: int,
        score_percentage: int,
        time_spent_seconds: int,
        exclude_user_id: int | None = None,
    ) -> int:
        """Return ``1 +`` the number of users whose best score beats the given one."""
        beats = or_(
            ScoreRow.score_percentage > score_percentage,
            and_(
                ScoreRow.score_percentage == score_percentage,
                ScoreRow.time_spent_seconds < time_spent_seconds,
            ),
        )
        query = select(func.count(func.distinct(ScoreRow.user_id))).where(
            ScoreRow.quiz_id == quiz_id,
            ScoreRow.is_best_score.is_(True),
            beats,
        )
        if exclude_user_id is not None:
            query = query.where(ScoreRow.user_id != exclude_user_id)
        return (session.scalar(query) or 0) + 1

    def get_user_rank(self, session: Session, quiz_id: int, user_id: int) -> int:
        """Rank of the user's best attempt; 1 when the user has none yet."""
        self._catalog.ensure_quiz_exists(session, quiz_id)
        best = session.execute(
            select(ScoreRow.score_percentage, ScoreRow.time_spent_seconds).where(
                ScoreRow.quiz_id == quiz_id,
                ScoreRow.user_id == user_id,
                ScoreRow.is_best_score.is_(True),
            )
        ).one_or_none()
        if best is None:
            return 1
        return self.rank_for_score(
            session, quiz_id, best.score_percentage, best.time_spent_seconds, exclude_user_id=user_id
        )

    def get_leaderboard(
        self,
        session: Session,
        quiz_id: int,
        limit: int = DEFAULT_LEADERBOARD_SIZE,
    ) -> list[LeaderboardEntry]:
        """Return the top best scores for a quiz."""
        self._catalog.ensure_quiz_exists(session, quiz_id)
        rows = session.execute(
            select(ScoreRow, UserRow.username)
            .join(UserRow, UserRow.id == ScoreRow.user_id)
            .where(ScoreRow.quiz_id == quiz_id, ScoreRow.is_best_score.is_(True))
            .order_by(
                ScoreRow.score_percentage.desc(),
                ScoreRow.time_spent_seconds.asc(),
                ScoreRow.completed_at.asc(),
                ScoreRow.id.asc(),
            )
            .limit(clamp_limit(limit))
        ).all()

        return [
            LeaderboardEntry(
                rank=position,
                score_id=score.id,
                user_id=score.user_id,
                username=username,
                score_percentage=score.score_percentage,
                time_spent_seconds=score.time_spent_seconds,
                badge=score.badge,
                completed_at=score.completed_at,
            )
            for position, (score, username) in enumerate(rows, start=1)
        ]

    def get_global_leaderboard(
        self,
        session: Session,
        limit: int = DEFAULT_LEADERBOARD_SIZE,
        difficulty: Difficulty | None = None,
    ) -> list[GlobalLeaderboardEntry]:
        """Rank users by the mean of their best scores across quizzes."""
        average = func.avg(ScoreRow.score_percentage)
        completed = func.count(ScoreRow.id)
        query = (
            select(ScoreRow.user_id, UserRow.username, average.label("average"), completed.label("completed"))
            .join(UserRow, UserRow.id == ScoreRow.user_id)
            .where(ScoreRow.is_best_score.is_(True))
            .group_by(ScoreRow.user_id, UserRow.username)
            .order_by(average.desc(), completed.desc(), ScoreRow.user_id.asc())
            .limit(clamp_limit(limit))
        )
        if difficulty is not None:
            query = query.join(QuizRow, QuizRow.id == ScoreRow.quiz_id).where(
                QuizRow.difficulty == difficulty
            )

        return [
            GlobalLeaderboardEntry(
                rank=position,
                user_id=row.user_id,
                username=row.username,
                average_score=float(row.average),
                quizzes_completed=row.completed,
            )
            for position, row in enumerate(session.execute(query), start=1)
        ]
