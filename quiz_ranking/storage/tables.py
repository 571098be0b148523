"""SQLAlchemy tables backing the catalog, the users and the score ledger."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from quiz_ranking.core.models import Badge, Difficulty


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class QuestionRow(Base):
    __tablename__ = "questions"
    __table_args__ = (
        CheckConstraint("correct_answer >= 0 AND correct_answer <= 3", name="ck_questions_answer_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    correct_answer: Mapped[int] = mapped_column(Integer, nullable=False)
    explanation: Mapped[str] = mapped_column(Text, default="")
    difficulty: Mapped[Difficulty] = mapped_column(
        Enum(Difficulty, native_enum=False, length=20), nullable=False
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    times_asked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    times_answered_correctly: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class QuizQuestionLink(Base):
    """Ordered membership of a question in a quiz."""

    __tablename__ = "quiz_questions"

    quiz_id: Mapped[int] = mapped_column(
        ForeignKey("quizzes.id", ondelete="CASCADE"), primary_key=True
    )
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    question: Mapped[QuestionRow] = relationship(lazy="joined")


class QuizRow(Base):
    __tablename__ = "quizzes"
    __table_args__ = (
        CheckConstraint("duration_minutes >= 1", name="ck_quizzes_duration"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    difficulty: Mapped[Difficulty] = mapped_column(
        Enum(Difficulty, native_enum=False, length=20), nullable=False
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    times_attempted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    question_links: Mapped[list[QuizQuestionLink]] = relationship(
        order_by=QuizQuestionLink.position,
        cascade="all, delete-orphan",
    )


class ScoreRow(Base):
    __tablename__ = "scores"
    __table_args__ = (
        CheckConstraint(
            "score_percentage >= 0 AND score_percentage <= 100", name="ck_scores_percentage"
        ),
        CheckConstraint("total_questions >= 1", name="ck_scores_total"),
        CheckConstraint("time_spent_seconds >= 1", name="ck_scores_time"),
        Index("idx_scores_completed_at", "completed_at"),
        Index("idx_scores_percentage", "score_percentage"),
        Index("idx_scores_leaderboard", "quiz_id", "is_best_score", "score_percentage"),
        # At most one best score per (user, quiz), enforced by the store itself.
        Index(
            "uq_scores_best_per_user_quiz",
            "user_id",
            "quiz_id",
            unique=True,
            sqlite_where=text("is_best_score"),
            postgresql_where=text("is_best_score"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quiz_id: Mapped[int] = mapped_column(
        ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    score_percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    badge: Mapped[Badge | None] = mapped_column(
        Enum(Badge, native_enum=False, length=10), nullable=True
    )
    is_best_score: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    quiz: Mapped[QuizRow] = relationship()
