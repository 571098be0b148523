"""Catalog and user collaborators backed by the relational store.

The scoring core only reads quizzes, questions and usernames through this
repository. Authoring helpers (``add_quiz``, ``add_user``) exist so demos and
tests can seed a catalog; they validate input the same way for every caller.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from quiz_ranking.constants.scoring_constants import ANSWER_OPTION_COUNT
from quiz_ranking.core.errors import (
    InvalidQuizDefinitionError,
    QuizNotFoundError,
    StateConflictError,
    UserNotFoundError,
    ValidationError,
)
from quiz_ranking.core.models import (
    Difficulty,
    QuestionDefinition,
    Quiz,
    QuizDefinition,
    QuizQuestion,
)
from quiz_ranking.storage.tables import QuestionRow, QuizQuestionLink, QuizRow, UserRow


class CatalogRepository:
    """Reads and seeds quizzes, questions and users."""

    # --- Read side consumed by the scoring core ---

    def get_quiz_with_questions(self, session: Session, quiz_id: int) -> Quiz:
        """Return the quiz and its questions in quiz order."""
        row = session.get(
            QuizRow,
            quiz_id,
            options=[selectinload(QuizRow.question_links)],
            populate_existing=True,
        )
        if row is None:
            raise QuizNotFoundError(quiz_id)
        return _to_quiz(row)

    def quiz_exists(self, session: Session, quiz_id: int) -> bool:
        return session.scalar(select(QuizRow.id).where(QuizRow.id == quiz_id)) is not None

    def ensure_quiz_exists(self, session: Session, quiz_id: int) -> None:
        if not self.quiz_exists(session, quiz_id):
            raise QuizNotFoundError(quiz_id)

    def user_exists(self, session: Session, user_id: int) -> bool:
        return session.scalar(select(UserRow.id).where(UserRow.id == user_id)) is not None

    def get_username(self, session: Session, user_id: int) -> str:
        username = session.scalar(select(UserRow.username).where(UserRow.id == user_id))
        if username is None:
            raise UserNotFoundError(user_id)
        return username

    # --- Seeding ---

    def add_user(self, session: Session, username: str) -> int:
        cleaned = username.strip()
        if not cleaned:
            raise ValidationError("Username must not be empty.")
        taken = session.scalar(select(UserRow.id).where(UserRow.username == cleaned))
        if taken is not None:
            raise StateConflictError(f"Username '{cleaned}' is already taken.")
        row = UserRow(username=cleaned)
        session.add(row)
        session.flush()
        return row.id

    def add_quiz(self, session: Session, definition: QuizDefinition) -> int:
        """Validate and store a quiz with its questions, returning the quiz id."""
        name = definition.name.strip()
        if not name:
            raise InvalidQuizDefinitionError("Quiz name must not be empty.")
        if definition.duration_minutes < 1:
            raise InvalidQuizDefinitionError("Quiz duration must be at least one minute.")
        questions = [self._prepare_question(question) for question in definition.questions]
        if definition.published and not questions:
            raise InvalidQuizDefinitionError("A published quiz needs at least one question.")

        difficulty = definition.difficulty or _derive_difficulty(questions)
        quiz = QuizRow(
            name=name,
            description=definition.description.strip(),
            difficulty=difficulty,
            duration_minutes=definition.duration_minutes,
            published=definition.published,
        )
        quiz.question_links = [
            QuizQuestionLink(position=position, question=question)
            for position, question in enumerate(questions)
        ]
        session.add(quiz)
        session.flush()
        return quiz.id

    def set_published(self, session: Session, quiz_id: int, published: bool) -> None:
        quiz = session.get(QuizRow, quiz_id)
        if quiz is None:
            raise QuizNotFoundError(quiz_id)
        if published and not quiz.question_links:
            raise InvalidQuizDefinitionError("A published quiz needs at least one question.")
        quiz.published = published

    def _prepare_question(self, question: QuestionDefinition) -> QuestionRow:
        """Validate and normalize a question before storage."""
        options = self._validate_options(question.options)
        if not 0 <= question.correct_answer_index < ANSWER_OPTION_COUNT:
            raise InvalidQuizDefinitionError("Correct option index must be between 0 and 3.")

        cleaned_title = question.title.strip()
        if not cleaned_title:
            raise InvalidQuizDefinitionError("Question text must not be empty.")
        category = question.category.strip().upper()
        if not category:
            raise InvalidQuizDefinitionError("Question category must not be empty.")

        return QuestionRow(
            title=cleaned_title,
            options=options,
            correct_answer=question.correct_answer_index,
            explanation=question.explanation.strip(),
            difficulty=question.difficulty,
            category=category,
            times_asked=0,
            times_answered_correctly=0,
        )

    @staticmethod
    def _validate_options(options: list[str]) -> list[str]:
        if len(options) != ANSWER_OPTION_COUNT:
            raise InvalidQuizDefinitionError("Each question must have exactly four options.")
        cleaned = [option.strip() for option in options]
        if any(not option for option in cleaned):
            raise InvalidQuizDefinitionError("Option text cannot be empty.")
        return cleaned


def _derive_difficulty(questions: list[QuestionRow]) -> Difficulty:
    if not questions:
        return Difficulty.BEGINNER
    average_level = sum(question.difficulty.level for question in questions) / len(questions)
    return Difficulty.from_average_level(average_level)


def _to_question(row: QuestionRow) -> QuizQuestion:
    return QuizQuestion(
        id=row.id,
        title=row.title,
        options=list(row.options),
        correct_answer_index=row.correct_answer,
        category=row.category,
        difficulty=row.difficulty,
        explanation=row.explanation or "",
        times_asked=row.times_asked,
        times_answered_correctly=row.times_answered_correctly,
    )


def _to_quiz(row: QuizRow) -> Quiz:
    return Quiz(
        id=row.id,
        name=row.name,
        duration_minutes=row.duration_minutes,
        difficulty=row.difficulty,
        published=row.published,
        questions=[_to_question(link.question) for link in row.question_links],
        times_attempted=row.times_attempted,
        average_score=row.average_score,
    )
