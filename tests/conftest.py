"""Shared fixtures: an in-memory store, a stepping clock and catalog seeding helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from quiz_ranking.core.models import Difficulty, QuestionDefinition, QuizDefinition
from quiz_ranking.core.scoring_manager import ScoringManager
from quiz_ranking.storage.database import Database


class StepClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(minutes=1)) -> None:
        self.current = start or datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


@pytest.fixture
def database():
    db = Database("sqlite:///:memory:")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def manager(database: Database, clock: StepClock) -> ScoringManager:
    return ScoringManager(database, clock=clock)


def build_questions(
    count: int,
    categories: list[str] | None = None,
    difficulty: Difficulty = Difficulty.BEGINNER,
) -> list[QuestionDefinition]:
    """Questions whose correct option is always the first one (index 0)."""
    categories = categories or ["JAVA"]
    return [
        QuestionDefinition(
            title=f"Question {number}",
            options=["right", "wrong", "also wrong", "still wrong"],
            correct_answer_index=0,
            category=categories[number % len(categories)],
            difficulty=difficulty,
            explanation=f"Explanation {number}",
        )
        for number in range(count)
    ]


@pytest.fixture
def seed_quiz(manager: ScoringManager):
    def _seed(
        question_count: int = 10,
        *,
        name: str = "Java Basics",
        categories: list[str] | None = None,
        duration_minutes: int = 10,
        published: bool = True,
        difficulty: Difficulty | None = None,
        question_difficulty: Difficulty = Difficulty.BEGINNER,
    ) -> int:
        definition = QuizDefinition(
            name=name,
            duration_minutes=duration_minutes,
            questions=build_questions(question_count, categories, question_difficulty),
            difficulty=difficulty,
            published=published,
        )
        return manager.add_quiz(definition)

    return _seed


@pytest.fixture
def seed_user(manager: ScoringManager):
    def _seed(username: str) -> int:
        return manager.register_user(username)

    return _seed


@pytest.fixture
def make_answers():
    """Answer sheet with ``correct`` right answers followed by wrong ones."""

    def _make(correct: int, total: int = 10) -> list[int]:
        return [0] * correct + [1] * (total - correct)

    return _make
