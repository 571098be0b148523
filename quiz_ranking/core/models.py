"""Domain models for the quiz ranking service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Difficulty(str, Enum):
    """Difficulty tier shared by questions and quizzes."""

    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    ARCHITECT = "ARCHITECT"

    @property
    def level(self) -> int:
        return _DIFFICULTY_LEVELS[self]

    @classmethod
    def from_average_level(cls, average_level: float) -> Difficulty:
        """Map a mean question level onto the closest quiz tier."""
        if average_level <= 1.5:
            return cls.BEGINNER
        if average_level <= 2.5:
            return cls.INTERMEDIATE
        if average_level <= 3.5:
            return cls.ADVANCED
        return cls.ARCHITECT


_DIFFICULTY_LEVELS = {
    Difficulty.BEGINNER: 1,
    Difficulty.INTERMEDIATE: 2,
    Difficulty.ADVANCED: 3,
    Difficulty.ARCHITECT: 4,
}


class Badge(str, Enum):
    """Tier awarded at submission time. Absence of a badge is ``None``."""

    GOLD = "GOLD"
    SILVER = "SILVER"
    BRONZE = "BRONZE"


class TrendLabel(str, Enum):
    """Direction of a learner's recent scores compared to the previous ones."""

    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    DECLINING = "DECLINING"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


# --- Catalog ---


@dataclass(slots=True)
class QuestionDefinition:
    """Multiple-choice question as authored, before it is stored."""

    title: str
    options: list[str]
    correct_answer_index: int
    category: str
    difficulty: Difficulty = Difficulty.BEGINNER
    explanation: str = ""


@dataclass(slots=True)
class QuizDefinition:
    """Quiz as authored: metadata plus its ordered questions."""

    name: str
    duration_minutes: int
    questions: list[QuestionDefinition]
    difficulty: Difficulty | None = None
    published: bool = False
    description: str = ""


@dataclass(slots=True)
class QuizQuestion:
    """Stored question with its answer key and usage counters."""

    id: int
    title: str
    options: list[str]
    correct_answer_index: int
    category: str
    difficulty: Difficulty
    explanation: str = ""
    times_asked: int = 0
    times_answered_correctly: int = 0

    @property
    def success_rate(self) -> float:
        if self.times_asked == 0:
            return 0.0
        return self.times_answered_correctly * 100.0 / self.times_asked


@dataclass(slots=True)
class Quiz:
    """Stored quiz with its ordered questions and aggregate counters."""

    id: int
    name: str
    duration_minutes: int
    difficulty: Difficulty
    published: bool
    questions: list[QuizQuestion] = field(default_factory=list)
    times_attempted: int = 0
    average_score: float = 0.0

    @property
    def expected_seconds(self) -> int:
        return self.duration_minutes * 60


# --- Scoring ---


@dataclass(slots=True)
class AnswerDetail:
    """Correction of a single answer, revealed after submission."""

    question_id: int
    user_answer: int
    correct_answer: int
    is_correct: bool
    title: str = ""
    explanation: str = ""


@dataclass(slots=True)
class ScoredResult:
    """Output of the score calculator, before anything is persisted."""

    correct_answers: int
    total_questions: int
    score_percentage: int
    time_spent_seconds: int
    badge: Badge | None
    passed: bool
    answer_details: list[AnswerDetail]


@dataclass(slots=True)
class ScoreRecord:
    """Immutable snapshot of a persisted score row."""

    id: int
    user_id: int
    quiz_id: int
    score_percentage: int
    correct_answers: int
    total_questions: int
    time_spent_seconds: int
    completed_at: datetime
    badge: Badge | None
    is_best_score: bool


@dataclass(slots=True)
class ScoreResult:
    """Everything returned to a learner after submitting a quiz."""

    score: ScoreRecord
    quiz_name: str
    is_passed: bool
    rank: int
    attempt_number: int
    previous_best_percentage: int | None
    answer_details: list[AnswerDetail]


# --- Ranking ---


@dataclass(slots=True)
class LeaderboardEntry:
    """One best score on a quiz leaderboard."""

    rank: int
    score_id: int
    user_id: int
    username: str
    score_percentage: int
    time_spent_seconds: int
    badge: Badge | None
    completed_at: datetime


@dataclass(slots=True)
class GlobalLeaderboardEntry:
    """One user on the cross-quiz leaderboard."""

    rank: int
    user_id: int
    username: str
    average_score: float
    quizzes_completed: int


# --- Progression ---


@dataclass(slots=True)
class ProgressionStats:
    """Recent-versus-previous comparison of a learner's scores."""

    recent_average: float | None
    previous_average: float | None
    trend: TrendLabel
    improvement: float


@dataclass(slots=True)
class CategoryStats:
    category: str
    average_score: float
    attempts_count: int


@dataclass(slots=True)
class ScoreSummary:
    """Compact view of a score for dashboards."""

    quiz_id: int
    quiz_name: str
    score_percentage: int
    badge: Badge | None
    completed_at: datetime


@dataclass(slots=True)
class UserStats:
    """Dashboard payload for a single learner."""

    user_id: int
    username: str
    total_attempts: int
    unique_quizzes_attempted: int
    passed_quizzes: int
    average_score: float | None
    best_scores: list[ScoreSummary]
    recent_activity: list[ScoreSummary]
    progression: ProgressionStats
    category_stats: list[CategoryStats]


# --- Quiz analytics ---


@dataclass(slots=True)
class ScoreBucket:
    """Number of best scores falling in ``[lower_bound, lower_bound + width)``."""

    lower_bound: int
    count: int


@dataclass(slots=True)
class QuizStats:
    quiz_id: int
    quiz_name: str
    times_attempted: int
    average_score: float
    recorded_average_score: float | None
    distinct_players: int
    passed_players: int
    score_distribution: list[ScoreBucket]


@dataclass(slots=True)
class QuestionInsight:
    question_id: int
    title: str
    category: str
    times_asked: int
    times_answered_correctly: int
    success_rate: float


@dataclass(slots=True)
class CategorySuccessRate:
    """Mean question success rate within one category."""

    category: str
    success_rate: float
    questions_count: int
