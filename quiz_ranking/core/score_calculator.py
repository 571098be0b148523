"""Pure scoring rules: percentage, badge and per-question correction.

Nothing in this module touches storage. The submission ledger feeds it the
questions it loaded and persists whatever comes back.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from quiz_ranking.constants.scoring_constants import (
    ANSWER_OPTION_COUNT,
    BRONZE_SCORE_THRESHOLD,
    GOLD_SCORE_THRESHOLD,
    GOLD_TIME_RATIO,
    PASS_SCORE_THRESHOLD,
    SILVER_SCORE_THRESHOLD,
)
from quiz_ranking.core.errors import (
    AnswerCountMismatchError,
    InvalidAnswerIndexError,
    InvalidElapsedTimeError,
)
from quiz_ranking.core.models import AnswerDetail, Badge, QuizQuestion, ScoredResult


@dataclass(slots=True, frozen=True)
class ScoringPolicy:
    """Badge ladder and passing bound applied to every submission."""

    gold_threshold: int = GOLD_SCORE_THRESHOLD
    silver_threshold: int = SILVER_SCORE_THRESHOLD
    bronze_threshold: int = BRONZE_SCORE_THRESHOLD
    gold_time_ratio: float = GOLD_TIME_RATIO
    pass_threshold: int = PASS_SCORE_THRESHOLD

    def __post_init__(self) -> None:
        for name in ("gold_threshold", "silver_threshold", "bronze_threshold", "pass_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be between 0 and 100, got {value}.")
        if self.gold_time_ratio <= 0:
            raise ValueError("gold_time_ratio must be positive.")


DEFAULT_POLICY = ScoringPolicy()


def calculate_percentage(correct_answers: int, total_questions: int) -> int:
    """Truncating percentage: 2 of 3 is 66, never 67."""
    if total_questions == 0:
        return 0
    return (correct_answers * 100) // total_questions


def determine_badge(
    score_percentage: int,
    elapsed_seconds: int,
    duration_minutes: int,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> Badge | None:
    """Return the first badge of the ladder the attempt qualifies for."""
    expected_seconds = duration_minutes * 60
    if (
        score_percentage >= policy.gold_threshold
        and elapsed_seconds <= policy.gold_time_ratio * expected_seconds
    ):
        return Badge.GOLD
    if score_percentage >= policy.silver_threshold:
        return Badge.SILVER
    if score_percentage >= policy.bronze_threshold:
        return Badge.BRONZE
    return None


def is_passed(score_percentage: int, policy: ScoringPolicy = DEFAULT_POLICY) -> bool:
    return score_percentage >= policy.pass_threshold


def calculate_score(
    answers: Sequence[int],
    questions: Sequence[QuizQuestion],
    elapsed_seconds: int,
    duration_minutes: int,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> ScoredResult:
    """Grade an ordered list of selected option indices against the answer key.

    Raises:
        AnswerCountMismatchError: ``answers`` and ``questions`` differ in length.
        InvalidAnswerIndexError: an answer is outside ``0..3``.
        InvalidElapsedTimeError: ``elapsed_seconds`` is below one second.
    """
    if len(answers) != len(questions):
        raise AnswerCountMismatchError(len(answers), len(questions))
    for position, answer in enumerate(answers):
        if not 0 <= answer < ANSWER_OPTION_COUNT:
            raise InvalidAnswerIndexError(position, answer)
    if elapsed_seconds < 1:
        raise InvalidElapsedTimeError(elapsed_seconds)

    details = [
        AnswerDetail(
            question_id=question.id,
            user_answer=answer,
            correct_answer=question.correct_answer_index,
            is_correct=answer == question.correct_answer_index,
            title=question.title,
            explanation=question.explanation,
        )
        for answer, question in zip(answers, questions)
    ]
    correct_answers = sum(1 for detail in details if detail.is_correct)
    percentage = calculate_percentage(correct_answers, len(questions))

    return ScoredResult(
        correct_answers=correct_answers,
        total_questions=len(questions),
        score_percentage=percentage,
        time_spent_seconds=elapsed_seconds,
        badge=determine_badge(percentage, elapsed_seconds, duration_minutes, policy),
        passed=is_passed(percentage, policy),
        answer_details=details,
    )


def format_time_spent(seconds: int) -> str:
    """Render a duration the way score cards show it, e.g. ``20m 50s``."""
    minutes, remainder = divmod(seconds, 60)
    return f"{minutes}m {remainder:02d}s"
