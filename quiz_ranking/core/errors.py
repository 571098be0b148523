"""Exceptions raised by the scoring core.

Every error carries a machine-readable ``reason`` so the transport layer can
reject a request without parsing messages.
"""

from __future__ import annotations


class ScoringError(Exception):
    """Base class for failures surfaced to callers of the scoring core."""

    reason: str = "SCORING_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# --- Not found ---


class NotFoundError(ScoringError):
    reason = "NOT_FOUND"


class QuizNotFoundError(NotFoundError):
    reason = "QUIZ_NOT_FOUND"

    def __init__(self, quiz_id: int) -> None:
        super().__init__(f"Quiz {quiz_id} does not exist.")
        self.quiz_id = quiz_id


class UserNotFoundError(NotFoundError):
    reason = "USER_NOT_FOUND"

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} does not exist.")
        self.user_id = user_id


# --- Validation ---


class ValidationError(ScoringError):
    reason = "VALIDATION_ERROR"


class AnswerCountMismatchError(ValidationError):
    reason = "ANSWER_COUNT_MISMATCH"

    def __init__(self, answer_count: int, question_count: int) -> None:
        super().__init__(
            f"Received {answer_count} answers for a quiz of {question_count} questions."
        )
        self.answer_count = answer_count
        self.question_count = question_count


class InvalidAnswerIndexError(ValidationError):
    reason = "INVALID_ANSWER_INDEX"

    def __init__(self, position: int, answer_index: int) -> None:
        super().__init__(
            f"Answer #{position + 1} selects option {answer_index}; options are numbered 0 to 3."
        )
        self.position = position
        self.answer_index = answer_index


class InvalidElapsedTimeError(ValidationError):
    reason = "INVALID_ELAPSED_TIME"

    def __init__(self, elapsed_seconds: int) -> None:
        super().__init__(f"Elapsed time must be at least 1 second, got {elapsed_seconds}.")
        self.elapsed_seconds = elapsed_seconds


class InvalidLimitError(ValidationError):
    reason = "INVALID_LIMIT"

    def __init__(self, limit: int) -> None:
        super().__init__(f"Limit must be a positive integer, got {limit}.")
        self.limit = limit


class InvalidQuizDefinitionError(ValidationError):
    """Raised by the catalog when an authored quiz cannot be stored."""

    reason = "INVALID_QUIZ_DEFINITION"


# --- State conflicts ---


class StateConflictError(ScoringError):
    reason = "STATE_CONFLICT"


class QuizNotPublishedError(StateConflictError):
    reason = "QUIZ_NOT_PUBLISHED"

    def __init__(self, quiz_id: int) -> None:
        super().__init__(f"Quiz {quiz_id} is a draft and does not accept submissions.")
        self.quiz_id = quiz_id


class EmptyQuizError(StateConflictError):
    reason = "EMPTY_QUIZ"

    def __init__(self, quiz_id: int) -> None:
        super().__init__(f"Quiz {quiz_id} has no questions.")
        self.quiz_id = quiz_id


# --- Infrastructure ---


class StorageError(ScoringError):
    """The store failed; the transaction was rolled back and may be retried."""

    reason = "STORAGE_UNAVAILABLE"


class ConfigurationError(ValueError):
    """Raised when environment configuration cannot be parsed."""
