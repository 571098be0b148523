from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from quiz_ranking.core.errors import (
    AnswerCountMismatchError,
    EmptyQuizError,
    QuizNotFoundError,
    QuizNotPublishedError,
    StorageError,
    UserNotFoundError,
)
from quiz_ranking.core.models import Badge, Difficulty
from quiz_ranking.core.services.submission_ledger import SubmissionLedger
from quiz_ranking.storage.tables import QuizRow, ScoreRow


def _best_rows(database, quiz_id, user_id):
    with database.session() as session:
        return session.scalars(
            select(ScoreRow).where(
                ScoreRow.quiz_id == quiz_id,
                ScoreRow.user_id == user_id,
                ScoreRow.is_best_score.is_(True),
            )
        ).all()


def test_first_submission_is_best_and_ranked(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    user_id = seed_user("alice")

    result = manager.submit_quiz(quiz_id, user_id, make_answers(9), 300)

    assert result.score.score_percentage == 90
    assert result.score.is_best_score is True
    assert result.score.badge == Badge.GOLD
    assert result.quiz_name == "Java Basics"
    assert result.is_passed is True
    assert result.rank == 1
    assert result.attempt_number == 1
    assert result.previous_best_percentage is None
    assert len(result.answer_details) == 10
    assert result.answer_details[0].title == "Question 0"


def test_exactly_one_best_score_per_user_and_quiz(database, manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    user_id = seed_user("alice")

    first = manager.submit_quiz(quiz_id, user_id, make_answers(6), 300)
    second = manager.submit_quiz(quiz_id, user_id, make_answers(8), 300)
    third = manager.submit_quiz(quiz_id, user_id, make_answers(7), 300)

    assert first.score.is_best_score is True
    assert second.score.is_best_score is True
    assert second.previous_best_percentage == 60
    assert third.score.is_best_score is False
    assert third.previous_best_percentage == 80
    assert third.attempt_number == 3

    best = _best_rows(database, quiz_id, user_id)
    assert [row.id for row in best] == [second.score.id]


def test_equal_score_does_not_replace_best(database, manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    user_id = seed_user("alice")

    original = manager.submit_quiz(quiz_id, user_id, make_answers(8), 500)
    faster = manager.submit_quiz(quiz_id, user_id, make_answers(8), 100)

    assert faster.score.is_best_score is False
    assert [row.id for row in _best_rows(database, quiz_id, user_id)] == [original.score.id]


def test_quiz_counters_track_every_attempt(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    alice = seed_user("alice")
    bob = seed_user("bob")

    manager.submit_quiz(quiz_id, alice, make_answers(8), 300)
    quiz = manager.get_quiz(quiz_id)
    assert quiz.times_attempted == 1
    assert quiz.average_score == pytest.approx(80.0)

    manager.submit_quiz(quiz_id, bob, make_answers(6), 300)
    assert manager.get_quiz(quiz_id).average_score == pytest.approx(70.0)

    manager.submit_quiz(quiz_id, alice, make_answers(4), 300)
    quiz = manager.get_quiz(quiz_id)
    assert quiz.times_attempted == 3
    assert quiz.average_score == pytest.approx(60.0)


def test_question_counters_follow_answers(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    user_id = seed_user("alice")

    manager.submit_quiz(quiz_id, user_id, make_answers(7), 300)
    manager.submit_quiz(quiz_id, user_id, make_answers(3), 300)

    questions = manager.get_quiz(quiz_id).questions
    assert [question.times_asked for question in questions] == [2] * 10
    assert [question.times_answered_correctly for question in questions] == [2, 2, 2, 1, 1, 1, 1, 0, 0, 0]
    assert questions[0].success_rate == pytest.approx(100.0)
    assert questions[9].success_rate == pytest.approx(0.0)


def test_rejected_submission_persists_nothing(database, manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    user_id = seed_user("alice")

    with pytest.raises(AnswerCountMismatchError):
        manager.submit_quiz(quiz_id, user_id, make_answers(3, total=3), 300)

    with database.session() as session:
        assert session.scalar(select(func.count(ScoreRow.id))) == 0
    quiz = manager.get_quiz(quiz_id)
    assert quiz.times_attempted == 0
    assert all(question.times_asked == 0 for question in quiz.questions)


def test_draft_quiz_rejects_submissions(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz(published=False)
    user_id = seed_user("alice")

    with pytest.raises(QuizNotPublishedError):
        manager.submit_quiz(quiz_id, user_id, make_answers(10), 300)

    manager.publish_quiz(quiz_id)
    assert manager.submit_quiz(quiz_id, user_id, make_answers(10), 300).score.score_percentage == 100


def test_unknown_quiz_and_user_are_rejected(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    user_id = seed_user("alice")

    with pytest.raises(QuizNotFoundError):
        manager.submit_quiz(999, user_id, make_answers(10), 300)
    with pytest.raises(UserNotFoundError):
        manager.submit_quiz(quiz_id, 999, make_answers(10), 300)


def test_published_quiz_without_questions_is_rejected(database, manager, seed_user):
    user_id = seed_user("alice")
    with database.transaction() as session:
        quiz = QuizRow(
            name="Hollow",
            difficulty=Difficulty.BEGINNER,
            duration_minutes=5,
            published=True,
        )
        session.add(quiz)
        session.flush()
        quiz_id = quiz.id

    with pytest.raises(EmptyQuizError):
        manager.submit_quiz(quiz_id, user_id, [], 30)


def test_storage_failure_rolls_back_the_whole_submission(
    database, manager, monkeypatch, seed_quiz, seed_user, make_answers
):
    quiz_id = seed_quiz()
    user_id = seed_user("alice")
    first = manager.submit_quiz(quiz_id, user_id, make_answers(5), 300)

    def _fail(session, scored):
        raise OperationalError("UPDATE questions", {}, Exception("disk I/O error"))

    monkeypatch.setattr(SubmissionLedger, "_record_question_usage", staticmethod(_fail))

    with pytest.raises(StorageError):
        manager.submit_quiz(quiz_id, user_id, make_answers(9), 300)

    with database.session() as session:
        assert session.scalar(select(func.count(ScoreRow.id))) == 1
    quiz = manager.get_quiz(quiz_id)
    assert quiz.times_attempted == 1
    assert quiz.average_score == pytest.approx(50.0)
    assert all(question.times_asked == 1 for question in quiz.questions)
    assert [row.id for row in _best_rows(database, quiz_id, user_id)] == [first.score.id]
