from __future__ import annotations

import pytest

from quiz_ranking.core.errors import InvalidLimitError, QuizNotFoundError
from quiz_ranking.core.models import Difficulty
from quiz_ranking.core.services.ranking import clamp_limit


def test_leaderboard_orders_by_score_then_time(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    slow = seed_user("slow")
    fast = seed_user("fast")
    weak = seed_user("weak")

    manager.submit_quiz(quiz_id, slow, make_answers(10), 150)
    manager.submit_quiz(quiz_id, fast, make_answers(10), 100)
    manager.submit_quiz(quiz_id, weak, make_answers(5), 50)

    leaderboard = manager.get_leaderboard(quiz_id)

    assert [entry.username for entry in leaderboard] == ["fast", "slow", "weak"]
    assert [entry.rank for entry in leaderboard] == [1, 2, 3]
    assert manager.get_user_rank(quiz_id, fast) == 1
    assert manager.get_user_rank(quiz_id, slow) == 2
    assert manager.get_user_rank(quiz_id, weak) == 3


def test_leaderboard_lists_each_user_once_with_best_attempt(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    alice = seed_user("alice")
    bob = seed_user("bob")

    manager.submit_quiz(quiz_id, alice, make_answers(5), 200)
    manager.submit_quiz(quiz_id, alice, make_answers(9), 200)
    manager.submit_quiz(quiz_id, alice, make_answers(6), 200)
    manager.submit_quiz(quiz_id, bob, make_answers(7), 200)

    leaderboard = manager.get_leaderboard(quiz_id)

    assert [(entry.username, entry.score_percentage) for entry in leaderboard] == [
        ("alice", 90),
        ("bob", 70),
    ]


def test_rank_is_stable_across_reads(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    alice = seed_user("alice")
    bob = seed_user("bob")
    manager.submit_quiz(quiz_id, alice, make_answers(6), 200)
    manager.submit_quiz(quiz_id, bob, make_answers(8), 200)

    assert manager.get_user_rank(quiz_id, alice) == manager.get_user_rank(quiz_id, alice) == 2


def test_rank_without_attempts_is_one(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    alice = seed_user("alice")
    newcomer = seed_user("newcomer")
    manager.submit_quiz(quiz_id, alice, make_answers(9), 200)

    assert manager.get_user_rank(quiz_id, newcomer) == 1


def test_rank_and_leaderboard_need_an_existing_quiz(manager, seed_user):
    alice = seed_user("alice")
    with pytest.raises(QuizNotFoundError):
        manager.get_user_rank(42, alice)
    with pytest.raises(QuizNotFoundError):
        manager.get_leaderboard(42)


def test_submission_rank_matches_later_lookup(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    alice = seed_user("alice")
    bob = seed_user("bob")
    manager.submit_quiz(quiz_id, alice, make_answers(9), 200)

    result = manager.submit_quiz(quiz_id, bob, make_answers(7), 200)

    assert result.rank == 2
    assert manager.get_user_rank(quiz_id, bob) == 2


def test_leaderboard_respects_limit(manager, seed_quiz, seed_user, make_answers):
    quiz_id = seed_quiz()
    for index in range(4):
        user_id = seed_user(f"user{index}")
        manager.submit_quiz(quiz_id, user_id, make_answers(index + 5), 200)

    leaderboard = manager.get_leaderboard(quiz_id, limit=2)

    assert [entry.username for entry in leaderboard] == ["user3", "user2"]


def test_clamp_limit():
    assert clamp_limit(5) == 5
    assert clamp_limit(1000) == 100
    with pytest.raises(InvalidLimitError):
        clamp_limit(0)


def test_global_leaderboard_averages_best_scores(manager, seed_quiz, seed_user, make_answers):
    java = seed_quiz(name="Java")
    spring = seed_quiz(name="Spring")
    alice = seed_user("alice")
    bob = seed_user("bob")
    carol = seed_user("carol")

    manager.submit_quiz(java, alice, make_answers(4), 200)
    manager.submit_quiz(java, alice, make_answers(10), 200)
    manager.submit_quiz(spring, alice, make_answers(6), 200)
    manager.submit_quiz(java, bob, make_answers(8), 200)
    manager.submit_quiz(java, carol, make_answers(8), 200)
    manager.submit_quiz(spring, carol, make_answers(8), 200)

    leaderboard = manager.get_global_leaderboard()

    assert [(entry.username, entry.average_score, entry.quizzes_completed) for entry in leaderboard] == [
        ("alice", pytest.approx(80.0), 2),
        ("carol", pytest.approx(80.0), 2),
        ("bob", pytest.approx(80.0), 1),
    ]
    assert [entry.rank for entry in leaderboard] == [1, 2, 3]


def test_global_leaderboard_filters_by_quiz_difficulty(manager, seed_quiz, seed_user, make_answers):
    easy = seed_quiz(name="Easy", difficulty=Difficulty.BEGINNER)
    hard = seed_quiz(name="Hard", difficulty=Difficulty.ADVANCED)
    alice = seed_user("alice")
    bob = seed_user("bob")

    manager.submit_quiz(easy, alice, make_answers(10), 200)
    manager.submit_quiz(hard, bob, make_answers(5), 200)

    advanced = manager.get_global_leaderboard(difficulty=Difficulty.ADVANCED)

    assert [(entry.username, entry.average_score) for entry in advanced] == [("bob", pytest.approx(50.0))]
