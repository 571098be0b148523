from __future__ import annotations

import pytest

from quiz_ranking.core.errors import InvalidQuizDefinitionError
from quiz_ranking.core.models import Difficulty, QuizDefinition
from quiz_ranking.core.quiz_importer import QuizImportError, parse_quiz_text

QUIZ_TEXT = """\
TITLE: Spring Boot Fundamentals
DURATION: 15
PUBLISHED: yes
DESCRIPTION: Core annotations

Q: Which annotation marks the entry point
   of a Spring Boot application?
A: @Entry
B: @SpringBootApplication
C: @Main
D: @Boot
CORRECT: B
CATEGORY: spring_boot
DIFFICULTY: intermediate
EXPLANATION: It combines configuration,
auto-configuration and component scanning.
---
Q: Which file configures properties?
A: application.properties
B: pom.xml
C: Dockerfile
D: README.md
CORRECT: A
CATEGORY: SPRING_BOOT
"""


def test_parse_full_quiz():
    definition = parse_quiz_text(QUIZ_TEXT)

    assert definition.name == "Spring Boot Fundamentals"
    assert definition.duration_minutes == 15
    assert definition.published is True
    assert definition.difficulty is None
    assert definition.description == "Core annotations"
    assert len(definition.questions) == 2

    first, second = definition.questions
    assert first.title == "Which annotation marks the entry point\nof a Spring Boot application?"
    assert first.correct_answer_index == 1
    assert first.category == "SPRING_BOOT"
    assert first.difficulty == Difficulty.INTERMEDIATE
    assert first.explanation.startswith("It combines configuration,")
    assert second.correct_answer_index == 0
    assert second.difficulty == Difficulty.BEGINNER


def test_missing_header_field_is_rejected():
    with pytest.raises(QuizImportError, match="DURATION"):
        parse_quiz_text("TITLE: Only a title\n\nQ: x\nA: a\nB: b\nC: c\nD: d\nCORRECT: A\nCATEGORY: X\n")


@pytest.mark.parametrize(
    ("block", "message"),
    [
        ("Q: x\nA: a\nB: b\nC: c\nCORRECT: A\nCATEGORY: X", "four options"),
        ("Q: x\nA: a\nB: b\nC: c\nD: d\nCATEGORY: X", "CORRECT"),
        ("Q: x\nA: a\nB: b\nC: c\nD: d\nCORRECT: E\nCATEGORY: X", "CORRECT must be"),
        ("Q: x\nA: a\nB: b\nC: c\nD: d\nCORRECT: A", "CATEGORY"),
        ("Q: x\nA: a\nB: b\nC: c\nD: d\nCORRECT: A\nCATEGORY: X\nDIFFICULTY: EXTREME", "DIFFICULTY"),
    ],
)
def test_invalid_question_blocks_are_rejected(block, message):
    with pytest.raises(QuizImportError, match=message):
        parse_quiz_text(f"TITLE: T\nDURATION: 5\n\n{block}\n")


def test_import_file_derives_difficulty_and_stores_quiz(tmp_path, manager):
    quiz_file = tmp_path / "spring.txt"
    quiz_file.write_text(QUIZ_TEXT.replace("DIFFICULTY: intermediate", "DIFFICULTY: ARCHITECT"), encoding="utf-8")

    quiz_id = manager.import_quiz_file(quiz_file)

    quiz = manager.get_quiz(quiz_id)
    assert quiz.published is True
    # Mean level of ARCHITECT (4) and BEGINNER (1) is 2.5.
    assert quiz.difficulty == Difficulty.INTERMEDIATE
    assert [question.correct_answer_index for question in quiz.questions] == [1, 0]


def test_catalog_rejects_published_quiz_without_questions(manager):
    with pytest.raises(InvalidQuizDefinitionError):
        manager.add_quiz(QuizDefinition(name="Empty", duration_minutes=5, questions=[], published=True))
