"""Utilities for importing quizzes from a human-friendly text file.

File format: a header block followed by question blocks, separated by blank
lines or '---':

    TITLE: Spring Boot Fundamentals
    DURATION: 10          (expected completion time in minutes)
    DIFFICULTY: INTERMEDIATE   (optional, derived from the questions otherwise)
    PUBLISHED: yes        (optional, defaults to no)
    DESCRIPTION: One line summary (optional)

    Q: Question text. Additional lines until the next marker are treated as
       part of the question.
    A: First option text
    B: Second option text
    C: Third option text
    D: Fourth option text
    CORRECT: A|B|C|D
    CATEGORY: SPRING_BOOT
    DIFFICULTY: BEGINNER  (optional, defaults to BEGINNER)
    EXPLANATION: Why the correct option is correct (optional)

Architecture note:
    A structured format such as JSON/YAML would simplify parsing, but plain
    text keeps authoring close to how quiz writers already work. Unlike a
    live classroom quiz, a ranked quiz is only useful with an answer key and a
    category per question, so both are mandatory here.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from quiz_ranking.core.models import Difficulty, QuestionDefinition, QuizDefinition


class QuizImportError(Exception):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for the parsed quiz and the file it came from."""

    source_path: Path
    definition: QuizDefinition


_OPTION_ORDER = ["A", "B", "C", "D"]
_TRUE_VALUES = {"YES", "TRUE", "1", "Y"}
_FALSE_VALUES = {"NO", "FALSE", "0", "N"}


def load_quiz_from_file(file_path: Path) -> ImportedQuiz:
    text = file_path.read_text(encoding="utf-8")
    return ImportedQuiz(source_path=file_path, definition=parse_quiz_text(text))


def parse_quiz_text(text: str) -> QuizDefinition:
    blocks = _split_blocks(text)
    if not blocks:
        raise QuizImportError("Quiz file is empty.")

    header = _parse_header(blocks[0])
    questions = [_parse_block(block) for block in blocks[1:]]
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")

    return QuizDefinition(
        name=header["TITLE"],
        duration_minutes=_parse_positive_int(header["DURATION"], "DURATION"),
        questions=questions,
        difficulty=_parse_difficulty(header["DIFFICULTY"]) if "DIFFICULTY" in header else None,
        published=_parse_flag(header.get("PUBLISHED", "no")),
        description=header.get("DESCRIPTION", ""),
    )


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            # Blank line encountered after content - finalize current block
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _parse_header(block: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for raw_line in block.splitlines():
        line = raw_line.strip()
        if ":" not in line:
            raise QuizImportError(f"Header line must look like 'KEY: value': '{line}'.")
        key, value = line.split(":", 1)
        key = key.strip().upper()
        if key not in {"TITLE", "DURATION", "DIFFICULTY", "PUBLISHED", "DESCRIPTION"}:
            raise QuizImportError(f"Unknown header field '{key}'.")
        fields[key] = value.strip()

    for required in ("TITLE", "DURATION"):
        if not fields.get(required):
            raise QuizImportError(f"Quiz header must define {required}.")
    return fields


def _parse_block(block: str) -> QuestionDefinition:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letter: str | None = None
    category: str | None = None
    difficulty = Difficulty.BEGINNER
    explanation_lines: list[str] = []
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if upper.startswith("CATEGORY:"):
            category = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if upper.startswith("DIFFICULTY:"):
            difficulty = _parse_difficulty(line.split(":", 1)[1])
            current_section = None
            continue

        if upper.startswith("EXPLANATION:"):
            explanation_lines = [line.split(":", 1)[1].strip()]
            current_section = "EXPLANATION"
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_ORDER and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section == "EXPLANATION":
            explanation_lines.append(line)
        elif current_section in _OPTION_ORDER:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    if not question_lines:
        raise QuizImportError("Question text missing (Q: ...)")
    if len(options) != 4:
        raise QuizImportError("Each question must define exactly four options (A-D).")

    option_list = [options.get(letter, "").strip() for letter in _OPTION_ORDER]
    if any(not opt for opt in option_list):
        raise QuizImportError("Option text cannot be empty.")

    if correct_letter is None:
        raise QuizImportError("Each question must define CORRECT: A|B|C|D.")
    if correct_letter not in _OPTION_ORDER:
        raise QuizImportError("CORRECT must be one of A, B, C, or D.")
    if not category:
        raise QuizImportError("Each question must define a CATEGORY.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text cannot be empty.")

    return QuestionDefinition(
        title=question_text,
        options=option_list,
        correct_answer_index=_OPTION_ORDER.index(correct_letter),
        category=category,
        difficulty=difficulty,
        explanation="\n".join(explanation_lines).strip(),
    )


def _parse_positive_int(raw_value: str, field_name: str) -> int:
    try:
        parsed_value = int(raw_value)
    except ValueError as exc:
        raise QuizImportError(f"{field_name} must be an integer.") from exc
    if parsed_value <= 0:
        raise QuizImportError(f"{field_name} must be a positive integer.")
    return parsed_value


def _parse_difficulty(raw_value: str) -> Difficulty:
    try:
        return Difficulty(raw_value.strip().upper())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in Difficulty)
        raise QuizImportError(f"DIFFICULTY must be one of {allowed}.") from exc


def _parse_flag(raw_value: str) -> bool:
    value = raw_value.strip().upper()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise QuizImportError("PUBLISHED must be yes or no.")
