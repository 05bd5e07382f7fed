"""Utilities for reading question sets from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    ...             (two to six options, lettered A-F in order)
    CORRECT: A|B|...
    EXPLANATION: optional text shown as a hint and in the answer review.
       Additional lines are appended to the explanation.

Example:

    Q: Which keyword defines a generator?
    A: return
    B: yield
    C: async
    CORRECT: B
    EXPLANATION: A function body containing `yield` returns a generator.
"""

from __future__ import annotations

from pathlib import Path

from knowledge_quiz.core.models import Question


class QuizImportError(Exception):
    """Raised when a question set definition cannot be parsed."""


_OPTION_ORDER = ["A", "B", "C", "D", "E", "F"]
_MIN_OPTIONS = 2


def load_questions_from_file(file_path: Path) -> list[Question]:
    text = file_path.read_text(encoding="utf-8")
    questions = parse_questions(text)
    if not questions:
        raise QuizImportError(f"Question file {file_path.name} did not contain any questions.")
    return questions


def parse_questions(text: str) -> list[Question]:
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

    return [_parse_block(block) for block in blocks if block]


def _parse_block(block: str) -> Question:
    question_lines: list[str] = []
    explanation_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letter: str | None = None
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

    letters = _OPTION_ORDER[: len(options)]
    if len(options) < _MIN_OPTIONS or sorted(options) != letters:
        raise QuizImportError(
            "Each question must define at least two options lettered consecutively from A."
        )

    option_list = tuple(options[letter].strip() for letter in letters)
    if any(not opt for opt in option_list):
        raise QuizImportError("Option text cannot be empty.")

    if correct_letter is None:
        raise QuizImportError("CORRECT is required for every question.")
    if correct_letter not in letters:
        raise QuizImportError(f"CORRECT must be one of {', '.join(letters)}.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text cannot be empty.")

    explanation = "\n".join(explanation_lines).strip() or None

    return Question(
        prompt=question_text,
        options=option_list,
        correct_option_index=letters.index(correct_letter),
        explanation=explanation,
    )
