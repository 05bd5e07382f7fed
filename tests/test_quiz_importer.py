from __future__ import annotations

import pytest

from knowledge_quiz.core.quiz_importer import QuizImportError, load_questions_from_file, parse_questions

SAMPLE = """
Q: Which keyword defines a generator?
A: return
B: yield
C: async
CORRECT: b
EXPLANATION: A body containing `yield`
returns a generator.

---
Q: Pick the even number
   from the list below.
A: 3
B: 4
CORRECT: B
"""


def test_parse_questions_reads_every_block():
    questions = parse_questions(SAMPLE)

    assert len(questions) == 2
    first, second = questions
    assert first.options == ("return", "yield", "async")
    assert first.correct_option_index == 1
    assert first.explanation == "A body containing `yield`\nreturns a generator."
    assert second.prompt == "Pick the even number\nfrom the list below."
    assert second.explanation is None


def test_missing_correct_is_rejected():
    with pytest.raises(QuizImportError, match="CORRECT"):
        parse_questions("Q: One?\nA: yes\nB: no\n")


def test_correct_letter_must_name_an_option():
    with pytest.raises(QuizImportError, match="must be one of A, B"):
        parse_questions("Q: One?\nA: yes\nB: no\nCORRECT: C\n")


def test_options_must_be_consecutive():
    with pytest.raises(QuizImportError, match="consecutively"):
        parse_questions("Q: One?\nA: yes\nC: no\nCORRECT: A\n")


def test_single_option_is_rejected():
    with pytest.raises(QuizImportError):
        parse_questions("Q: One?\nA: yes\nCORRECT: A\n")


def test_text_outside_sections_is_rejected():
    with pytest.raises(QuizImportError, match="outside of a known section"):
        parse_questions("stray text\nQ: One?\nA: yes\nB: no\nCORRECT: A\n")


def test_empty_file_is_rejected(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("\n\n---\n", encoding="utf-8")
    with pytest.raises(QuizImportError, match="did not contain any questions"):
        load_questions_from_file(path)
