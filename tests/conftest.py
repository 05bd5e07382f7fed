"""Shared fixtures for the quiz engine tests."""

from __future__ import annotations

import pytest

from knowledge_quiz.core.errors import LoadError
from knowledge_quiz.core.models import Question, Subject
from knowledge_quiz.core.services.leaderboard import InMemoryLeaderboard
from knowledge_quiz.core.services.question_bank import QuestionBankProvider
from knowledge_quiz.core.services.session_store import InMemorySessionStore
from knowledge_quiz.core.session_controller import SessionController


def make_questions(correct_indices: list[int], option_count: int = 4) -> list[Question]:
    return [
        Question(
            prompt=f"Question {position}",
            options=tuple(f"Option {letter}" for letter in "ABCDEF"[:option_count]),
            correct_option_index=correct,
            explanation=f"Explanation {position}" if position % 2 else None,
        )
        for position, correct in enumerate(correct_indices, start=1)
    ]


class StaticQuestionBank(QuestionBankProvider):
    """Serves fixed question sets in their declared order."""

    def __init__(self, question_sets: dict[str, list[Question]]) -> None:
        super().__init__(seed=0)
        self.question_sets = question_sets
        self.fail_subjects: set[str] = set()
        self.calls: list[str] = []

    def list_subjects(self) -> list[Subject]:
        return [
            Subject(id=subject_id, name=subject_id.title(), time_in_minutes=len(questions),
                    question_count=len(questions))
            for subject_id, questions in self.question_sets.items()
        ]

    def get_questions(self, subject_id: str) -> list[Question]:
        self.calls.append(subject_id)
        if subject_id in self.fail_subjects or subject_id not in self.question_sets:
            raise LoadError(f"Unable to load {subject_id}")
        return list(self.question_sets[subject_id])


@pytest.fixture
def question_bank() -> StaticQuestionBank:
    return StaticQuestionBank(
        {
            "python": make_questions([0, 1, 2, 3, 0]),
            "sql": make_questions([1, 1, 1]),
        }
    )


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def leaderboard() -> InMemoryLeaderboard:
    return InMemoryLeaderboard()


@pytest.fixture
def controller(question_bank, store, leaderboard):
    manager = SessionController(question_bank, store, leaderboard, tick_interval=0.01)
    manager.save_player_name("Ada")
    yield manager
    manager.close()
