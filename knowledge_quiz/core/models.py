"""Domain models for the quiz session engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from knowledge_quiz.constants.quiz_constants import SECONDS_PER_QUESTION


@dataclass(frozen=True, slots=True)
class Question:
    """Multiple-choice question. Answers reference options by position."""

    prompt: str
    options: tuple[str, ...]
    correct_option_index: int
    explanation: str | None = None


@dataclass(frozen=True, slots=True)
class Subject:
    """Catalog entry describing a question set."""

    id: str
    name: str
    time_in_minutes: int
    question_count: int


@dataclass(slots=True)
class Session:
    """One quiz attempt by one player for one subject."""

    subject_id: str
    player_name: str
    questions: list[Question]
    current_question_index: int = 0
    answers: list[int | None] = field(default_factory=list)
    time_left_seconds: int = 0
    quiz_started: bool = False
    quiz_completed: bool = False

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_question_index]

    @property
    def current_answer(self) -> int | None:
        return self.answers[self.current_question_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index == len(self.questions) - 1

    @property
    def is_running(self) -> bool:
        return self.quiz_started and not self.quiz_completed

    @property
    def progress_fraction(self) -> float:
        return (self.current_question_index + 1) / len(self.questions)

    @property
    def time_fraction(self) -> float:
        """Share of the total time budget still remaining."""
        budget = len(self.questions) * SECONDS_PER_QUESTION
        return self.time_left_seconds / budget if budget else 0.0

    def copy(self) -> Session:
        return Session(
            subject_id=self.subject_id,
            player_name=self.player_name,
            questions=list(self.questions),
            current_question_index=self.current_question_index,
            answers=list(self.answers),
            time_left_seconds=self.time_left_seconds,
            quiz_started=self.quiz_started,
            quiz_completed=self.quiz_completed,
        )


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    """Recorded score submission for a subject."""

    player_name: str
    score: int
    submitted_at: datetime
    sequence: int = 0


@dataclass(frozen=True, slots=True)
class ReviewItem:
    """Per-question breakdown shown after completion."""

    question_number: int
    prompt: str
    options: tuple[str, ...]
    selected_option_index: int | None
    correct_option_index: int
    is_correct: bool
    explanation: str | None


@dataclass(frozen=True, slots=True)
class QuizResult:
    """Score summary for a completed session."""

    subject_id: str
    player_name: str
    score: int
    total_questions: int
    accuracy_percentage: int
    rank: int | None
    message: str
    leaderboard: list[LeaderboardEntry]

    @property
    def incorrect(self) -> int:
        return self.total_questions - self.score
