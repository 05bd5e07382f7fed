"""State machine for a single quiz attempt."""

from __future__ import annotations

from knowledge_quiz.constants.quiz_constants import (
    DEFAULT_HINT_TEXT,
    SCORE_MESSAGES,
    SECONDS_PER_QUESTION,
)
from knowledge_quiz.core.errors import InvalidOperation
from knowledge_quiz.core.models import Question, ReviewItem, Session


def new_session(subject_id: str, player_name: str, questions: list[Question]) -> Session:
    """Build a fresh, started session for the given question set."""
    if not questions:
        raise InvalidOperation("A session needs at least one question.")
    return Session(
        subject_id=subject_id,
        player_name=player_name,
        questions=list(questions),
        current_question_index=0,
        answers=[None] * len(questions),
        time_left_seconds=len(questions) * SECONDS_PER_QUESTION,
        quiz_started=True,
        quiz_completed=False,
    )


def accuracy_percentage(score: int, total: int) -> int:
    """Percentage of correct answers, rounded half up."""
    if total <= 0:
        return 0
    return (score * 200 + total) // (2 * total)


def score_message(percentage: int) -> str:
    for threshold, message in SCORE_MESSAGES:
        if percentage >= threshold:
            return message
    return SCORE_MESSAGES[-1][1]


class GameSession:
    """Applies navigation, answering and timing rules to a ``Session``.

    Every mutator raises ``InvalidOperation`` on a completed session.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def state(self) -> Session:
        return self._session

    def select_answer(self, option_index: int) -> None:
        session = self._require_mutable()
        option_count = len(session.current_question.options)
        if not 0 <= option_index < option_count:
            raise InvalidOperation(
                f"Option index {option_index} out of range for {option_count} options."
            )
        session.answers[session.current_question_index] = option_index

    def next_question(self) -> bool:
        """Advance one question. Returns False at the last question."""
        session = self._require_mutable()
        if session.is_last_question:
            return False
        session.current_question_index += 1
        return True

    def previous_question(self) -> bool:
        session = self._require_mutable()
        if session.current_question_index == 0:
            return False
        session.current_question_index -= 1
        return True

    def tick(self) -> bool:
        """Consume one second. Returns True when the time budget is exhausted."""
        session = self._require_mutable()
        if not session.quiz_started:
            raise InvalidOperation("The quiz has not started.")
        if session.time_left_seconds > 0:
            session.time_left_seconds -= 1
        return session.time_left_seconds == 0

    def complete(self) -> bool:
        """Freeze the session. Returns False if it was already completed."""
        if self._session.quiz_completed:
            return False
        self._session.quiz_completed = True
        return True

    def calculate_score(self) -> int:
        session = self._session
        return sum(
            1
            for answer, question in zip(session.answers, session.questions)
            if answer is not None and answer == question.correct_option_index
        )

    def hint(self) -> str:
        return self._session.current_question.explanation or DEFAULT_HINT_TEXT

    def review(self) -> list[ReviewItem]:
        session = self._session
        return [
            ReviewItem(
                question_number=position,
                prompt=question.prompt,
                options=question.options,
                selected_option_index=answer,
                correct_option_index=question.correct_option_index,
                is_correct=answer == question.correct_option_index,
                explanation=question.explanation,
            )
            for position, (question, answer) in enumerate(
                zip(session.questions, session.answers), start=1
            )
        ]

    def _require_mutable(self) -> Session:
        if self._session.quiz_completed:
            raise InvalidOperation("The quiz is already completed.")
        return self._session
