"""Serialized form of a session used by the persistence layer.

A snapshot carries the exact question set served for the attempt so that a
resumed session never re-fetches a different randomized selection.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from knowledge_quiz.core.models import Question, Session

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class QuestionSnapshot(BaseModel):
    """Schema for a persisted question."""

    model_config = ConfigDict(extra="forbid")

    prompt: str
    options: list[str] = Field(min_length=1)
    correct_option_index: int = Field(ge=0)
    explanation: str | None = None

    @model_validator(mode="after")
    def _check_correct_index(self) -> QuestionSnapshot:
        if self.correct_option_index >= len(self.options):
            raise ValueError("correct_option_index is out of range")
        return self


class SessionSnapshot(BaseModel):
    """Schema for a persisted session."""

    model_config = ConfigDict(extra="forbid")

    version: int = SNAPSHOT_VERSION
    subject_id: str
    player_name: str
    questions: list[QuestionSnapshot] = Field(min_length=1)
    current_question_index: int = Field(ge=0)
    answers: list[int | None]
    time_left_seconds: int = Field(ge=0)
    quiz_started: bool
    quiz_completed: bool

    @model_validator(mode="after")
    def _check_consistency(self) -> SessionSnapshot:
        if self.version != SNAPSHOT_VERSION:
            raise ValueError(f"unsupported snapshot version {self.version}")
        if len(self.answers) != len(self.questions):
            raise ValueError("answers must have one slot per question")
        if self.current_question_index >= len(self.questions):
            raise ValueError("current_question_index is out of range")
        for answer, question in zip(self.answers, self.questions):
            if answer is not None and not 0 <= answer < len(question.options):
                raise ValueError("recorded answer is out of range")
        return self

    @classmethod
    def from_session(cls, session: Session) -> SessionSnapshot:
        return cls(
            subject_id=session.subject_id,
            player_name=session.player_name,
            questions=[
                QuestionSnapshot(
                    prompt=question.prompt,
                    options=list(question.options),
                    correct_option_index=question.correct_option_index,
                    explanation=question.explanation,
                )
                for question in session.questions
            ],
            current_question_index=session.current_question_index,
            answers=list(session.answers),
            time_left_seconds=session.time_left_seconds,
            quiz_started=session.quiz_started,
            quiz_completed=session.quiz_completed,
        )

    def to_session(self) -> Session:
        return Session(
            subject_id=self.subject_id,
            player_name=self.player_name,
            questions=[
                Question(
                    prompt=question.prompt,
                    options=tuple(question.options),
                    correct_option_index=question.correct_option_index,
                    explanation=question.explanation,
                )
                for question in self.questions
            ],
            current_question_index=self.current_question_index,
            answers=list(self.answers),
            time_left_seconds=self.time_left_seconds,
            quiz_started=self.quiz_started,
            quiz_completed=self.quiz_completed,
        )


def dump_session(session: Session) -> str:
    """Serialize a session to its JSON snapshot."""
    return SessionSnapshot.from_session(session).model_dump_json()


def restore_session(raw: str, subject_id: str, player_name: str) -> Session | None:
    """Rebuild a session from a JSON snapshot, or ``None`` if it is unusable."""
    try:
        snapshot = SessionSnapshot.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning(
            "Discarding corrupt snapshot for %s/%s: %s",
            subject_id,
            player_name,
            exc.errors()[0]["msg"],
        )
        return None

    if snapshot.subject_id != subject_id or snapshot.player_name != player_name:
        logger.warning(
            "Discarding snapshot keyed %s/%s that belongs to %s/%s",
            subject_id,
            player_name,
            snapshot.subject_id,
            snapshot.player_name,
        )
        return None
    return snapshot.to_session()
