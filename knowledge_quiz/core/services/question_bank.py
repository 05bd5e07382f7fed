"""Question bank and subject catalog providers.

Two sources are supported:

* ``FileQuestionBank`` reads ``subjects.json`` plus one plain-text question
  file per subject (see ``quiz_importer`` for the format).
* ``HttpQuestionBank`` talks to a sheet-backed web app that answers with a
  ``{"success": bool, "data": ..., "error": str}`` envelope.

Both draw a random selection of ``question_count`` questions per attempt.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
from pathlib import Path
import random
from threading import Lock
import time
from typing import Any

import requests

from knowledge_quiz.constants.network_constants import (
    CATALOG_CACHE_SECONDS,
    QUESTION_BANK_TIMEOUT_SECONDS,
)
from knowledge_quiz.constants.quiz_constants import QUESTION_FILE_SUFFIX, SUBJECTS_FILE_NAME
from knowledge_quiz.core.errors import LoadError
from knowledge_quiz.core.models import Question, Subject
from knowledge_quiz.core.quiz_importer import QuizImportError, load_questions_from_file

logger = logging.getLogger(__name__)


class QuestionBankProvider(ABC):
    """Supplies the subject catalog and the questions for a subject."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    @abstractmethod
    def list_subjects(self) -> list[Subject]:
        ...

    @abstractmethod
    def get_questions(self, subject_id: str) -> list[Question]:
        ...

    def _select(self, questions: list[Question], limit: int | None) -> list[Question]:
        """Draw up to ``limit`` questions in random order."""
        if not questions:
            raise LoadError("Question bank returned no questions.")
        count = len(questions) if not limit or limit > len(questions) else limit
        return self._rng.sample(questions, count)


class FileQuestionBank(QuestionBankProvider):
    """Reads subjects and question files from a local directory."""

    def __init__(self, bank_dir: Path, seed: int | None = None) -> None:
        super().__init__(seed)
        self._bank_dir = bank_dir

    def list_subjects(self) -> list[Subject]:
        return [subject for subject, _ in self._read_catalog()]

    def get_questions(self, subject_id: str) -> list[Question]:
        for subject, file_name in self._read_catalog():
            if subject.id == subject_id:
                break
        else:
            raise LoadError(f"Unknown subject '{subject_id}'.")

        path = self._bank_dir / file_name
        try:
            questions = load_questions_from_file(path)
        except FileNotFoundError as exc:
            raise LoadError(f"Question file {path} is missing.") from exc
        except (OSError, QuizImportError) as exc:
            raise LoadError(f"Unable to load questions for '{subject_id}': {exc}") from exc

        selected = self._select(questions, subject.question_count)
        logger.debug("Loaded %d/%d questions for %s", len(selected), len(questions), subject_id)
        return selected

    def _read_catalog(self) -> list[tuple[Subject, str]]:
        path = self._bank_dir / SUBJECTS_FILE_NAME
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise LoadError(f"Unable to read subject catalog {path}: {exc}") from exc
        if not isinstance(raw, list):
            raise LoadError(f"Subject catalog {path} must contain a list.")

        catalog: list[tuple[Subject, str]] = []
        for item in raw:
            subject = _parse_subject(item)
            file_name = item.get("file") or f"{subject.id}{QUESTION_FILE_SUFFIX}"
            catalog.append((subject, file_name))
        return catalog


class HttpQuestionBank(QuestionBankProvider):
    """Fetches subjects and questions from a sheet-backed web app.

    The catalog is cached for a few minutes; when a refresh fails and a
    previous copy exists, the stale copy is served instead of failing.
    """

    def __init__(
        self,
        base_url: str,
        seed: int | None = None,
        timeout: float = QUESTION_BANK_TIMEOUT_SECONDS,
        cache_seconds: float = CATALOG_CACHE_SECONDS,
        http: requests.Session | None = None,
    ) -> None:
        super().__init__(seed)
        self._base_url = base_url
        self._timeout = timeout
        self._cache_seconds = cache_seconds
        self._http = http or requests.Session()
        self._lock = Lock()
        self._cached_subjects: list[Subject] | None = None
        self._cached_at: float = 0.0

    def list_subjects(self) -> list[Subject]:
        with self._lock:
            if (
                self._cached_subjects is not None
                and time.monotonic() - self._cached_at < self._cache_seconds
            ):
                return list(self._cached_subjects)

            try:
                data = self._fetch({"action": "subjects"})
                if not isinstance(data, list):
                    raise LoadError("Subject catalog response must be a list.")
                subjects = [_parse_subject(item) for item in data]
            except LoadError:
                if self._cached_subjects is not None:
                    logger.warning("Serving stale subject catalog after failed refresh")
                    return list(self._cached_subjects)
                raise

            self._cached_subjects = subjects
            self._cached_at = time.monotonic()
            return list(subjects)

    def get_questions(self, subject_id: str) -> list[Question]:
        data = self._fetch({"action": "questions", "subject": subject_id})
        if not isinstance(data, list):
            raise LoadError("Question response must be a list.")
        questions = [_parse_question_row(row) for row in data]

        try:
            subjects = self.list_subjects()
        except LoadError:
            subjects = []
        limit = next((s.question_count for s in subjects if s.id == subject_id), None)
        return self._select(questions, limit)

    def _fetch(self, params: dict[str, str]) -> Any:
        try:
            response = self._http.get(self._base_url, params=params, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise LoadError(f"Question bank request failed: {exc}") from exc
        except ValueError as exc:
            raise LoadError("Question bank returned invalid JSON.") from exc

        if not isinstance(payload, dict) or not payload.get("success"):
            error = payload.get("error") if isinstance(payload, dict) else None
            raise LoadError(error or "Question bank reported a failure.")
        return payload.get("data")


def _parse_subject(item: Any) -> Subject:
    try:
        subject = Subject(
            id=str(item["id"]),
            name=str(item["name"]),
            time_in_minutes=int(item.get("timeInMinutes", 0)),
            question_count=int(item["questionCount"]),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise LoadError(f"Malformed subject entry: {item!r}") from exc
    if subject.question_count <= 0:
        raise LoadError(f"Subject '{subject.id}' must have a positive questionCount.")
    return subject


def _parse_question_row(row: Any) -> Question:
    """Accept either an ``options`` list or ``option1..optionN`` columns."""
    try:
        if "options" in row:
            options = [str(option).strip() for option in row["options"]]
        else:
            options = []
            position = 1
            while row.get(f"option{position}") not in (None, ""):
                options.append(str(row[f"option{position}"]).strip())
                position += 1
        correct = int(row["correctAnswer"])
        explanation = row.get("explanation") or None
        prompt = str(row["question"]).strip()
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise LoadError(f"Malformed question row: {row!r}") from exc

    if not prompt or len(options) < 2 or not 0 <= correct < len(options):
        raise LoadError(f"Invalid question row: {row!r}")
    return Question(
        prompt=prompt,
        options=tuple(options),
        correct_option_index=correct,
        explanation=str(explanation) if explanation else None,
    )
