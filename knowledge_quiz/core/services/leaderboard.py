"""Service for recording and ranking finished quiz attempts per subject."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from threading import Lock
from urllib.parse import quote

from knowledge_quiz.core.errors import PersistenceError
from knowledge_quiz.core.models import LeaderboardEntry

logger = logging.getLogger(__name__)


def _ranking_key(entry: LeaderboardEntry) -> tuple[int, int]:
    # highest score first, earliest submission wins ties
    return (-entry.score, entry.sequence)


def rank_entries(entries: list[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Return entries sorted by score descending, then submission order."""
    return sorted(entries, key=_ranking_key)


def rank_of(entries: list[LeaderboardEntry], player_name: str) -> int | None:
    """1-based position of the player's best entry in a ranked list."""
    for position, entry in enumerate(entries, start=1):
        if entry.player_name == player_name:
            return position
    return None


class LeaderboardProvider(ABC):
    """Stores ranked score entries per subject."""

    @abstractmethod
    def submit(self, subject_id: str, player_name: str, score: int) -> LeaderboardEntry:
        """Append a new entry and return it."""

    @abstractmethod
    def list(self, subject_id: str) -> list[LeaderboardEntry]:
        """Return all entries for the subject in ranked order."""


class InMemoryLeaderboard(LeaderboardProvider):
    """Tracks leaderboard entries for the lifetime of the process."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: dict[str, list[LeaderboardEntry]] = {}
        self._sequence: int = 0

    def submit(self, subject_id: str, player_name: str, score: int) -> LeaderboardEntry:
        with self._lock:
            self._sequence += 1
            entry = LeaderboardEntry(
                player_name=player_name,
                score=score,
                submitted_at=datetime.now(timezone.utc),
                sequence=self._sequence,
            )
            self._entries.setdefault(subject_id, []).append(entry)
            return entry

    def list(self, subject_id: str) -> list[LeaderboardEntry]:
        with self._lock:
            return rank_entries(self._entries.get(subject_id, []))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class JsonFileLeaderboard(LeaderboardProvider):
    """Keeps one JSON document per subject under ``<root>/leaderboards/``."""

    def __init__(self, root: Path) -> None:
        self._dir = root / "leaderboards"
        self._lock = Lock()

    def submit(self, subject_id: str, player_name: str, score: int) -> LeaderboardEntry:
        path = self._path(subject_id)
        with self._lock:
            entries = self._read(path)
            next_sequence = max((entry.sequence for entry in entries), default=0) + 1
            entry = LeaderboardEntry(
                player_name=player_name,
                score=score,
                submitted_at=datetime.now(timezone.utc),
                sequence=next_sequence,
            )
            entries.append(entry)
            self._write(path, entries)
            return entry

    def list(self, subject_id: str) -> list[LeaderboardEntry]:
        with self._lock:
            return rank_entries(self._read(self._path(subject_id)))

    def _path(self, subject_id: str) -> Path:
        name = quote(subject_id, safe="").replace(".", "%2E")
        return self._dir / f"{name}.json"

    @staticmethod
    def _read(path: Path) -> list[LeaderboardEntry]:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Unable to read leaderboard {path}: {exc}") from exc
        if not isinstance(raw, list):
            raise PersistenceError(f"Leaderboard {path} must contain a list.")

        entries: list[LeaderboardEntry] = []
        for item in raw:
            try:
                entries.append(
                    LeaderboardEntry(
                        player_name=str(item["player_name"]),
                        score=int(item["score"]),
                        submitted_at=datetime.fromisoformat(item["submitted_at"]),
                        sequence=int(item["sequence"]),
                    )
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed leaderboard row in %s: %r", path, item)
        return entries

    @staticmethod
    def _write(path: Path, entries: list[LeaderboardEntry]) -> None:
        document = [
            {
                "player_name": entry.player_name,
                "score": entry.score,
                "submitted_at": entry.submitted_at.isoformat(),
                "sequence": entry.sequence,
            }
            for entry in entries
        ]
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Unable to write leaderboard {path}: {exc}") from exc
