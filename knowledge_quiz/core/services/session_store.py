"""Durable storage for session snapshots and the player identity."""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
from pathlib import Path
from threading import Lock
from urllib.parse import quote

from knowledge_quiz.core.errors import PersistenceError

logger = logging.getLogger(__name__)

_PLAYER_FILE_NAME = "player.json"
_SESSIONS_DIR_NAME = "sessions"
_SNAPSHOT_SUFFIX = ".json"


class SessionStore(ABC):
    """Key-value store of serialized snapshots keyed by (subject_id, player_name)."""

    @abstractmethod
    def get(self, subject_id: str, player_name: str) -> str | None:
        """Return the stored snapshot, or ``None`` when absent."""

    @abstractmethod
    def put(self, subject_id: str, player_name: str, snapshot: str) -> None:
        """Store ``snapshot``, replacing any previous value."""

    @abstractmethod
    def delete(self, subject_id: str, player_name: str) -> None:
        """Remove one snapshot. Missing keys are ignored."""

    @abstractmethod
    def delete_all(self, player_name: str) -> None:
        """Remove every snapshot belonging to ``player_name``."""

    @abstractmethod
    def get_player_name(self) -> str | None:
        ...

    @abstractmethod
    def put_player_name(self, player_name: str) -> None:
        ...

    @abstractmethod
    def delete_player_name(self) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """Process-local store, mainly for tests and ephemeral runs."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._snapshots: dict[tuple[str, str], str] = {}
        self._player_name: str | None = None

    def get(self, subject_id: str, player_name: str) -> str | None:
        with self._lock:
            return self._snapshots.get((subject_id, player_name))

    def put(self, subject_id: str, player_name: str, snapshot: str) -> None:
        with self._lock:
            self._snapshots[(subject_id, player_name)] = snapshot

    def delete(self, subject_id: str, player_name: str) -> None:
        with self._lock:
            self._snapshots.pop((subject_id, player_name), None)

    def delete_all(self, player_name: str) -> None:
        with self._lock:
            for key in [key for key in self._snapshots if key[1] == player_name]:
                del self._snapshots[key]

    def get_player_name(self) -> str | None:
        with self._lock:
            return self._player_name

    def put_player_name(self, player_name: str) -> None:
        with self._lock:
            self._player_name = player_name

    def delete_player_name(self) -> None:
        with self._lock:
            self._player_name = None


class JsonFileSessionStore(SessionStore):
    """Stores each snapshot as a JSON file under ``<root>/sessions/<player>/``.

    Writes go through a temporary file and an atomic rename.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._lock = Lock()

    @property
    def root(self) -> Path:
        return self._root

    def get(self, subject_id: str, player_name: str) -> str | None:
        path = self._snapshot_path(subject_id, player_name)
        with self._lock:
            try:
                return path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except UnicodeDecodeError as exc:
                raise PersistenceError(f"Snapshot {path} is not valid UTF-8: {exc}") from exc
            except OSError as exc:
                raise PersistenceError(f"Unable to read snapshot {path}: {exc}") from exc

    def put(self, subject_id: str, player_name: str, snapshot: str) -> None:
        path = self._snapshot_path(subject_id, player_name)
        with self._lock:
            self._write_atomic(path, snapshot)

    def delete(self, subject_id: str, player_name: str) -> None:
        path = self._snapshot_path(subject_id, player_name)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise PersistenceError(f"Unable to delete snapshot {path}: {exc}") from exc

    def delete_all(self, player_name: str) -> None:
        player_dir = self._player_dir(player_name)
        with self._lock:
            if not player_dir.exists():
                return
            try:
                for path in player_dir.iterdir():
                    path.unlink(missing_ok=True)
                player_dir.rmdir()
            except OSError as exc:
                raise PersistenceError(
                    f"Unable to delete snapshots in {player_dir}: {exc}"
                ) from exc

    def get_player_name(self) -> str | None:
        path = self._root / _PLAYER_FILE_NAME
        with self._lock:
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError:
                return None
            except (json.JSONDecodeError, UnicodeDecodeError):
                logger.warning("Ignoring unreadable player file %s", path)
                return None
            except OSError as exc:
                raise PersistenceError(f"Unable to read {path}: {exc}") from exc
        name = payload.get("player_name") if isinstance(payload, dict) else None
        return name if isinstance(name, str) and name else None

    def put_player_name(self, player_name: str) -> None:
        path = self._root / _PLAYER_FILE_NAME
        with self._lock:
            self._write_atomic(path, json.dumps({"player_name": player_name}))

    def delete_player_name(self) -> None:
        path = self._root / _PLAYER_FILE_NAME
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise PersistenceError(f"Unable to delete {path}: {exc}") from exc

    def _player_dir(self, player_name: str) -> Path:
        return self._root / _SESSIONS_DIR_NAME / _file_safe(player_name)

    def _snapshot_path(self, subject_id: str, player_name: str) -> Path:
        return self._player_dir(player_name) / f"{_file_safe(subject_id)}{_SNAPSHOT_SUFFIX}"

    @staticmethod
    def _write_atomic(path: Path, content: str) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(content, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Unable to write {path}: {exc}") from exc


def _file_safe(value: str) -> str:
    # "." is left alone by quote(); escape it so ".." can never name a parent
    return quote(value, safe="").replace(".", "%2E")
