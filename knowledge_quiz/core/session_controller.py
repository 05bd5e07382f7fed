"""Session controller: the single owner of the active quiz attempt.

The controller ties together the question bank, the snapshot store and the
leaderboard. Presentation code calls its operations and subscribes to change
notifications; it never mutates a ``Session`` directly.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
import logging
from threading import RLock

from knowledge_quiz.constants.quiz_constants import TICK_INTERVAL_SECONDS
from knowledge_quiz.core.errors import InvalidOperation, LoadError, PersistenceError
from knowledge_quiz.core.models import (
    LeaderboardEntry,
    QuizResult,
    ReviewItem,
    Session,
    Subject,
)
from knowledge_quiz.core.services.countdown_timer import CountdownTimer
from knowledge_quiz.core.services.game_session import (
    GameSession,
    accuracy_percentage,
    new_session,
    score_message,
)
from knowledge_quiz.core.services.leaderboard import LeaderboardProvider, rank_of
from knowledge_quiz.core.services.question_bank import QuestionBankProvider
from knowledge_quiz.core.services.session_store import SessionStore
from knowledge_quiz.core.snapshots import dump_session, restore_session

logger = logging.getLogger(__name__)

Listener = Callable[[Session | None], None]


class SessionController:
    """Owns one player's active session, its countdown and its persistence.

    All mutations run under a re-entrant lock, so a timer tick and a
    user-driven mutation never interleave. Listeners are called synchronously,
    in registration order, after every mutation with a copy of the session.
    """

    def __init__(
        self,
        question_bank: QuestionBankProvider,
        store: SessionStore,
        leaderboard: LeaderboardProvider,
        tick_interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        self._lock = RLock()
        self._question_bank = question_bank
        self._store = store
        self._leaderboard = leaderboard
        self._listeners: list[Listener] = []
        self._player_name: str | None = None
        self._game: GameSession | None = None
        self._generation: int = 0
        self._timer = CountdownTimer(self._on_timer_tick, interval=tick_interval)

    # --- Player identity ---

    @property
    def player_name(self) -> str | None:
        with self._lock:
            return self._player_name

    def load_player_name(self) -> str | None:
        try:
            name = self._store.get_player_name()
        except PersistenceError as exc:
            logger.error("Unable to load player name: %s", exc)
            name = None
        with self._lock:
            self._player_name = name
        return name

    def save_player_name(self, player_name: str) -> str:
        cleaned = player_name.strip()
        if not cleaned:
            raise InvalidOperation("Player name must not be empty.")
        with self._lock:
            self._player_name = cleaned
        try:
            self._store.put_player_name(cleaned)
        except PersistenceError as exc:
            logger.error("Unable to persist player name: %s", exc)
        logger.info("Player set to %s", cleaned)
        return cleaned

    def clear_all_data(self) -> None:
        """Log the current player out and erase all their snapshots."""
        self._timer.stop()
        with self._lock:
            player = self._player_name
            self._generation += 1
            self._game = None
            self._player_name = None
            if player is not None:
                try:
                    self._store.delete_all(player)
                except PersistenceError as exc:
                    logger.error("Unable to delete snapshots for %s: %s", player, exc)
            try:
                self._store.delete_player_name()
            except PersistenceError as exc:
                logger.error("Unable to delete stored player name: %s", exc)
            logger.info("Cleared all data for %s", player)
            self._notify()

    # --- Catalog ---

    def list_subjects(self) -> list[Subject]:
        return self._question_bank.list_subjects()

    # --- Session lifecycle ---

    @property
    def session(self) -> Session | None:
        with self._lock:
            return self._game.state.copy() if self._game else None

    def start_quiz(self, subject_id: str) -> Session:
        """Load a fresh question set and begin a new attempt.

        Raises ``LoadError`` if the question bank cannot supply questions; in
        that case the current session is left untouched.
        """
        with self._lock:
            player = self._require_player()
            self._generation += 1
            generation = self._generation

        questions = self._question_bank.get_questions(subject_id)
        if not questions:
            raise LoadError(f"No questions available for '{subject_id}'.")

        with self._lock:
            if generation != self._generation or player != self._player_name:
                logger.info("Discarding superseded question load for %s", subject_id)
                raise LoadError(f"Loading '{subject_id}' was superseded by a newer request.")
            self._game = GameSession(new_session(subject_id, player, questions))
            logger.info(
                "Started %s for %s with %d questions", subject_id, player, len(questions)
            )
            self._persist()
            self._notify()
            return self._game.state.copy()

    def load_state(self, subject_id: str) -> Session | None:
        """Restore the persisted attempt for ``subject_id``, or ``None`` if there is none."""
        with self._lock:
            player = self._require_player()
            try:
                raw = self._store.get(subject_id, player)
            except PersistenceError as exc:
                logger.warning("Unable to read snapshot for %s/%s: %s", subject_id, player, exc)
                return None
            if raw is None:
                return None

            restored = restore_session(raw, subject_id, player)
            if restored is None:
                return None
            self._generation += 1
            self._game = GameSession(restored)
            logger.info("Restored %s for %s", subject_id, player)
            self._notify()
            return restored.copy()

    def enter_subject(self, subject_id: str) -> Session:
        """Resume an in-progress attempt, or start over when finished or absent."""
        restored = self.load_state(subject_id)
        if restored is not None and restored.quiz_completed:
            self.clear_state(subject_id)
            return self.start_quiz(subject_id)
        if restored is not None and restored.quiz_started:
            return restored
        return self.start_quiz(subject_id)

    def save_state(self, subject_id: str) -> bool:
        with self._lock:
            if self._game is None or self._game.state.subject_id != subject_id:
                logger.warning("No active session for %s to save", subject_id)
                return False
            return self._persist()

    def clear_state(self, subject_id: str) -> None:
        with self._lock:
            player = self._require_player()
            try:
                self._store.delete(subject_id, player)
            except PersistenceError as exc:
                logger.error("Unable to delete snapshot for %s/%s: %s", subject_id, player, exc)
            if self._game is not None and self._game.state.subject_id == subject_id:
                self._game = None
                self._notify()
            logger.info("Cleared %s for %s", subject_id, player)

    # --- Answering and navigation ---

    def select_answer(self, option_index: int) -> bool:
        with self._lock:
            game = self._require_game()
            try:
                game.select_answer(option_index)
            except InvalidOperation as exc:
                logger.warning("Rejected answer %s: %s", option_index, exc)
                return False
            self._persist()
            self._notify()
            return True

    def next_question(self) -> bool:
        """Advance one question; ``False`` means the caller should complete the quiz."""
        with self._lock:
            game = self._require_game()
            if game.state.quiz_completed:
                return False
            advanced = game.next_question()
            if advanced:
                self._persist()
                self._notify()
            return advanced

    def previous_question(self) -> bool:
        with self._lock:
            game = self._require_game()
            if game.state.quiz_completed:
                return False
            moved = game.previous_question()
            if moved:
                self._persist()
                self._notify()
            return moved

    def current_hint(self) -> str:
        with self._lock:
            return self._require_game().hint()

    # --- Completion and scoring ---

    def complete_quiz(self) -> int:
        """Freeze the session and submit its score once. Returns the score."""
        with self._lock:
            game = self._require_game()
            score = game.calculate_score()
            if not game.complete():
                return score

            session = game.state
            logger.info(
                "Completed %s for %s: %d/%d",
                session.subject_id,
                session.player_name,
                score,
                session.question_count,
            )
            self._persist()
            try:
                self._leaderboard.submit(session.subject_id, session.player_name, score)
            except PersistenceError:
                logger.exception("Unable to submit score for %s", session.player_name)
            self._notify()
            return score

    def calculate_score(self) -> int:
        with self._lock:
            return self._require_game().calculate_score()

    def get_leaderboard(self, subject_id: str | None = None) -> list[LeaderboardEntry]:
        with self._lock:
            if subject_id is None:
                subject_id = self._require_game().state.subject_id
        try:
            return self._leaderboard.list(subject_id)
        except PersistenceError as exc:
            logger.error("Unable to read leaderboard for %s: %s", subject_id, exc)
            return []

    def get_results(self) -> QuizResult:
        with self._lock:
            game = self._require_completed()
            session = game.state
            score = game.calculate_score()
        entries = self.get_leaderboard(session.subject_id)
        percentage = accuracy_percentage(score, session.question_count)
        return QuizResult(
            subject_id=session.subject_id,
            player_name=session.player_name,
            score=score,
            total_questions=session.question_count,
            accuracy_percentage=percentage,
            rank=rank_of(entries, session.player_name),
            message=score_message(percentage),
            leaderboard=entries,
        )

    def review(self) -> list[ReviewItem]:
        with self._lock:
            return self._require_completed().review()

    # --- Timer ---

    def tick(self) -> bool:
        """Consume one second of the active session.

        Returns ``False`` once there is nothing left to count down, which also
        ends a running ``CountdownTimer``.
        """
        with self._lock:
            if self._game is None or not self._game.state.is_running:
                return False
            if self._game.tick():
                logger.info("Time is up for %s", self._game.state.subject_id)
                self.complete_quiz()
                return False
            self._persist()
            self._notify()
            return True

    def start_timer(self) -> None:
        with self._lock:
            game = self._require_game()
            if not game.state.is_running:
                return
        self._timer.start()

    def stop_timer(self) -> None:
        # never called with the lock held: the tick thread may be waiting on it
        self._timer.stop()

    def is_timer_running(self) -> bool:
        return self._timer.is_running()

    @contextmanager
    def quiz_view(self) -> Iterator[SessionController]:
        """Scope in which the countdown runs; always stopped and saved on exit."""
        self.start_timer()
        try:
            yield self
        finally:
            self.stop_timer()
            with self._lock:
                if self._game is not None:
                    self._persist()

    def close(self) -> None:
        self.stop_timer()
        with self._lock:
            if self._game is not None:
                self._persist()
            self._listeners.clear()

    # --- Subscriptions ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # --- Internals ---

    def _on_timer_tick(self) -> bool:
        return self.tick()

    def _require_player(self) -> str:
        if not self._player_name:
            raise InvalidOperation("No player name has been set.")
        return self._player_name

    def _require_game(self) -> GameSession:
        if self._game is None:
            raise InvalidOperation("No active quiz session.")
        return self._game

    def _require_completed(self) -> GameSession:
        game = self._require_game()
        if not game.state.quiz_completed:
            raise InvalidOperation("The quiz has not been completed yet.")
        return game

    def _persist(self) -> bool:
        session = self._game.state
        try:
            self._store.put(session.subject_id, session.player_name, dump_session(session))
        except PersistenceError as exc:
            logger.error(
                "Unable to save snapshot for %s/%s: %s",
                session.subject_id,
                session.player_name,
                exc,
            )
            return False
        return True

    def _notify(self) -> None:
        snapshot = self._game.state.copy() if self._game else None
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener %r failed", listener)
