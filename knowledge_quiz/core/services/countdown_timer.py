"""Cancellable repeating tick task backing the quiz countdown."""

from __future__ import annotations

from collections.abc import Callable
import logging
from threading import Event, Lock, Thread, current_thread

from knowledge_quiz.constants.quiz_constants import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class CountdownTimer:
    """Calls ``on_tick`` every ``interval`` seconds on a daemon thread.

    ``on_tick`` returns ``False`` to end the countdown from inside a tick.
    ``stop()`` is safe to call from any thread, including the tick thread
    itself, and no tick starts after ``stop()`` returns.
    """

    def __init__(
        self,
        on_tick: Callable[[], bool],
        interval: float = TICK_INTERVAL_SECONDS,
        name: str = "QuizCountdown",
    ) -> None:
        self._on_tick = on_tick
        self._interval = interval
        self._name = name
        self._lock = Lock()
        self._stop_event = Event()
        self._thread: Thread | None = None

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and not self._stop_event.is_set():
                return
            self._stop_event = Event()
            self._thread = Thread(
                target=self._run,
                args=(self._stop_event,),
                name=self._name,
                daemon=True,
            )
            self._thread.start()
        logger.debug("Countdown started (interval=%ss)", self._interval)

    def stop(self) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()
        if thread is not None and thread is not current_thread():
            thread.join()
            logger.debug("Countdown stopped")

    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and not self._stop_event.is_set()

    def __enter__(self) -> CountdownTimer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _run(self, stop_event: Event) -> None:
        while not stop_event.wait(self._interval):
            try:
                keep_going = self._on_tick()
            except Exception:
                logger.exception("Countdown tick failed; stopping timer")
                keep_going = False
            if not keep_going:
                stop_event.set()
                break
