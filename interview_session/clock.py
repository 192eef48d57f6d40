"""Per-session countdown driver.

One daemon thread per candidate ticks the store every ``TICK_SECONDS`` while
the session is ``running``. Leaving ``running`` stops the thread outright and
re-entering starts a fresh one. Expiry callbacks run on the clock thread and
must hand long work (scoring, question generation) to a worker.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from .models import Answer, InterviewState
from .store import SessionStore

logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0

ExpiryHandler = Callable[[str, Answer], None]


class InterviewClock:
    def __init__(
        self,
        store: SessionStore,
        on_expire: Optional[ExpiryHandler] = None,
        *,
        interval: Optional[float] = None,
    ) -> None:
        self._store = store
        self._on_expire = on_expire
        self._interval = interval
        self._threads: Dict[str, Tuple[threading.Thread, threading.Event]] = {}
        self._guard = threading.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self) -> None:
        """Follow store changes so stage transitions start and stop the clock."""

        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.stop_all()

    def set_expiry_handler(self, handler: Optional[ExpiryHandler]) -> None:
        self._on_expire = handler

    def _on_change(self, candidate_id: str, snapshot: Optional[InterviewState]) -> None:
        if snapshot is not None and snapshot.stage == "running":
            self.start(candidate_id)
        else:
            self.stop(candidate_id)

    def sync(self, candidate_id: str) -> None:
        self._on_change(candidate_id, self._store.get(candidate_id))

    def is_running(self, candidate_id: str) -> bool:
        with self._guard:
            entry = self._threads.get(candidate_id)
        return entry is not None and entry[0].is_alive() and not entry[1].is_set()

    def start(self, candidate_id: str) -> None:
        with self._guard:
            entry = self._threads.get(candidate_id)
            if entry is not None and entry[0].is_alive() and not entry[1].is_set():
                return
            stop = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(candidate_id, stop),
                name=f"interview-clock-{candidate_id}",
                daemon=True,
            )
            self._threads[candidate_id] = (thread, stop)
        logger.debug("Clock started for %s", candidate_id)
        thread.start()

    def stop(self, candidate_id: str) -> None:
        with self._guard:
            entry = self._threads.pop(candidate_id, None)
        if entry is not None:
            entry[1].set()
            logger.debug("Clock stopped for %s", candidate_id)

    def stop_all(self) -> None:
        with self._guard:
            entries = list(self._threads.values())
            self._threads.clear()
        for _, stop in entries:
            stop.set()

    def _run(self, candidate_id: str, stop: threading.Event) -> None:
        interval = self._interval if self._interval is not None else TICK_SECONDS
        try:
            while not stop.wait(interval):
                result = self._store.tick(candidate_id)
                if result is None or result.state.stage != "running":
                    break
                if result.expired_answer is not None and self._on_expire is not None:
                    try:
                        self._on_expire(candidate_id, result.expired_answer)
                    except Exception:  # noqa: BLE001
                        logger.exception("Expiry handler failed for %s", candidate_id)
        finally:
            with self._guard:
                entry = self._threads.get(candidate_id)
                if entry is not None and entry[1] is stop:
                    self._threads.pop(candidate_id, None)


__all__ = ["ExpiryHandler", "InterviewClock", "TICK_SECONDS"]
