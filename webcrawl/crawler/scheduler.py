"""Bounded worker pool that runs fetch tasks until the work drains."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque

from .constants import WORKER_POLL_SECONDS
from .types import FetchTask


LOGGER = logging.getLogger(__name__)

TaskHandler = Callable[[FetchTask], None]


class Scheduler:
    """Run at most ``max_tasks`` tasks at once, FIFO, on worker threads.

    Tasks may push more tasks while they run; the pool only reports drained
    once nothing is pending and nothing is in flight. Exceptions raised by the
    handler are logged and counted, and the worker moves on.
    """

    def __init__(
        self,
        handler: TaskHandler,
        *,
        max_tasks: int,
        on_drain: Callable[[], None] | None = None,
        name: str = "crawler-worker",
    ) -> None:
        if max_tasks < 1:
            raise ValueError("max_tasks must be >= 1")

        self.handler = handler
        self.max_tasks = max_tasks
        self.on_drain = on_drain
        self.name = name

        self._cond = threading.Condition()
        self._pending: Deque[FetchTask] = deque()
        self._in_flight = 0
        self._max_in_flight = 0
        self._failed = 0
        self._completed = 0

        self._started = False
        self._cancelled = False
        self._closed = False
        self._drained = False
        self._workers: list[threading.Thread] = []

    def push(self, task: FetchTask) -> bool:
        """Queue one task. Returns False when the pool refuses new work."""

        with self._cond:
            if self._cancelled or self._closed:
                LOGGER.debug("Dropping task for %s: scheduler is not accepting work", task.url)
                return False
            self._pending.append(task)
            self._drained = False
            self._cond.notify()
        return True

    def start(self) -> None:
        with self._cond:
            if self._started:
                raise RuntimeError("Scheduler already started")
            self._started = True
            if not self._pending:
                self._mark_drained_locked()

        self._workers = [
            threading.Thread(
                target=self._worker,
                name=f"{self.name}-{idx}",
                daemon=True,
            )
            for idx in range(self.max_tasks)
        ]
        for worker in self._workers:
            worker.start()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until drained. Returns False if ``timeout`` elapsed first."""

        with self._cond:
            if not self._started:
                raise RuntimeError("Scheduler not started")
            return self._cond.wait_for(lambda: self._drained, timeout=timeout)

    def cancel(self) -> int:
        """Stop scheduling: drop pending tasks, let in-flight ones finish.

        Returns the number of tasks dropped.
        """

        with self._cond:
            self._cancelled = True
            dropped = len(self._pending)
            self._pending.clear()
            if self._in_flight == 0:
                self._mark_drained_locked()
            self._cond.notify_all()

        if dropped:
            LOGGER.info("Cancelled crawl, dropped %d pending task(s)", dropped)
        return dropped

    def close(self, timeout: float = 5.0) -> None:
        """Stop workers once current tasks finish."""

        with self._cond:
            self._closed = True
            self._cond.notify_all()

        for worker in self._workers:
            if worker is not threading.current_thread():
                worker.join(timeout=timeout)

    @property
    def drained(self) -> bool:
        with self._cond:
            return self._drained

    @property
    def cancelled(self) -> bool:
        with self._cond:
            return self._cancelled

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._pending)

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._in_flight

    def snapshot(self) -> dict[str, int | bool]:
        """Return pool counters for logs/stats reporting."""

        with self._cond:
            return {
                "pending": len(self._pending),
                "in_flight": self._in_flight,
                "max_in_flight": self._max_in_flight,
                "completed": self._completed,
                "failed": self._failed,
                "cancelled": self._cancelled,
                "drained": self._drained,
            }

    def _worker(self) -> None:
        while True:
            with self._cond:
                while not self._pending and not self._closed:
                    self._cond.wait(timeout=WORKER_POLL_SECONDS)
                if self._closed and not self._pending:
                    return
                task = self._pending.popleft()
                self._in_flight += 1
                self._max_in_flight = max(self._max_in_flight, self._in_flight)

            try:
                self.handler(task)
            except Exception:
                LOGGER.exception("Task for %s failed", task.url)
                with self._cond:
                    self._failed += 1
            finally:
                with self._cond:
                    self._in_flight -= 1
                    self._completed += 1
                    if not self._pending and self._in_flight == 0:
                        self._mark_drained_locked()

    def _mark_drained_locked(self) -> None:
        if self._drained:
            return
        self._drained = True
        self._cond.notify_all()
        LOGGER.info("all tasks done")
        if self.on_drain is not None:
            try:
                self.on_drain()
            except Exception:
                LOGGER.exception("Drain callback failed")


__all__ = ["Scheduler", "TaskHandler"]
