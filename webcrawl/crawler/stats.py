"""Thread-safe crawl statistics aggregation."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
import threading
from typing import Any, Mapping

from .frontier import EnqueueStatus
from .types import CrawlStats


class StatsCollector:
    """Collect and summarize crawler runtime statistics.

    The collector is thread-safe and shared by all fetch workers.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()

        self._status_code_counts: dict[str, int] = defaultdict(int)
        self._error_type_counts: dict[str, int] = defaultdict(int)
        self._frontier_snapshot: dict[str, int] = {}
        self._scheduler_snapshot: dict[str, int | bool] = {}
        self._custom_counters: dict[str, int] = defaultdict(int)

    def record_enqueue(self, status: EnqueueStatus) -> None:
        with self._lock:
            if status is EnqueueStatus.ENQUEUED:
                self._core.enqueued += 1
            elif status is EnqueueStatus.SKIPPED_CLOSED:
                self._core.skipped_closed += 1
            else:
                self._core.skipped_seen += 1

    def record_filtered(self, count: int = 1) -> None:
        if count <= 0:
            return
        with self._lock:
            self._core.skipped_filtered += count

    def record_response(self, status_code: int) -> None:
        with self._lock:
            self._core.requests_ok += 1
            self._status_code_counts[str(status_code)] += 1

    def record_request_error(self, error: BaseException) -> None:
        cause = getattr(error, "cause", None)
        err_type = (cause if isinstance(cause, BaseException) else error).__class__.__name__
        with self._lock:
            self._core.request_errors += 1
            self._error_type_counts[err_type] += 1

    def record_abandoned(self) -> None:
        with self._lock:
            self._core.abandoned += 1

    def record_redirect(self, followed: bool) -> None:
        with self._lock:
            if followed:
                self._core.redirects_followed += 1
            else:
                self._core.redirect_limit_reached += 1

    def record_page(self, links_found: int) -> None:
        with self._lock:
            self._core.pages_parsed += 1
            self._core.links_found += links_found

    def record_hook_error(self) -> None:
        with self._lock:
            self._core.hook_errors += 1

    def record_task_error(self) -> None:
        with self._lock:
            self._core.task_errors += 1

    def record_frontier_snapshot(self, snapshot: Mapping[str, int]) -> None:
        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def record_scheduler_snapshot(self, snapshot: Mapping[str, int | bool]) -> None:
        with self._lock:
            self._scheduler_snapshot = dict(snapshot)

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a custom counter for ad-hoc instrumentation."""

        if not name or value == 0:
            return
        with self._lock:
            self._custom_counters[name] += value

    def finish(self) -> None:
        """Mark crawl as finished."""

        with self._lock:
            self._core.finish()

    @property
    def finished(self) -> bool:
        with self._lock:
            return self._core.finished_at is not None

    def get(self, name: str) -> int:
        """Read one core or custom counter by name."""

        with self._lock:
            if hasattr(self._core, name):
                value = getattr(self._core, name)
                if isinstance(value, int):
                    return value
            return self._custom_counters.get(name, 0)

    def to_json(self) -> dict[str, Any]:
        with self._lock:
            payload: dict[str, Any] = self._core.to_json()
            payload["duration_seconds"] = self._duration_seconds(
                self._core.started_at,
                self._core.finished_at,
            )
            payload["status_code_counts"] = dict(sorted(self._status_code_counts.items()))
            payload["error_type_counts"] = dict(sorted(self._error_type_counts.items()))
            payload["frontier"] = dict(self._frontier_snapshot)
            payload["scheduler"] = dict(self._scheduler_snapshot)
            payload["custom"] = dict(sorted(self._custom_counters.items()))
            return payload

    @staticmethod
    def _duration_seconds(started_at: str, finished_at: str | None) -> float | None:
        if not finished_at:
            return None
        try:
            started = datetime.fromisoformat(started_at)
            finished = datetime.fromisoformat(finished_at)
        except ValueError:
            return None
        return max(0.0, (finished - started).total_seconds())


__all__ = ["StatsCollector"]
