"""Seen-set and frontier: every URL is enqueued at most once per crawl."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable

from .types import FetchTask


LOGGER = logging.getLogger(__name__)

PushTask = Callable[[FetchTask], object]


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_CLOSED = "skipped_closed"

    @property
    def accepted(self) -> bool:
        return self is EnqueueStatus.ENQUEUED


class Frontier:
    """Seen-set plus hand-off to the scheduler.

    - URLs are recorded as seen when they are enqueued, never removed.
    - ``add_if_unseen`` does the membership test, the record, and the push
      under one lock, so two workers discovering the same link cannot both
      enqueue it.
    - A push the scheduler refuses (after cancel) is reported as
      ``SKIPPED_CLOSED``; the URL stays seen.
    """

    def __init__(self, push: PushTask, *, max_redirect: int) -> None:
        self._push = push
        self.max_redirect = max_redirect

        self._lock = threading.Lock()
        self._seen_urls: set[str] = set()

        self._enqueued_count = 0
        self._skipped_seen_count = 0
        self._skipped_closed_count = 0

    def add_url(self, url: str, remaining_redirects: int | None = None) -> EnqueueStatus:
        """Record ``url`` as seen and schedule a fetch for it.

        Callers check ``url_allowed`` and non-membership first; this does not
        re-validate. ``None`` gives the URL a fresh redirect budget.
        """

        if remaining_redirects is None:
            remaining_redirects = self.max_redirect

        with self._lock:
            return self._record_locked(url, remaining_redirects)

    def add_if_unseen(self, url: str, remaining_redirects: int | None = None) -> EnqueueStatus:
        """Atomically enqueue ``url`` unless it was seen before."""

        if remaining_redirects is None:
            remaining_redirects = self.max_redirect

        with self._lock:
            if url in self._seen_urls:
                self._skipped_seen_count += 1
                return EnqueueStatus.SKIPPED_SEEN
            return self._record_locked(url, remaining_redirects)

    def is_seen(self, url: str) -> bool:
        with self._lock:
            return url in self._seen_urls

    def seen_urls(self) -> set[str]:
        """Return snapshot of seen URLs."""

        with self._lock:
            return set(self._seen_urls)

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen_urls)

    def snapshot(self) -> dict[str, int]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            return {
                "seen_urls": len(self._seen_urls),
                "enqueued": self._enqueued_count,
                "skipped_seen": self._skipped_seen_count,
                "skipped_closed": self._skipped_closed_count,
            }

    def _record_locked(self, url: str, remaining_redirects: int) -> EnqueueStatus:
        self._seen_urls.add(url)
        if self._push(FetchTask(url=url, remaining_redirects=remaining_redirects)) is False:
            self._skipped_closed_count += 1
            LOGGER.debug("Scheduler closed; dropped %s", url)
            return EnqueueStatus.SKIPPED_CLOSED
        self._enqueued_count += 1
        LOGGER.debug("Enqueue %s (redirect budget %d)", url, remaining_redirects)
        return EnqueueStatus.ENQUEUED


__all__ = ["EnqueueStatus", "Frontier", "PushTask"]
