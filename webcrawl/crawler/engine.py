"""Crawl engine: per-URL fetch state machine and crawl lifecycle."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable

import requests

from .config import CrawlConfig
from .extractor import LinkExtractor
from .frontier import EnqueueStatus, Frontier
from .hooks import ErrorObserver, FetchObserver, HookRegistry, ProxyHook, UserAgentHook
from .scheduler import Scheduler
from .stats import StatsCollector
from .transport import RequestsTransport, Transport
from .types import (
    FetchRequest,
    FetchResult,
    FetchTask,
    HookError,
    ObserverKind,
    RequestHookKind,
    TransportError,
)
from .url import HostFilter, canonical_url, is_redirect, url_join


LOGGER = logging.getLogger(__name__)

RETRYABLE_ERRORS = (TransportError, HookError, requests.RequestException)


class Crawler:
    """Crawl everything reachable from ``config.roots`` inside the allowed hosts.

    Lifecycle:
    - ``start()`` seeds the frontier with the roots and starts the workers.
    - Each task runs ``fetch``: request hooks, request, retries, then either
      follow a redirect or extract links and enqueue the unseen ones.
    - The crawl ends when the frontier drains; ``wait()`` blocks until then.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        transport: Transport | None = None,
        hooks: HookRegistry | None = None,
        stats: StatsCollector | None = None,
        user_agent_hook: UserAgentHook | None = None,
        proxy_hook: ProxyHook | None = None,
        fetch_observer: FetchObserver | None = None,
        error_observer: ErrorObserver | None = None,
    ) -> None:
        self.config = config
        self.host_filter = HostFilter(
            config.roots,
            strict=config.strict,
            exclude=config.exclude,
        )

        self.hooks = hooks or HookRegistry(completion_timeout_seconds=config.timeout_seconds)
        if user_agent_hook is not None:
            self.hooks.register_request_hook(RequestHookKind.AGENT, user_agent_hook)
        if proxy_hook is not None:
            self.hooks.register_request_hook(RequestHookKind.PROXY, proxy_hook)
        if fetch_observer is not None:
            self.hooks.register_observer(ObserverKind.FETCH, fetch_observer)
        if error_observer is not None:
            self.hooks.register_observer(ObserverKind.ERROR, error_observer)

        self.stats = stats or StatsCollector()
        self.transport: Transport = transport or RequestsTransport(
            timeout_seconds=config.timeout_seconds,
        )
        self._owns_transport = transport is None

        self.extractor = LinkExtractor(self.host_filter.url_allowed)
        self.scheduler = Scheduler(
            self._run_task,
            max_tasks=config.max_tasks,
            on_drain=self._on_drain,
        )
        self.frontier = Frontier(self.scheduler.push, max_redirect=config.max_redirect)

        self._started = False

    @classmethod
    def from_roots(
        cls,
        roots: Iterable[str],
        *,
        transport: Transport | None = None,
        **config_kwargs: Any,
    ) -> "Crawler":
        return cls(CrawlConfig(roots=tuple(roots), **config_kwargs), transport=transport)

    # Host filter

    def host_okay(self, host: str | None) -> bool:
        return self.host_filter.host_okay(host)

    def url_allowed(self, url: str) -> bool:
        return self.host_filter.url_allowed(url)

    # Hook registration

    def on(self, kind: ObserverKind | str, handler: Callable[..., Any]) -> "Crawler":
        """Register the ``fetch`` (url, body) or ``error`` (url, error) observer.

        The handler is done when it returns (or, for coroutine handlers, when
        the coroutine completes).
        """

        self.hooks.register_observer(kind, handler)
        return self

    def use(self, kind: RequestHookKind | str, handler: Callable[..., Any]) -> "Crawler":
        """Register the ``agent`` (-> User-Agent) or ``proxy`` (-> host/port) hook."""

        self.hooks.register_request_hook(kind, handler)
        return self

    # Frontier

    def add_url(self, url: str, remaining_redirects: int | None = None) -> None:
        self.frontier.add_url(url, remaining_redirects)

    # Lifecycle

    def start(self) -> None:
        """Seed the roots and start the worker pool. Does not block."""

        if self._started:
            raise RuntimeError("Crawler already started")
        self._started = True

        LOGGER.info(
            "Starting crawl: roots=%d, strict=%s, max_tasks=%d, max_tries=%d, max_redirect=%d",
            len(self.config.roots),
            self.config.strict,
            self.config.max_tasks,
            self.config.max_tries,
            self.config.max_redirect,
        )

        for root in self.config.roots:
            url = canonical_url(root)
            if not self.url_allowed(url):
                LOGGER.warning("Skipping root %s: not an allowed http(s) URL", root)
                self.stats.record_filtered()
                continue
            self.stats.record_enqueue(self.frontier.add_if_unseen(url))

        self.scheduler.start()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the crawl drains. False if ``timeout`` expired first."""

        return self.scheduler.wait(timeout=timeout)

    def run(self) -> dict[str, Any]:
        """Start, wait for the drain, release resources, and return the summary."""

        try:
            self.start()
            self.wait()
        finally:
            self.close()
        return self.summary()

    def cancel(self) -> int:
        """Stop scheduling new fetches; in-flight fetches finish normally."""

        return self.scheduler.cancel()

    def close(self) -> None:
        self.scheduler.close()
        if self._owns_transport:
            self.transport.close()

    def summary(self) -> dict[str, Any]:
        self.stats.record_frontier_snapshot(self.frontier.snapshot())
        self.stats.record_scheduler_snapshot(self.scheduler.snapshot())
        return self.stats.to_json()

    def __enter__(self) -> "Crawler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.cancel()
        self.close()

    # Fetch state machine

    def fetch(self, url: str, remaining_redirects: int) -> None:
        """Fetch one URL, then follow its redirect or harvest its links."""

        result = self._request_with_retries(url)
        if result is None:
            return

        try:
            if is_redirect(result.status_code):
                self._follow_redirect(url, result, remaining_redirects)
            else:
                self._harvest_links(url, result)
        finally:
            result.close()

    def _build_request(self, url: str) -> FetchRequest:
        headers: dict[str, str] = {}
        if self.config.user_agent:
            headers["User-Agent"] = self.config.user_agent

        user_agent = self.hooks.user_agent()
        if user_agent:
            headers["User-Agent"] = user_agent

        return FetchRequest(url=url, headers=headers, proxy=self.hooks.proxy())

    def _request_with_retries(self, url: str) -> FetchResult | None:
        max_tries = self.config.max_tries
        tries = 0

        while tries < max_tries:
            try:
                request = self._build_request(url)
                LOGGER.debug("GET %s (attempt %d/%d)", url, tries + 1, max_tries)
                result = self.transport.send(request)
            except RETRYABLE_ERRORS as exc:
                tries += 1
                if isinstance(exc, HookError):
                    self.stats.record_hook_error()
                self.stats.record_request_error(exc)
                LOGGER.debug("Attempt %d/%d for %s failed: %s", tries, max_tries, url, exc)
                self._report_error(url, exc)

                backoff = self.config.retry_backoff_seconds
                if tries < max_tries and backoff > 0:
                    time.sleep(backoff * tries)
                continue

            self.stats.record_response(result.status_code)
            return result

        LOGGER.warning("Giving up on %s after %d attempt(s)", url, tries)
        self.stats.record_abandoned()
        return None

    def _follow_redirect(self, url: str, result: FetchResult, remaining_redirects: int) -> None:
        location = result.location
        if not location:
            LOGGER.warning("Redirect %d from %s has no Location header", result.status_code, url)
            return

        next_url = canonical_url(url_join(url, location))
        if self.frontier.is_seen(next_url):
            LOGGER.debug("Redirect target %s from %s already seen", next_url, url)
            self.stats.record_enqueue(EnqueueStatus.SKIPPED_SEEN)
            return

        if not self.url_allowed(next_url):
            LOGGER.info("Redirect target %s from %s is outside the crawl", next_url, url)
            self.stats.record_filtered()
            return

        if remaining_redirects > 0:
            status = self.frontier.add_if_unseen(next_url, remaining_redirects - 1)
            self.stats.record_enqueue(status)
            if status.accepted:
                self.stats.record_redirect(followed=True)
        else:
            LOGGER.warning("redirect limit reached for %s from %s", next_url, url)
            self.stats.record_redirect(followed=False)

    def _harvest_links(self, url: str, result: FetchResult) -> None:
        if not self.extractor.is_extractable(result):
            LOGGER.debug(
                "Not scanning %s: status=%s content-type=%r",
                url,
                result.status_code,
                result.content_type,
            )
            return

        try:
            body = self.extractor.read_text(result)
        except TransportError as exc:
            self.stats.record_request_error(exc)
            LOGGER.warning("Failed reading body of %s: %s", url, exc)
            self._report_error(url, exc)
            return

        try:
            self.hooks.notify_fetch(url, body)
        except HookError as exc:
            self.stats.record_hook_error()
            LOGGER.warning("Fetch observer failed for %s: %s", url, exc)
            self._report_error(url, exc)
            return

        links = self.extractor.extract(body, result.final_url)
        self.stats.record_page(len(links))
        for link in links:
            self.stats.record_enqueue(self.frontier.add_if_unseen(link))

    def _report_error(self, url: str, error: BaseException) -> None:
        try:
            self.hooks.notify_error(url, error)
        except HookError as exc:
            self.stats.record_hook_error()
            LOGGER.warning("Error observer failed for %s: %s", url, exc)

    def _run_task(self, task: FetchTask) -> None:
        try:
            self.fetch(task.url, task.remaining_redirects)
        except Exception:
            self.stats.record_task_error()
            raise

    def _on_drain(self) -> None:
        self.stats.finish()


__all__ = ["Crawler", "RETRYABLE_ERRORS"]
