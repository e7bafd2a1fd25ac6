"""Hook registry: request interceptors and event observers.

Each kind has a single slot and the last registration wins. Hooks may be
plain callables or coroutine functions; an awaitable result is driven to
completion on the calling worker thread, so a slow hook only holds up the
task that invoked it.

Two handler forms are accepted:

- return form: ``agent() -> ua``, ``proxy() -> proxy``, ``fetch(url, body)``,
  ``error(url, err)``. Returning (or the coroutine finishing) means done.
- callback form: one extra trailing positional parameter receives a
  completion callable, as in ``agent(set_user_agent)``,
  ``proxy(set_proxy)``, ``fetch(url, body, done)``, ``error(url, err, done)``.
  The task waits until the callable is invoked, possibly from another
  thread, and uses the value it was given.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from typing import Any, Callable, Protocol

from .constants import HOOK_COMPLETION_TIMEOUT_SECONDS
from .types import HookError, ObserverKind, ProxySettings, RequestHookKind


LOGGER = logging.getLogger(__name__)


class UserAgentHook(Protocol):
    def __call__(self) -> Any:
        ...


class ProxyHook(Protocol):
    def __call__(self) -> Any:
        ...


class FetchObserver(Protocol):
    def __call__(self, url: str, body: str) -> Any:
        ...


class ErrorObserver(Protocol):
    def __call__(self, url: str, error: BaseException) -> Any:
        ...


async def _await(awaitable: Any) -> Any:
    return await awaitable


def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return asyncio.run(_await(value))
    return value


_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def takes_completion(hook: Callable[..., Any], arg_count: int) -> bool:
    """True when ``hook`` requires one more positional argument than it is given."""

    try:
        signature = inspect.signature(hook)
    except (TypeError, ValueError):
        return False
    required = [
        param
        for param in signature.parameters.values()
        if param.kind in _POSITIONAL_KINDS and param.default is inspect.Parameter.empty
    ]
    return len(required) > arg_count


class Completion:
    """One-shot callable handed to callback-form hooks.

    The first call wins; later calls are ignored.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self.value: Any = None

    def __call__(self, value: Any = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self.value = value
            self._event.set()

    @property
    def done(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


def _coerce_request_kind(kind: RequestHookKind | str) -> RequestHookKind:
    try:
        return RequestHookKind(kind)
    except ValueError:
        raise ValueError(
            f"Unknown request hook {kind!r}; expected one of "
            f"{[item.value for item in RequestHookKind]}"
        ) from None


def _coerce_observer_kind(kind: ObserverKind | str) -> ObserverKind:
    try:
        return ObserverKind(kind)
    except ValueError:
        raise ValueError(
            f"Unknown observer {kind!r}; expected one of "
            f"{[item.value for item in ObserverKind]}"
        ) from None


class HookRegistry:
    """Single-slot storage for the agent/proxy interceptors and fetch/error observers."""

    def __init__(
        self,
        *,
        user_agent_hook: UserAgentHook | None = None,
        proxy_hook: ProxyHook | None = None,
        fetch_observer: FetchObserver | None = None,
        error_observer: ErrorObserver | None = None,
        completion_timeout_seconds: float | None = HOOK_COMPLETION_TIMEOUT_SECONDS,
    ) -> None:
        self.completion_timeout_seconds = completion_timeout_seconds
        self._lock = threading.Lock()
        self._request_hooks: dict[RequestHookKind, Callable[..., Any]] = {}
        self._observers: dict[ObserverKind, Callable[..., Any]] = {}

        if user_agent_hook is not None:
            self.register_request_hook(RequestHookKind.AGENT, user_agent_hook)
        if proxy_hook is not None:
            self.register_request_hook(RequestHookKind.PROXY, proxy_hook)
        if fetch_observer is not None:
            self.register_observer(ObserverKind.FETCH, fetch_observer)
        if error_observer is not None:
            self.register_observer(ObserverKind.ERROR, error_observer)

    def register_request_hook(self, kind: RequestHookKind | str, fn: Callable[..., Any]) -> None:
        resolved = _coerce_request_kind(kind)
        if not callable(fn):
            raise TypeError(f"{resolved.value} hook must be callable, got {type(fn)!r}")
        with self._lock:
            if resolved in self._request_hooks:
                LOGGER.debug("Replacing %s hook", resolved.value)
            self._request_hooks[resolved] = fn

    def register_observer(self, kind: ObserverKind | str, fn: Callable[..., Any]) -> None:
        resolved = _coerce_observer_kind(kind)
        if not callable(fn):
            raise TypeError(f"{resolved.value} observer must be callable, got {type(fn)!r}")
        with self._lock:
            if resolved in self._observers:
                LOGGER.debug("Replacing %s observer", resolved.value)
            self._observers[resolved] = fn

    def unregister(self, kind: RequestHookKind | ObserverKind | str) -> None:
        value = kind.value if isinstance(kind, (RequestHookKind, ObserverKind)) else kind
        with self._lock:
            if value in {item.value for item in RequestHookKind}:
                self._request_hooks.pop(RequestHookKind(value), None)
            elif value in {item.value for item in ObserverKind}:
                self._observers.pop(ObserverKind(value), None)
            else:
                raise ValueError(f"Unknown hook kind {kind!r}")

    def request_hook(self, kind: RequestHookKind | str) -> Callable[..., Any] | None:
        with self._lock:
            return self._request_hooks.get(_coerce_request_kind(kind))

    def observer(self, kind: ObserverKind | str) -> Callable[..., Any] | None:
        with self._lock:
            return self._observers.get(_coerce_observer_kind(kind))

    def user_agent(self) -> str | None:
        """Ask the agent hook for a User-Agent; None when no hook is set."""

        hook = self.request_hook(RequestHookKind.AGENT)
        if hook is None:
            return None
        value = self._invoke(RequestHookKind.AGENT.value, hook)
        return None if value is None else str(value)

    def proxy(self) -> ProxySettings | None:
        """Ask the proxy hook for a host/port override; None when no hook is set."""

        hook = self.request_hook(RequestHookKind.PROXY)
        if hook is None:
            return None
        value = self._invoke(RequestHookKind.PROXY.value, hook)
        if value is None:
            return None
        try:
            return ProxySettings.from_value(value)
        except (KeyError, TypeError, ValueError) as exc:
            raise HookError(RequestHookKind.PROXY.value, exc) from exc

    def notify_fetch(self, url: str, body: str) -> None:
        hook = self.observer(ObserverKind.FETCH)
        if hook is not None:
            self._invoke(ObserverKind.FETCH.value, hook, url, body)

    def notify_error(self, url: str, error: BaseException) -> None:
        hook = self.observer(ObserverKind.ERROR)
        if hook is not None:
            self._invoke(ObserverKind.ERROR.value, hook, url, error)

    def _invoke(self, kind: str, hook: Callable[..., Any], *args: Any) -> Any:
        try:
            if not takes_completion(hook, len(args)):
                return _resolve(hook(*args))

            completion = Completion()
            _resolve(hook(*args, completion))
            if not completion.wait(self.completion_timeout_seconds):
                raise TimeoutError(
                    f"{kind} hook did not signal completion within "
                    f"{self.completion_timeout_seconds}s"
                )
            return completion.value
        except Exception as exc:
            raise HookError(kind, exc) from exc


__all__ = [
    "Completion",
    "ErrorObserver",
    "FetchObserver",
    "HookRegistry",
    "ProxyHook",
    "UserAgentHook",
    "takes_completion",
]
