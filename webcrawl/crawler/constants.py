"""Default values shared by config, engine, and CLI."""

from __future__ import annotations

DEFAULT_STRICT = True
DEFAULT_MAX_REDIRECT = 10
DEFAULT_MAX_TRIES = 4
DEFAULT_MAX_TASKS = 10

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_BACKOFF_SECONDS = 0.0
DEFAULT_USER_AGENT: str | None = None

DEFAULT_CHARSET = "utf-8"
BODY_CHUNK_SIZE = 64 * 1024

ALLOWED_SCHEMES = ("http", "https")
EXTRACTABLE_CONTENT_TYPES = frozenset({"text/html", "application/xml"})
REDIRECT_STATUS_CODES = frozenset({300, 301, 302, 303, 307})

SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
JSON_INDENT = 2

WORKER_POLL_SECONDS = 0.5
HOOK_COMPLETION_TIMEOUT_SECONDS = 30.0
