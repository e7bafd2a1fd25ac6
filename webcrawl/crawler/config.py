"""Typed crawler configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_MAX_REDIRECT,
    DEFAULT_MAX_TASKS,
    DEFAULT_MAX_TRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_STRICT,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_roots(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, Iterable):
        raise TypeError(f"roots must be a list of URLs, got {type(value)!r}")
    return tuple(str(root).strip() for root in value if root and str(root).strip())


@dataclass(frozen=True, slots=True)
class CrawlConfig:
    """Immutable crawl settings, fixed when the crawl is constructed."""

    roots: tuple[str, ...]
    exclude: str | None = None
    strict: bool = DEFAULT_STRICT
    max_redirect: int = DEFAULT_MAX_REDIRECT
    max_tries: int = DEFAULT_MAX_TRIES
    max_tasks: int = DEFAULT_MAX_TASKS

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    user_agent: str | None = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        roots = _as_roots(self.roots)
        if not roots:
            raise ValueError("CrawlConfig requires at least one root URL")
        object.__setattr__(self, "roots", roots)

        if self.exclude is not None:
            if not self.exclude:
                object.__setattr__(self, "exclude", None)
            else:
                try:
                    re.compile(self.exclude)
                except re.error as exc:
                    raise ValueError(f"Invalid exclude pattern {self.exclude!r}: {exc}") from exc

        if self.max_redirect < 0:
            raise ValueError("max_redirect must be >= 0")
        if self.max_tries < 1:
            raise ValueError("max_tries must be >= 1")
        if self.max_tasks < 1:
            raise ValueError("max_tasks must be >= 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0")

    def to_dict(self) -> JSONDict:
        """Serialize config for logs and reproducibility."""

        return {
            "roots": list(self.roots),
            "exclude": self.exclude,
            "strict": self.strict,
            "max_redirect": self.max_redirect,
            "max_tries": self.max_tries,
            "max_tasks": self.max_tasks,
            "timeout_seconds": self.timeout_seconds,
            "retry_backoff_seconds": self.retry_backoff_seconds,
            "user_agent": self.user_agent,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary."""

        if "roots" not in payload:
            raise ValueError("Config missing required key: 'roots'")

        exclude = payload.get("exclude")
        user_agent = payload.get("user_agent", DEFAULT_USER_AGENT)

        return cls(
            roots=_as_roots(payload["roots"]),
            exclude=None if exclude is None else str(exclude),
            strict=_as_bool(payload.get("strict", DEFAULT_STRICT), "strict"),
            max_redirect=_as_int(payload.get("max_redirect", DEFAULT_MAX_REDIRECT), "max_redirect"),
            max_tries=_as_int(payload.get("max_tries", DEFAULT_MAX_TRIES), "max_tries"),
            max_tasks=_as_int(payload.get("max_tasks", DEFAULT_MAX_TASKS), "max_tasks"),
            timeout_seconds=_as_float(
                payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
                "timeout_seconds",
            ),
            retry_backoff_seconds=_as_float(
                payload.get("retry_backoff_seconds", DEFAULT_RETRY_BACKOFF_SECONDS),
                "retry_backoff_seconds",
            ),
            user_agent=None if user_agent is None else str(user_agent),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    return CrawlConfig.from_dict(payload)


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "CrawlConfig",
    "load_config",
    "save_config",
]
