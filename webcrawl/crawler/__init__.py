"""Crawler package: config, shared types, and crawl engine components."""

from .config import CrawlConfig, load_config, save_config
from .engine import Crawler
from .extractor import LinkExtractor, decode_body
from .frontier import EnqueueStatus, Frontier
from .hooks import (
    Completion,
    ErrorObserver,
    FetchObserver,
    HookRegistry,
    ProxyHook,
    UserAgentHook,
)
from .scheduler import Scheduler
from .stats import StatsCollector
from .transport import RequestsTransport, Transport
from .types import (
    CrawlError,
    CrawlStats,
    FetchRequest,
    FetchResult,
    FetchTask,
    HookError,
    ObserverKind,
    ProxySettings,
    RequestHookKind,
    TransportError,
    utc_now_iso,
)
from .url import (
    HostFilter,
    canonical_url,
    host_of,
    is_ip_literal,
    is_redirect,
    lenient_host,
    parse_content_type,
    url_join,
)

__all__ = [
    "Completion",
    "CrawlConfig",
    "CrawlError",
    "CrawlStats",
    "Crawler",
    "EnqueueStatus",
    "ErrorObserver",
    "FetchObserver",
    "FetchRequest",
    "FetchResult",
    "FetchTask",
    "Frontier",
    "HookError",
    "HookRegistry",
    "HostFilter",
    "LinkExtractor",
    "ObserverKind",
    "ProxyHook",
    "ProxySettings",
    "RequestHookKind",
    "RequestsTransport",
    "Scheduler",
    "StatsCollector",
    "Transport",
    "TransportError",
    "UserAgentHook",
    "canonical_url",
    "decode_body",
    "host_of",
    "is_ip_literal",
    "is_redirect",
    "lenient_host",
    "load_config",
    "parse_content_type",
    "save_config",
    "url_join",
    "utc_now_iso",
]
