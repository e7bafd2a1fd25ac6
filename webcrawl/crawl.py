"""CLI entrypoint for running a crawl."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from webcrawl.crawler import Crawler, CrawlConfig, ProxySettings, load_config


LOGGER = logging.getLogger("webcrawl")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl every page reachable from the root URLs within their hosts.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config.",
    )
    parser.add_argument(
        "--root",
        action="append",
        default=[],
        help="Root URL (repeatable). Overrides config roots if provided.",
    )
    parser.add_argument(
        "--exclude",
        type=str,
        default=None,
        help="Regular expression; matching URLs are never fetched.",
    )
    parser.add_argument(
        "--lenient",
        dest="strict",
        action="store_false",
        default=None,
        help="Match hosts on their two-label suffix instead of exactly.",
    )

    parser.add_argument("--max_redirect", type=int, default=None)
    parser.add_argument("--max_tries", type=int, default=None)
    parser.add_argument("--max_tasks", type=int, default=None)
    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument("--retry_backoff_seconds", type=float, default=None)

    parser.add_argument("--user_agent", type=str, default=None)
    parser.add_argument(
        "--proxy",
        type=str,
        default=None,
        help="Send every request through HOST:PORT.",
    )

    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )
    parser.add_argument(
        "--log_file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config is not None:
        payload: dict[str, Any] = load_config(args.config).to_dict()
    else:
        payload = {"roots": list(args.root)}

    if args.root:
        payload["roots"] = list(args.root)

    if not payload.get("roots"):
        raise ValueError("No roots provided. Use --config or at least one --root.")

    if args.exclude is not None:
        payload["exclude"] = args.exclude
    if args.strict is not None:
        payload["strict"] = args.strict
    if args.max_redirect is not None:
        payload["max_redirect"] = args.max_redirect
    if args.max_tries is not None:
        payload["max_tries"] = args.max_tries
    if args.max_tasks is not None:
        payload["max_tasks"] = args.max_tasks
    if args.timeout_seconds is not None:
        payload["timeout_seconds"] = args.timeout_seconds
    if args.retry_backoff_seconds is not None:
        payload["retry_backoff_seconds"] = args.retry_backoff_seconds
    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent

    return CrawlConfig.from_dict(payload)


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # urllib3 logs every connection at DEBUG; keep crawler logs readable.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_crawler(config: CrawlConfig, proxy: str | None = None) -> Crawler:
    crawler = Crawler(config)

    def print_fetched(url: str, body: str) -> None:
        print(url, flush=True)

    def log_error(url: str, error: BaseException) -> None:
        LOGGER.info("Error fetching %s: %s", url, error)

    crawler.on("fetch", print_fetched)
    crawler.on("error", log_error)

    if proxy:
        settings = ProxySettings.from_value(proxy)
        crawler.use("proxy", lambda: settings)

    return crawler


def print_summary(stats: dict[str, Any], *, print_stats_json: bool) -> None:
    print("\n=== Crawl Complete ===", file=sys.stderr)
    for key in [
        "enqueued",
        "requests_ok",
        "request_errors",
        "abandoned",
        "redirects_followed",
        "redirect_limit_reached",
        "pages_parsed",
        "links_found",
        "hook_errors",
        "task_errors",
        "duration_seconds",
    ]:
        if key in stats:
            print(f"{key}: {stats[key]}", file=sys.stderr)

    if print_stats_json:
        print("\n--- Full Stats JSON ---")
        print(json.dumps(stats, indent=2, sort_keys=True))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        config = build_config(args)
        crawler = build_crawler(config, proxy=args.proxy)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    try:
        crawler.start()
        crawler.wait()
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        crawler.cancel()
        crawler.close()
        return 130
    except Exception:
        logging.exception("Crawl failed")
        crawler.close()
        return 1

    crawler.close()
    print_summary(crawler.summary(), print_stats_json=args.print_stats_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
