"""Bounded-concurrency web crawler with request hooks and observers."""

__version__ = "0.1.0"
