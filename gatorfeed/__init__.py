"""Command-line RSS feed aggregator with per-user follows, stored in SQLite."""

__version__ = "0.1.0"