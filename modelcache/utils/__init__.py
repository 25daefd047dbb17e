"""Logging and console helpers."""

from .console import print_stats, setup_logging, stats_table
from .logging_factory import LoggingFactory, get_logger

__all__ = ["LoggingFactory", "get_logger", "print_stats", "setup_logging", "stats_table"]
