"""Centralized logging setup for applications embedding the cache.

The library itself only creates module loggers (``logging.getLogger(__name__)``)
and never configures handlers on import. Applications that want the cache's
output call ``LoggingFactory.initialize`` once, or use ``get_logger`` which
initializes lazily.

Usage:
    LoggingFactory.initialize(level=logging.INFO)
    LoggingFactory.configure_verbose(verbose=True)  # per-call cache events

    logger = get_logger(__name__)
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .console import setup_logging

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# logger receiving the forwarded cache events of the default delegate
EVENTS_LOGGER = "modelcache"


class LoggingFactory:
    """Factory for creating and configuring loggers consistently.

    Initialization happens at most once per process; later calls to
    ``initialize`` are ignored.

    Class Attributes:
        _initialized: Flag to ensure single initialization
        _log_dir: Directory of the optional log file
    """

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def initialize(
        cls,
        log_dir: Optional[Path] = None,
        level: int = logging.INFO,
        format_string: Optional[str] = None,
        rich: bool = True,
    ) -> None:
        """Initialize the logging system once for the entire application.

        Args:
            log_dir: Directory for ``modelcache.log``; no file handler if None
            level: Level of the root logger
            format_string: Format of file records (defaults to DEFAULT_FORMAT)
            rich: Render console output with rich's RichHandler
        """
        if cls._initialized:
            return

        format_string = format_string or DEFAULT_FORMAT
        root = logging.getLogger()
        root.setLevel(level)

        if rich:
            setup_logging(root, verbose=level <= logging.DEBUG)
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(format_string))
            root.addHandler(handler)

        if log_dir is not None:
            cls._log_dir = log_dir
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_dir / "modelcache.log")
            file_handler.setFormatter(logging.Formatter(format_string))
            root.addHandler(file_handler)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger, initializing the logging system with defaults first."""
        if not cls._initialized:
            cls.initialize()
        return logging.getLogger(name)

    @classmethod
    def set_level(cls, name: str, level: int) -> None:
        """Set the level of one logger, e.g. ``modelcache.cache.backends``."""
        logging.getLogger(name).setLevel(level)

    @classmethod
    def configure_verbose(cls, verbose: bool = False) -> None:
        """Switch the cache's loggers between INFO and DEBUG.

        DEBUG on the ``modelcache`` logger shows the events forwarded to the
        default delegate (hit, miss, load, ... in debug mode).
        """
        level = logging.DEBUG if verbose else logging.INFO
        logging.getLogger().setLevel(level)
        logging.getLogger(EVENTS_LOGGER).setLevel(level)

    @classmethod
    def reset(cls) -> None:
        """Forget initialization so ``initialize`` runs again (tests)."""
        cls._initialized = False
        cls._log_dir = None


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger for the given module name."""
    return LoggingFactory.get_logger(name)
