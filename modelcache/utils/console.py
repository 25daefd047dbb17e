"""Rich console output for cache logs and stats."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table


def setup_logging(logger: logging.Logger, verbose: bool = False, console: Optional[Console] = None) -> None:
    """Attach a RichHandler to ``logger`` and set its level.

    Calling it again does not add a second handler.

    Args:
        logger: Logger to configure (often the root or ``modelcache`` logger)
        verbose: DEBUG level and source paths when True, INFO otherwise
        console: Console to render to (stderr by default)
    """
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_time=True,
            show_path=verbose,
            rich_tracebacks=True,
        )
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def stats_table(stats: Dict[str, Any], sizes: Optional[Dict[str, int]] = None) -> Table:
    """Render a stats snapshot (``ModelCache.stats()``) as a rich table."""
    table = Table(title="Model cache")
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    for name in ("hit", "miss", "load", "purge", "evict"):
        if name in stats:
            table.add_row(name, str(stats[name]))
    if "hit_ratio" in stats:
        table.add_row("hit ratio", f"{stats['hit_ratio'] * 100:.2f}%")
    if "size" in stats:
        table.add_row("entries", str(stats["size"]))

    for namespace, size in sorted((sizes or {}).items()):
        table.add_row(f"  {namespace}", str(size))
    return table


def print_stats(stats: Dict[str, Any], sizes: Optional[Dict[str, int]] = None, console: Optional[Console] = None) -> None:
    """Print a stats snapshot to the console."""
    (console or Console(stderr=True)).print(stats_table(stats, sizes))
