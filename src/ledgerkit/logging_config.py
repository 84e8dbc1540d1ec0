"""Logging setup for ledgerkit.

Modules log through ``logging.getLogger(__name__)``; only the entry point
decides where the records go.
"""

__all__ = ["LOG_FORMAT", "configure_logging", "reset_logging"]

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def configure_logging(level: str | int = logging.WARNING) -> None:
    """Send ``ledgerkit`` log records to the current stderr.

    The handler is rebuilt on every call so it always writes to the stream
    that is sys.stderr at call time.

    Args:
        level: Level name (e.g. "INFO") or numeric level

    Raises:
        ValueError: If the level name is unknown
    """
    global _handler

    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: '{level}'")
        level = resolved

    reset_logging()
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("ledgerkit")
    root.addHandler(_handler)
    root.setLevel(level)


def reset_logging() -> None:
    """Remove the handler installed by configure_logging."""
    global _handler

    root = logging.getLogger("ledgerkit")
    if _handler is not None:
        root.removeHandler(_handler)
        _handler = None
    root.setLevel(logging.NOTSET)
