"""Logging setup for the service and CLI entry points."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "info") -> None:
    """Install a single stream handler on the package logger."""
    logger = logging.getLogger("nodeflow")
    logger.setLevel(level.upper())
    if not any(getattr(h, "_nodeflow", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._nodeflow = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
