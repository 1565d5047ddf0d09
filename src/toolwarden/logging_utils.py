"""Logging helpers."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from toolwarden.errors import ConfigurationError

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure the ``toolwarden`` logger from arguments or TOOLWARDEN_LOG_LEVEL."""
    env_level = os.getenv("TOOLWARDEN_LOG_LEVEL")
    level_name = (level or env_level or "").upper()
    if not level_name and not log_file:
        return
    if not level_name:
        level_name = "WARNING"
    resolved = logging.getLevelName(level_name)
    if isinstance(resolved, str):
        raise ConfigurationError(f"Invalid log level: {level_name}")

    handler: logging.Handler
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))

    logger = logging.getLogger("toolwarden")
    logger.setLevel(resolved)
    logger.propagate = False
    logger.handlers = [handler]


def abbreviate(text: str | None, limit: int = 200) -> str:
    """Return a single-line, truncated preview string."""
    if text is None:
        return ""
    flattened = text.replace("\n", "\\n")
    if len(flattened) <= limit:
        return flattened
    return f"{flattened[:limit]}..."
