"""Logging setup for applications embedding the engine."""

from __future__ import annotations

import logging

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once using the configured log level."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    # Quieten httpx request logging below warning
    logging.getLogger("httpx").setLevel(logging.WARNING)
