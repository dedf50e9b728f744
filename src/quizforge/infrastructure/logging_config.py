"""Logging bootstrap for the application."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV_VAR = "QUIZFORGE_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    """Configure root logger once for local and CI runs."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    resolved_level = (level or os.environ.get(LOG_LEVEL_ENV_VAR) or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, resolved_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
