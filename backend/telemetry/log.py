from __future__ import annotations

import sys

from loguru import logger

from telemetry.config import log_json, log_level


def configure_logging() -> None:
    """
    Route loguru to stderr with the level/format chosen by the environment.
    Safe to call more than once; the previous sink is replaced.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level(),
        serialize=log_json(),
        backtrace=False,
        diagnose=False,
    )
