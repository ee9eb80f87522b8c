# phishguard/utils/logging_utils.py

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_LOGGER_CONFIGURED = False


def configure_logging(log_dir: Optional[str] = None, level: Optional[str] = None) -> None:
    """
    Configure loguru to log to stderr and, unless log_dir is empty,
    to a rotating file. Idempotent: safe to call multiple times.

    Defaults come from PHISHGUARD_LOG_DIR / PHISHGUARD_LOG_LEVEL.
    """
    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED:
        return

    if log_dir is None:
        log_dir = os.environ.get("PHISHGUARD_LOG_DIR", "logs")
    if level is None:
        level = os.environ.get("PHISHGUARD_LOG_LEVEL", "INFO")

    # Remove default handlers (so we don't double-log)
    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        backtrace=False,
        diagnose=False,
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "phishguard.log",
            rotation="10 MB",
            retention="14 days",
            level=level,
            backtrace=False,
            diagnose=False,
            enqueue=True,
            encoding="utf-8",
        )

    _LOGGER_CONFIGURED = True


def get_logger():
    """
    Return the shared loguru logger. Call configure_logging() once at
    service startup; library modules only log through this.
    """
    return logger
