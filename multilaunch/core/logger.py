"""
Logging configuration for MultiLaunch.

Uses loguru: a colorized console sink plus a daily rotating file under
``<data_dir>/logs``. Modules import ``logger`` from loguru directly.
"""

from __future__ import annotations

import sys

from loguru import logger

from .config import MultiLaunchConfig, data_root

# Silent until setup_logging() runs
logger.remove()

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} - {message}"


def setup_logging(config: MultiLaunchConfig | None = None, log_to_file: bool = True) -> None:
    """
    Configure logging for MultiLaunch.

    Args:
        config: Settings to take the level and data directory from.
            Defaults are used when omitted.
        log_to_file: Also write a rotating log file under the data directory.
    """
    config = config or MultiLaunchConfig()
    logger.remove()

    console_level = "DEBUG" if config.general.debug else config.general.log_level
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=console_level,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    if not log_to_file:
        return

    log_dir = data_root(config) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    # scans and launches log from worker threads
    logger.add(
        log_dir / "multilaunch_{time:YYYY-MM-DD}.log",
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="00:00",
        retention="7 days",
        compression="zip",
        enqueue=True,
        diagnose=False,
    )

    logger.debug(f"Logging to {log_dir} (console level {console_level})")


__all__ = ["logger", "setup_logging"]
