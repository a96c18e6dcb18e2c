"""
Logging configuration for fsx-stack.

Logging goes through loguru and is disabled by default, as library code
should be. The CLI and the Pulumi program enable it.

Example:
    from fsx_stack.logging import setup_logging

    setup_logging(level="DEBUG")
"""

import sys
from typing import Literal

from loguru import logger

logger.disable("fsx_stack")

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(level: LogLevel = "INFO", file: str | None = None) -> list[int]:
    """
    Send fsx_stack log records to stderr (and optionally a file).

    Handlers added elsewhere in the process are left alone; the new ones
    only see records from the fsx_stack package.

    Args:
        level: Minimum level to emit
        file: Optional log file path

    Returns:
        Handler ids, for ``teardown_logging``
    """
    logger.enable("fsx_stack")
    handler_ids = [
        logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, filter="fsx_stack")
    ]
    if file:
        handler_ids.append(
            logger.add(file, level=level, format=FILE_FORMAT, filter="fsx_stack")
        )
    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    for handler_id in handler_ids:
        logger.remove(handler_id)
    logger.disable("fsx_stack")
