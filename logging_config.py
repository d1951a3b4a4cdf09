"""
Logging Configuration for the Olivia Gold database guard

Every guard command reports through status lines on the console: one line
per check or step, prefixed with its severity (SUCCESS for a passed check,
WARNING for a non-fatal finding, ERROR for a refusal or failed step).

Sinks:
- Console status lines (DEBUG level if DEBUG_LEVEL > 0)
- Error log file with rotation, under LOG_DIR
- Debug log file with call sites (only if DEBUG_LEVEL > 0)
"""

import os
import sys

from loguru import logger

DEBUG_LEVEL = int(os.environ.get('DEBUG_LEVEL', 0))
LOG_DIR = os.environ.get('LOG_DIR', 'logs')

# Operators read the severity first, the call site only matters in debug mode
CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> <level>{message}</level>"
DEBUG_CONSOLE_FORMAT = CONSOLE_FORMAT + " <dim>({name}:{line})</dim>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

logger.remove()

logger.add(
    sys.stdout,
    format=DEBUG_CONSOLE_FORMAT if DEBUG_LEVEL > 0 else CONSOLE_FORMAT,
    level="DEBUG" if DEBUG_LEVEL > 0 else "INFO",
    colorize=True
)

os.makedirs(LOG_DIR, exist_ok=True)

# Refusals and failed steps are kept for later review
logger.add(
    os.path.join(LOG_DIR, "errors.log"),
    format=FILE_FORMAT,
    level="ERROR",
    rotation="10 MB",
    retention="30 days",
    compression="zip"
)

if DEBUG_LEVEL > 0:
    logger.add(
        os.path.join(LOG_DIR, "debug.log"),
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="50 MB",
        retention="7 days",
        compression="zip"
    )

__all__ = ['logger', 'CONSOLE_FORMAT']
