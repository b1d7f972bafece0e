"""
Loguru setup shared by the resolver.

Console output goes to stderr at ``LOG_LEVEL``. A JSON file under ``LOG_DIR``
keeps every record down to ``LOG_FILE_LEVEL`` so unmatched applicants,
ingredients and products can be reviewed after a run.
"""

import os
import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_FILE = LOG_DIR / "orange_book_resolver.log"
CONSOLE_LEVEL = os.getenv("LOG_LEVEL", "INFO")
FILE_LEVEL = os.getenv("LOG_FILE_LEVEL", "DEBUG")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

LOG_DIR.mkdir(parents=True, exist_ok=True)

logger.remove()
logger.add(sys.stderr, level=CONSOLE_LEVEL, format=CONSOLE_FORMAT)
logger.add(
    LOG_FILE,
    level=FILE_LEVEL,
    rotation="500 MB",
    retention="10 days",
    serialize=True,
    enqueue=True,
)

__all__ = ["logger"]
