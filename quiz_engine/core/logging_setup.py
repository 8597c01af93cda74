"""Root logger configuration."""
import logging
import sys
from pathlib import Path
from typing import Optional

from quiz_engine.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure root logging to stdout and, optionally, a file.

    Args:
        level: Level name, defaults to ``settings.LOG_LEVEL``
        log_file: Log file path, defaults to ``settings.LOG_FILE`` (empty = none)
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_file = settings.LOG_FILE if log_file is None else log_file

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        # Ensure log directory exists
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # aiohttp access noise is not useful for a client
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
