"""Logging setup for the ledgerly logger hierarchy."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "ledgerly"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_HANDLER_MARKER = "_ledgerly_handler"


class ConsoleHandler(logging.StreamHandler):
    """Stream handler bound to whatever sys.stderr is when a record is emitted."""

    def __init__(self):
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def configure_logging(level: str | int = "WARNING", log_file: Optional[str] = None) -> logging.Logger:
    """Attach console (and optional file) handlers to the ledgerly logger.

    Calling this again replaces the handlers it installed earlier, so repeated
    CLI invocations in one process do not duplicate output.

    Args:
        level: Level name or number
        log_file: Optional path of a log file to append to

    Returns:
        The configured ``ledgerly`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: '{level}'")
        level = numeric
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console = ConsoleHandler()
    console.setFormatter(formatter)
    setattr(console, _HANDLER_MARKER, True)
    logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARKER, True)
        logger.addHandler(file_handler)

    return logger
