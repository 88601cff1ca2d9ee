"""Global logging setup

Every module uses `from txt2epub.utils.logger import get_logger`.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

# Log formats
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
CONSOLE_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"

# --loglevel N, as the command line has always accepted it
VERBOSITY_LEVELS = {
    0: "ERROR",
    1: "WARNING",
    2: "INFO",
    3: "DEBUG",
}


def verbosity_to_level(verbosity: int) -> str:
    """Map a numeric --loglevel value onto a logging level name

    Values below 0 clamp to ERROR, values above 3 clamp to DEBUG.
    """
    verbosity = max(0, min(verbosity, max(VERBOSITY_LEVELS)))
    return VERBOSITY_LEVELS[verbosity]


def setup_logging(
    level: str = "DEBUG",
    console_level: str = "INFO",
    log_file: Optional[str] = None
) -> None:
    """Configure the root logger

    Args:
        level: file log level (DEBUG/INFO/WARNING/ERROR)
        console_level: console log level (INFO by default)
        log_file: path of the log file; no file handler when None
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers do the filtering

    # drop handlers from an earlier call
    root_logger.handlers.clear()

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(getattr(logging, level.upper()))
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, console_level.upper()))
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    root_logger.debug(f"Logging initialized: file={log_file}, level={level}, console={console_level}")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger instance

    Args:
        name: logger name (usually __name__)

    Returns:
        logging.Logger instance

    Example:
        >>> from txt2epub.utils.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Processing file chapter1.txt")
    """
    return logging.getLogger(name or __name__)


# initialize on import
setup_logging()
