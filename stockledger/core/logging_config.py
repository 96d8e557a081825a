"""
Logging setup

Console output is coloured by level; with a log directory configured the
same records also go to a daily app file, and errors to a daily error file.
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# chatty libraries and the level they are held at
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.INFO,
    "apscheduler": logging.WARNING,
}

# marks handlers installed here so a second setup_logging call replaces them
_HANDLER_TAG = "_stockledger_handler"


class ColoredFormatter(logging.Formatter):
    """Level name in colour, console only"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # the record is shared with the file handlers
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno)
        if color:
            colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def _tagged(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    setattr(handler, _HANDLER_TAG, True)
    return handler


def _daily_file(directory: Path, prefix: str, level: int) -> logging.Handler:
    filename = directory / f"{prefix}_{date.today().isoformat()}.log"
    return _tagged(
        logging.FileHandler(filename, encoding="utf-8"),
        level,
        logging.Formatter(LOG_FORMAT, DATE_FORMAT))


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = "logs") -> None:
    """
    Configure the root logger

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_dir: directory for app_<date>.log / error_<date>.log; empty or
            None logs to the console only
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in [h for h in root.handlers if getattr(h, _HANDLER_TAG, False)]:
        root.removeHandler(handler)
        handler.close()

    root.addHandler(_tagged(
        logging.StreamHandler(sys.stdout),
        logging.DEBUG,
        ColoredFormatter(LOG_FORMAT, DATE_FORMAT)))

    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        root.addHandler(_daily_file(directory, "app", logging.INFO))
        root.addHandler(_daily_file(directory, "error", logging.ERROR))

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).info(
        f"📋 Logging at {log_level.upper()}" + (f", files in {log_dir}" if log_dir else ", console only")
    )


def get_logger(name: str) -> logging.Logger:
    """
    Named logger

    Usage:
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)
