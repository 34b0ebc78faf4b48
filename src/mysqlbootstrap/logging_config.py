"""Log output setup for the entrypoint."""

import logging
import sys
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler

from .constants import COMPONENT_NAME

LOGGER_NAME = "mysqlbootstrap"

LEVEL_LABELS = {
    logging.DEBUG: "Debug",
    logging.INFO: "Note",
    logging.WARNING: "Warn",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "ERROR",
}


class EntrypointFormatter(logging.Formatter):
    """``<rfc3339 seconds> [Note] [Entrypoint]: message`` on a single line."""

    def __init__(self, component: str = COMPONENT_NAME):
        super().__init__()
        self.component = component

    def formatTime(self, record, datefmt=None):
        moment = datetime.fromtimestamp(record.created).astimezone()
        return moment.isoformat(sep=" ", timespec="seconds")

    def format(self, record):
        message = record.getMessage()
        if record.exc_info:
            message = f"{message} {self.formatException(record.exc_info)}"
        message = " ".join(part.strip() for part in message.splitlines() if part.strip())
        label = LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{self.formatTime(record)} [{label}] [{self.component}]: {message}"


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record):
        return record.levelno <= self.max_level


def configure_logging(log_format: str = "plain", verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = False
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    if log_format == "rich":
        handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        return logger

    formatter = EntrypointFormatter()

    notes = logging.StreamHandler(sys.stdout)
    notes.setLevel(level)
    notes.addFilter(_MaxLevelFilter(logging.INFO))
    notes.setFormatter(formatter)

    problems = logging.StreamHandler(sys.stderr)
    problems.setLevel(logging.WARNING)
    problems.setFormatter(formatter)

    logger.addHandler(notes)
    logger.addHandler(problems)
    return logger
