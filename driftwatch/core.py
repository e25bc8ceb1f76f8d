"""
FILE DESCRIPTION: Foundational module for environment defaults and logging.
KEY FUNCTIONS/CLASSES: setup_logger, CompanyFormatter, StreamSplitFilter
"""

import logging
import sys
import os
from datetime import datetime, timezone
from pathlib import Path
from dotenv import load_dotenv

from driftwatch import __version__

# === CONFIGURATION SECTION ===

# Load .env from the working directory before reading defaults
load_dotenv(Path.cwd() / '.env')

# Target list: JSON object of {target_id: url}
CONFIG_PATH = os.getenv("DRIFTWATCH_CONFIG", os.path.join("config", "sites.json"))

# One JSON record per (target, kind) lives here
STATE_DIR = os.getenv("DRIFTWATCH_STATE_DIR", "state")

# Leading bytes requested for text extraction
MAX_BYTES = os.getenv("MAX_BYTES", "2048")

# Probe timeout (milliseconds)
TIMEOUT_MS = os.getenv("TIMEOUT_MS", "12000")

# Concurrent target tasks per run
MAX_WORKERS = os.getenv("MAX_WORKERS", "4")

DEFAULT_KIND = os.getenv("DRIFTWATCH_KIND", "header")

LOG_FILE = os.getenv("LOG_FILE") or None

USER_AGENT = os.getenv("USER_AGENT", f"driftwatch/{__version__}")


# === LOGGING SECTION ===

class CompanyFormatter(logging.Formatter):
    """
    FLOW: Receives a log record -> Extracts timestamp -> Formats according to company standard
    (e.g., [ Tue Jan 06 05:32:41 AM UTC 2026 ]) -> Prepends level and context -> Returns final string.
    """
    def format(self, record):
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        timestamp = dt.strftime("%a %b %d %I:%M:%S %p UTC %Y")
        context = getattr(record, 'context', 'root')
        message = f"[ {timestamp} ] : {record.levelname} : {context} : {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class StreamSplitFilter(logging.Filter):
    """Passes records strictly below (or at and above) a level threshold."""

    def __init__(self, threshold=logging.WARNING, below=True):
        super().__init__()
        self.threshold = threshold
        self.below = below

    def filter(self, record):
        if self.below:
            return record.levelno < self.threshold
        return record.levelno >= self.threshold


def setup_logger(name="driftwatch", log_file=None, level=logging.INFO):
    """
    FLOW: Initializes/Retrieves logger -> Checks for existing handlers to prevent duplicates ->
    Sets propagation for child loggers -> Attaches stdout (info) and stderr (warning and up)
    handlers plus an optional file handler, all with CompanyFormatter.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if name != "driftwatch":
        logger.propagate = True
        setup_logger("driftwatch", log_file=log_file, level=level)
        return logger

    if logger.handlers:
        if log_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
            _attach_file_handler(logger, log_file)
        return logger

    formatter = CompanyFormatter()

    # Informational output goes to stdout
    out_handler = logging.StreamHandler(sys.stdout)
    out_handler.setFormatter(formatter)
    out_handler.addFilter(StreamSplitFilter(logging.WARNING, below=True))
    logger.addHandler(out_handler)

    # Warnings, fetch errors and drift alerts go to stderr
    err_handler = logging.StreamHandler(sys.stderr)
    err_handler.setFormatter(formatter)
    err_handler.addFilter(StreamSplitFilter(logging.WARNING, below=False))
    logger.addHandler(err_handler)

    if log_file:
        _attach_file_handler(logger, log_file)

    # Records stop here; the root logger is left to the host application
    logger.propagate = False
    return logger


def _attach_file_handler(logger, log_file):
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(CompanyFormatter())
    logger.addHandler(file_handler)


# Global logger instance
logger = setup_logger(log_file=LOG_FILE)
