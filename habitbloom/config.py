"""
Runtime configuration read from environment variables.
"""
import logging
import os
from pathlib import Path

DATABASE_URL = os.getenv("HABITBLOOM_DATABASE_URL", "sqlite:///./habitbloom.db")

LOG_LEVEL = os.getenv("HABITBLOOM_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("HABITBLOOM_LOG_FILE")

# Default page sizes for history queries
HISTORY_LIMIT = int(os.getenv("HABITBLOOM_HISTORY_LIMIT", "30"))
CALENDAR_DAYS = int(os.getenv("HABITBLOOM_CALENDAR_DAYS", "90"))

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = LOG_LEVEL, log_file: str = LOG_FILE) -> None:
    """Configure the habitbloom loggers (console plus optional file)"""
    handlers = [logging.StreamHandler()]

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except PermissionError:
            # Keep console logging only
            logging.getLogger("habitbloom").warning(
                f"Cannot write log file {log_file}, logging to console only"
            )

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )
