"""
Logging configuration with file rotation and automatic cleanup.
Keeps logs for LOG_RETENTION_DAYS days with daily rotation.
"""
import os
import logging
from logging.handlers import TimedRotatingFileHandler
from datetime import datetime, timedelta
from pathlib import Path


LOGS_DIR = os.getenv("LOGS_DIR", os.path.join(os.path.dirname(os.path.dirname(__file__)), "logs"))
os.makedirs(LOGS_DIR, exist_ok=True)

LOG_FILE = os.path.join(LOGS_DIR, "video_service.log")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
LOG_RETENTION_DAYS = 10


def cleanup_old_logs(directory: str, retention_days: int = LOG_RETENTION_DAYS) -> int:
    """Remove rotated log files older than retention_days. Returns the number removed."""
    cutoff = datetime.now() - timedelta(days=retention_days)
    log_dir = Path(directory)
    if not log_dir.exists():
        return 0

    deleted_count = 0
    for log_file in log_dir.glob(f"{Path(LOG_FILE).name}.*"):
        if not log_file.is_file():
            continue
        # Rotated files are suffixed with YYYY-MM-DD; anything else falls back to mtime
        suffix = log_file.name.rsplit(".", 1)[-1]
        try:
            file_date = datetime.strptime(suffix, "%Y-%m-%d")
        except ValueError:
            file_date = datetime.fromtimestamp(log_file.stat().st_mtime)

        if file_date < cutoff:
            try:
                log_file.unlink()
                deleted_count += 1
            except OSError as e:
                logging.getLogger("app").error(f"Failed to delete log file {log_file.name}: {e}")

    return deleted_count


def setup_logger(name: str = "app", level: int = LOG_LEVEL) -> logging.Logger:
    """
    Set up logger with file rotation and console output.

    Args:
        name: Logger name
        level: Logging level (default: LOG_LEVEL env, INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(level)

    file_handler = TimedRotatingFileHandler(
        LOG_FILE,
        when="midnight",
        interval=1,
        backupCount=LOG_RETENTION_DAYS,
        encoding="utf-8",
        utc=True
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s", "%H:%M:%S")
    )

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    removed = cleanup_old_logs(LOGS_DIR, LOG_RETENTION_DAYS)
    if removed:
        logger.info(f"Cleaned up {removed} old log file(s)")

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance under the application logger.

    Args:
        name: Logger name (if None, returns the root app logger)
    """
    if name is None:
        return logging.getLogger("app")
    return logging.getLogger(f"app.{name}")


# Create default application logger
app_logger = setup_logger("app")
app_logger.info(f"Application logger initialized (dir: {LOGS_DIR}, retention: {LOG_RETENTION_DAYS} days)")
