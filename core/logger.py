# core/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() == "true"


def _file_handler(path: str, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    log_dir = os.path.dirname(path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    fh = RotatingFileHandler(
        path,
        maxBytes=int(os.getenv("LOG_MAX_BYTES", str(2 * 1024 * 1024))),
        backupCount=int(os.getenv("LOG_BACKUPS", "3")),
    )
    fh.setLevel(level)
    fh.setFormatter(formatter)
    return fh


def setup_logging():
    """Configure the root logger once: stdout plus a rotating log file."""
    global _configured
    if _configured:
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    # Avoid duplicate handlers
    if not root.handlers:
        if _env_flag("LOG_TO_STDOUT"):
            ch = logging.StreamHandler(sys.stdout)
            ch.setLevel(level)
            ch.setFormatter(formatter)
            root.addHandler(ch)

        if _env_flag("LOG_TO_FILE"):
            log_file = os.getenv("LOG_FILE", "/data/stock_monitor.log")
            try:
                root.addHandler(_file_handler(log_file, level, formatter))
            except OSError as e:
                root.warning("Failed to initialize file logging at %s: %s", log_file, e)

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
