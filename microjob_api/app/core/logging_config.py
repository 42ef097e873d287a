"""
Logging setup for the marketplace API.

``setup_logging`` attaches a console handler to the root logger and,
when ``LOG_FILE`` is set, a size-rotated file handler.  Reservation
sweeps and expiries log at INFO, so the access log of uvicorn is
turned down to WARNING unless the level is DEBUG.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    logfile: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """Configure the root logger once per process.

    Parameters
    ----------
    level : str
        Level name, case insensitive.  Unknown names fall back to INFO.
    logfile : Optional[str]
        File to log to in addition to the console.
    max_bytes, backup_count : int
        Rotation limits of the file handler.
    """
    root = logging.getLogger()
    if root.handlers:
        # Already configured by a previous ``create_app`` or by pytest.
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if numeric_level > logging.DEBUG:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
