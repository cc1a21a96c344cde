"""
Logging for tracking sessions: a terse console stream for the demo and an
optional rotating debug file that records per-frame detection and encoding
failures.
"""

import os
import logging
import logging.handlers
from typing import Iterable, Optional

# MediaPipe reports model and delegate setup through absl on every load
NOISY_LOGGERS = ("absl",)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size_mb: int = 10,
    backup_count: int = 3,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: Console and root level name; unknown names fall back to INFO
        log_file: Rotating file that always receives DEBUG records
        max_size_mb: Rotation size of ``log_file``
        backup_count: Rotated files kept
        quiet: Third-party loggers capped at WARNING
    """
    root_logger = logging.getLogger()
    root_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_level)
    console.setFormatter(logging.Formatter(
        "%(asctime)s  %(levelname)-5s  %(message)s", datefmt="%H:%M:%S"))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s.%(msecs)03d [%(levelname)-7s] %(threadName)-14s %(name)s | %(message)s",
            datefmt="%H:%M:%S"))
        root_logger.addHandler(file_handler)
        # The file handler filters on its own; the root must pass DEBUG through
        root_level = logging.DEBUG

    root_logger.setLevel(root_level)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
