import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from . import settings

LOG_FILE_NAME = "expiry_alerts.log"
MAX_LOG_BYTES = 5 * 1024 * 1024


def setup_logger(name: str = None, log_level: int = logging.INFO, log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Wires the daily check's logging: bare messages on stdout for whoever watches the job,
    timestamped lines in a rotating file under LOG_DIR that outlive the resident scheduler's restarts.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter("%(message)s"))

    log_dir = log_dir or settings.LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME, maxBytes=MAX_LOG_BYTES, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    for handler in (console_handler, file_handler):
        handler.setLevel(log_level)
        logger.addHandler(handler)

    # Token refreshes and connection pooling are noise at INFO.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("google.auth").setLevel(logging.WARNING)

    return logger
