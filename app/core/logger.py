# app/core/logger.py
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from app.core.config import get_settings

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
LOG_FILE = "app.log"
LOG_BACKUP_DAYS = 30


def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    - Always logs to the console.
    - If LOG_DIR is set, also writes LOG_DIR/app.log, rolled over at
      midnight into app.log.YYYY-MM-DD (last LOG_BACKUP_DAYS kept).
    """
    settings = get_settings()

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if settings.LOG_DIR:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                log_dir / LOG_FILE,
                when="midnight",
                backupCount=LOG_BACKUP_DAYS,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
