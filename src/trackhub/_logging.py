"""Log handler setup for the ``python -m trackhub`` entry point."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(levelname)s: [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
BACKUP_DAYS = 30


def configure_logging(level: str | int = "INFO", log_dir: str | None = None) -> None:
    """Install console logging and, with *log_dir*, daily rotating files.

    ``app.log`` receives everything at *level*; ``error.log`` only errors.
    Calling it again replaces the handlers installed by a previous call.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_trackhub", False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        for filename, file_level in (("app.log", logging.NOTSET), ("error.log", logging.ERROR)):
            file_handler = logging.handlers.TimedRotatingFileHandler(
                directory / filename,
                when="midnight",
                backupCount=BACKUP_DAYS,
                encoding="utf-8",
            )
            file_handler.setLevel(file_level)
            handlers.append(file_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._trackhub = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    root.setLevel(level.upper() if isinstance(level, str) else level)
    # aiohttp logs every connection at DEBUG.
    logging.getLogger("aiohttp").setLevel(max(root.level, logging.INFO))
