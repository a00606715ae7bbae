"""Logging configuration for the agenda service."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .scheduling.dates import REFERENCE_TIMEZONE

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class DateStampedFileHandler(logging.FileHandler):
    """File handler that writes under ``<directory>/<YYYY-MM-DD>/`` in the schedule zone."""

    def __init__(
        self,
        directory: str | Path,
        *,
        prefix: str = "agenda",
        tz=REFERENCE_TIMEZONE,
        encoding: str | None = "utf-8",
        mode: str = "a",
        delay: bool = False,
        current_time: datetime | None = None,
    ) -> None:
        timestamp = (current_time or datetime.now(timezone.utc)).astimezone(tz)
        tz_abbr = timestamp.tzname() or "ET"
        date_folder = timestamp.strftime("%Y-%m-%d")
        human_time = timestamp.strftime("%Y-%m-%d_%H-%M-%S")
        log_path = (
            Path(directory).resolve() / date_folder / f"{prefix}_{human_time}_{tz_abbr}.log"
        )

        log_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_path = log_path
        super().__init__(log_path, mode=mode, encoding=encoding, delay=delay)


def _resolve_level(value: Optional[str]) -> int:
    return getattr(logging, (value or "INFO").strip().upper(), logging.INFO)


def configure_logging(
    level: Optional[str] = None,
    log_dir: str | Path | None = None,
    *,
    current_time: datetime | None = None,
) -> list[logging.Handler]:
    """Configure the root logger from arguments, falling back to ``LOG_LEVEL``/``LOG_DIR``.

    Returns the handlers installed on the root logger.
    """
    # Load .env first so LOG_LEVEL and LOG_DIR are visible
    load_dotenv()

    log_level = _resolve_level(level if level is not None else os.getenv("LOG_LEVEL"))
    directory = log_dir if log_dir is not None else os.getenv("LOG_DIR")

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: list[logging.Handler] = []

    if directory:
        file_handler = DateStampedFileHandler(directory, current_time=current_time)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Always add console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # Reduce noise from HTTP client libraries unless debugging
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    return handlers


__all__ = ["DateStampedFileHandler", "LOG_DATEFMT", "LOG_FORMAT", "configure_logging"]
