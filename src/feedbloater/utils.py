from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, Iterator

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log one ``event=name key=value ...`` line.

    Values containing whitespace or quotes are JSON-quoted so each line splits
    cleanly on spaces.
    """
    parts = [f"event={event}"]
    parts.extend(f"{key}={_field_text(value)}" for key, value in fields.items())
    logger.log(level, " ".join(parts))


def _field_text(value: Any) -> str:
    text = "-" if value is None else str(value)
    if not text or any(ch.isspace() or ch == '"' for ch in text):
        return json.dumps(text)
    return text


def configure_logging(logger_name: str, default_level: str = "INFO") -> logging.Logger:
    level = _level(os.environ.get("FB_LOG_LEVEL", default_level))
    root = logging.getLogger()
    root.setLevel(level)

    if not any(_is_stdout_handler(handler) for handler in root.handlers):
        root.addHandler(_formatted(logging.StreamHandler(sys.stdout), level))

    log_path = os.environ.get("FB_LOG_FILE")
    if log_path:
        log_path = os.path.abspath(log_path)
        if not any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == log_path
            for handler in root.handlers
        ):
            os.makedirs(os.path.dirname(log_path), exist_ok=True)
            root.addHandler(_formatted(logging.FileHandler(log_path), level))

    for name, override in _level_overrides(os.environ.get("FB_LOG_LEVELS", "")):
        logging.getLogger(name).setLevel(override)
    return logging.getLogger(logger_name)


def _level(name: str) -> int:
    return getattr(logging, name.strip().upper(), logging.INFO)


def _is_stdout_handler(handler: logging.Handler) -> bool:
    return (
        isinstance(handler, logging.StreamHandler)
        and not isinstance(handler, logging.FileHandler)
        and handler.stream is sys.stdout
    )


def _formatted(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def _level_overrides(raw: str) -> Iterator[tuple[str, int]]:
    # "feedbloater.db=DEBUG,feedbloater.fetch=WARNING"; malformed pairs are skipped
    for item in raw.split(","):
        name, sep, level = item.partition("=")
        if sep and name.strip():
            yield name.strip(), _level(level)


def normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date_value(value: str | None) -> datetime | None:
    if not value or not value.strip():
        return None
    value = value.strip()
    try:
        return normalize_datetime(parsedate_to_datetime(value))
    except (TypeError, ValueError):
        pass
    try:
        return normalize_datetime(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


def format_rfc2822(value: datetime) -> str:
    return format_datetime(normalize_datetime(value), usegmt=True)


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()
