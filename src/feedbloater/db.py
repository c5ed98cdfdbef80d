from __future__ import annotations

import json
import logging
import os
import sqlite3
from typing import Any

from .migrations import apply_migrations
from .utils import log_event

_MAX_LOGGED_ARG = 80


class LoggingConnection:
    """Wraps a sqlite3 connection and logs every statement at DEBUG.

    Anything that is not a statement (commit, rollback, close, ...) is passed
    straight through to the wrapped connection.
    """

    def __init__(self, conn: sqlite3.Connection, logger: logging.Logger) -> None:
        self._conn = conn
        self._logger = logger

    def execute(self, sql: str, params: tuple | list | None = None) -> sqlite3.Cursor:
        params = params or ()
        if self._logger.isEnabledFor(logging.DEBUG):
            log_event(
                self._logger,
                logging.DEBUG,
                "db_execute",
                sql=" ".join(sql.split()),
                args=json.dumps([_summarize_arg(value) for value in params], default=str),
            )
        return self._conn.execute(sql, params)

    def __getattr__(self, name: str):
        return getattr(self._conn, name)


def _summarize_arg(value: Any) -> Any:
    if isinstance(value, (str, bytes)) and len(value) > _MAX_LOGGED_ARG:
        return f"<{len(value)} {'chars' if isinstance(value, str) else 'bytes'}>"
    return value


def connect_db(path: str, logger: logging.Logger | None = None) -> LoggingConnection:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    raw = sqlite3.connect(path)
    raw.execute("PRAGMA journal_mode=WAL")
    raw.execute("PRAGMA synchronous=NORMAL")
    raw.execute("PRAGMA busy_timeout=5000")
    conn = LoggingConnection(raw, logger or logging.getLogger("feedbloater.db"))
    apply_migrations(conn)
    return conn
