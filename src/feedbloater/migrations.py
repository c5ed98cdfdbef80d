from __future__ import annotations

import logging
from typing import Any, Callable

from .utils import log_event, utc_now_iso

Migration = Callable[[Any], None]

_BOOKKEEPING = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version TEXT PRIMARY KEY,
        applied_at TEXT NOT NULL
    )
"""


def apply_migrations(conn: Any) -> list[str]:
    """Bring the cache schema up to date and return the versions applied now."""
    logger = logging.getLogger("feedbloater.migrations")
    conn.execute("BEGIN IMMEDIATE")
    try:
        conn.execute(_BOOKKEEPING)
        done = _applied_versions(conn)
        pending = [(version, step) for version, step in _get_migrations() if version not in done]
        for version, step in pending:
            step(conn)
            conn.execute(
                "INSERT INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                (version, utc_now_iso()),
            )
            log_event(logger, logging.INFO, "migration_applied", version=version)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    return [version for version, _step in pending]


def _applied_versions(conn: Any) -> set[str]:
    rows = conn.execute("SELECT version FROM schema_migrations").fetchall()
    return {row[0] for row in rows}


def _create_urls(conn: Any) -> None:
    # One row per fetched URL; body holds base64 of the zlib-compressed response.
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS urls (
            url TEXT NOT NULL PRIMARY KEY,
            etag TEXT NOT NULL,
            last_modified TEXT NOT NULL,
            body TEXT NOT NULL,
            fetched_at TEXT NOT NULL
        )
        """
    )


def _get_migrations() -> list[tuple[str, Migration]]:
    return [
        ("0001_urls", _create_urls),
    ]
