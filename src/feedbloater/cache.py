from __future__ import annotations

import base64
import binascii
import zlib
from typing import Any

from .errors import CacheInconsistency, UnknownKey
from .migrations import apply_migrations
from .models import CachedEntry
from .utils import utc_now_iso


def encode_body(body: bytes) -> str:
    return base64.b64encode(zlib.compress(body)).decode("ascii")


def decode_body(stored: str) -> bytes:
    return zlib.decompress(base64.b64decode(stored.encode("ascii"), validate=True))


class CacheStore:
    """URL-keyed store of validators and compressed response bodies.

    ``conn`` is a sqlite3 connection or anything that wraps one with the same
    ``execute``/``commit``/``rollback`` surface (see ``db.LoggingConnection``).
    The ``urls`` table is created on first use.
    """

    def __init__(self, conn: Any) -> None:
        self._conn = conn
        self._ready = False

    def _ensure_schema(self) -> None:
        if self._ready:
            return
        apply_migrations(self._conn)
        self._ready = True

    def lookup_validators(self, url: str) -> tuple[str, str]:
        self._ensure_schema()
        row = self._conn.execute(
            "SELECT etag, last_modified FROM urls WHERE url = ?", (url,)
        ).fetchone()
        if not row:
            return "", ""
        return row[0] or "", row[1] or ""

    def read_body(self, url: str) -> bytes:
        self._ensure_schema()
        row = self._conn.execute("SELECT body FROM urls WHERE url = ?", (url,)).fetchone()
        if not row:
            raise UnknownKey(url)
        try:
            return decode_body(row[0])
        except (binascii.Error, zlib.error, UnicodeEncodeError) as exc:
            raise CacheInconsistency(url, f"stored body is corrupt ({exc})") from exc

    def replace(self, url: str, etag: str, last_modified: str, body: bytes) -> None:
        self._ensure_schema()
        stored = encode_body(body)
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            self._conn.execute("DELETE FROM urls WHERE url = ?", (url,))
            self._conn.execute(
                """
                INSERT INTO urls (url, etag, last_modified, body, fetched_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (url, etag or "", last_modified or "", stored, utc_now_iso()),
            )
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def forget(self, url: str) -> bool:
        self._ensure_schema()
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            cursor = self._conn.execute("DELETE FROM urls WHERE url = ?", (url,))
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        return cursor.rowcount > 0

    def entries(self) -> list[CachedEntry]:
        self._ensure_schema()
        rows = self._conn.execute(
            """
            SELECT url, etag, last_modified, fetched_at, LENGTH(body)
            FROM urls
            ORDER BY url
            """
        ).fetchall()
        return [
            CachedEntry(
                url=row[0],
                etag=row[1],
                last_modified=row[2],
                fetched_at=row[3],
                stored_size=int(row[4] or 0),
            )
            for row in rows
        ]
