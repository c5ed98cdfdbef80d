import sqlite3

from feedbloater.cache import CacheStore
from feedbloater.migrations import _get_migrations, apply_migrations


def test_apply_migrations_idempotent(tmp_path):
    db_path = tmp_path / "cache.sqlite3"
    conn = sqlite3.connect(str(db_path))
    expected = [version for version, _ in _get_migrations()]

    assert apply_migrations(conn) == expected
    assert apply_migrations(conn) == []

    rows = conn.execute("SELECT version FROM schema_migrations").fetchall()
    versions = [row[0] for row in rows]
    assert sorted(versions) == sorted(expected)


def test_cache_store_creates_schema_on_first_use(tmp_path):
    conn = sqlite3.connect(str(tmp_path / "fresh.sqlite3"))
    tables = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    assert tables == []

    CacheStore(conn).lookup_validators("https://example.com/")

    names = {
        row[0]
        for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    }
    assert {"urls", "schema_migrations"} <= names
