import logging
import os

from feedbloater.cache import CacheStore
from feedbloater.db import connect_db


def test_logging_connection_records_statements(tmp_path, caplog):
    logger = logging.getLogger("feedbloater.db.test")
    conn = connect_db(str(tmp_path / "nested" / "cache.sqlite3"), logger)
    try:
        with caplog.at_level(logging.DEBUG, logger="feedbloater.db.test"):
            CacheStore(conn).replace("https://example.com/a", '"e"', "", os.urandom(500))
    finally:
        conn.close()

    messages = [record.getMessage() for record in caplog.records]
    assert any("event=db_execute" in message and "DELETE FROM urls" in message for message in messages)
    insert = next(message for message in messages if "INSERT INTO urls" in message)
    assert "https://example.com/a" in insert
    assert "chars>" in insert


def test_connect_db_creates_parent_and_schema(tmp_path):
    path = tmp_path / "a" / "b" / "cache.sqlite3"
    conn = connect_db(str(path))
    try:
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        }
    finally:
        conn.close()
    assert path.exists()
    assert "urls" in tables
