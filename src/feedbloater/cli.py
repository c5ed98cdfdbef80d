from __future__ import annotations

import argparse
import json
import logging
import os
import sqlite3
from typing import Any

from .builder import build_feed
from .cache import CacheStore
from .config import Config, ConfigError, load_config
from .db import connect_db
from .errors import FeedBloaterError
from .fetch import ConditionalFetcher
from .fsinit import build_default_paths, ensure_runtime_dirs, set_umask_from_env
from .migrations import apply_migrations
from .policy import WRITE_MODES, should_write
from .publish import write_feed
from .utils import configure_logging, log_event

# Failures that end a command with a logged event and exit status 1.
_RUN_ERRORS = (FeedBloaterError, sqlite3.Error, OSError)

# argparse dest -> (config section, key)
_RUN_OVERRIDES = {
    "cache_db": ("paths", "cache_db"),
    "destination": ("paths", "destination"),
    "source_url": ("feed", "source_url"),
    "selector": ("feed", "css_selector"),
    "num_items": ("feed", "num_items"),
    "write_mode": ("feed", "write_mode"),
    "title": ("feed", "title"),
    "link": ("feed", "link"),
    "user_agent": ("http", "user_agent"),
    "timeout": ("http", "timeout_seconds"),
}


def _setup_logging() -> logging.Logger:
    return configure_logging("feedbloater")


def _cli_overrides(args: argparse.Namespace) -> dict[str, dict[str, Any]]:
    overrides: dict[str, dict[str, Any]] = {}
    for dest, (section, key) in _RUN_OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is None:
            continue
        overrides.setdefault(section, {})[key] = value
    return overrides


def _load(args: argparse.Namespace, logger: logging.Logger) -> Config | None:
    try:
        config = load_config(args.config, overrides=_cli_overrides(args))
    except ConfigError as exc:
        log_event(logger, logging.ERROR, "config_error", error=str(exc))
        return None
    set_umask_from_env()
    return config


def _cmd_run(args: argparse.Namespace, logger: logging.Logger) -> int:
    config = _load(args, logger)
    if config is None:
        return 1
    try:
        document, source_changed = _build(config, logger)
        if not should_write(config.feed.write_mode, source_changed):
            log_event(
                logger,
                logging.INFO,
                "feed_write_skipped",
                reason="source_unchanged",
                write_mode=config.feed.write_mode,
                path=config.paths.destination,
            )
            return 0
        write_feed(config.paths.destination, document)
    except _RUN_ERRORS as exc:
        _log_failure(logger, "run_failed", exc)
        return 1
    log_event(
        logger,
        logging.INFO,
        "feed_written",
        bytes=len(document),
        path=config.paths.destination,
        source_changed=source_changed,
    )
    return 0


def _build(config: Config, logger: logging.Logger) -> tuple[bytes, bool]:
    ensure_runtime_dirs(build_default_paths(config))
    conn = connect_db(config.paths.cache_db, logging.getLogger("feedbloater.db"))
    try:
        fetcher = ConditionalFetcher(
            CacheStore(conn),
            user_agent=config.http.user_agent,
            timeout_seconds=config.http.timeout_seconds,
            logger=logging.getLogger("feedbloater.fetch"),
        )
        return build_feed(config, fetcher, logger)
    finally:
        conn.close()


def _log_failure(logger: logging.Logger, event: str, exc: BaseException) -> None:
    log_event(
        logger,
        logging.ERROR,
        event,
        error_type=type(exc).__name__,
        url=getattr(exc, "url", None) or "-",
        error=str(exc),
    )


def _cmd_cache_list(args: argparse.Namespace, logger: logging.Logger) -> int:
    config = _load(args, logger)
    if config is None:
        return 1
    try:
        conn = connect_db(config.paths.cache_db, logging.getLogger("feedbloater.db"))
        try:
            entries = CacheStore(conn).entries()
        finally:
            conn.close()
    except _RUN_ERRORS as exc:
        _log_failure(logger, "cache_list_failed", exc)
        return 1
    for entry in entries:
        print(
            json.dumps(
                {
                    "url": entry.url,
                    "etag": entry.etag,
                    "last_modified": entry.last_modified,
                    "fetched_at": entry.fetched_at,
                    "stored_size": entry.stored_size,
                }
            )
        )
    return 0


def _cmd_cache_forget(args: argparse.Namespace, logger: logging.Logger) -> int:
    config = _load(args, logger)
    if config is None:
        return 1
    try:
        conn = connect_db(config.paths.cache_db, logging.getLogger("feedbloater.db"))
        try:
            removed = CacheStore(conn).forget(args.url)
        finally:
            conn.close()
    except _RUN_ERRORS as exc:
        _log_failure(logger, "cache_forget_failed", exc)
        return 1
    if not removed:
        log_event(logger, logging.ERROR, "cache_entry_missing", url=args.url)
        return 1
    log_event(logger, logging.INFO, "cache_entry_forgotten", url=args.url)
    return 0


def _cmd_db_migrate(args: argparse.Namespace, logger: logging.Logger) -> int:
    config = _load(args, logger)
    if config is None:
        return 1
    try:
        ensure_runtime_dirs([os.path.dirname(os.path.abspath(config.paths.cache_db))])
        conn = sqlite3.connect(config.paths.cache_db)
        try:
            applied = apply_migrations(conn)
        finally:
            conn.close()
    except _RUN_ERRORS as exc:
        _log_failure(logger, "db_migrate_failed", exc)
        return 1
    log_event(
        logger,
        logging.INFO,
        "db_migrated",
        path=config.paths.cache_db,
        applied=",".join(applied) or "-",
    )
    return 0


def _add_path_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--cache-db", dest="cache_db", help="Path to the SQLite cache")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feedbloater", description="Rebuild a truncated feed with full item content"
    )
    parser.add_argument(
        "--config",
        dest="config",
        default=None,
        help="Path to config.yml (defaults to FB_CONFIG_PATH, else built-in defaults)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Fetch the source feed and write the full feed")
    _add_path_arguments(run_parser)
    run_parser.add_argument("--destination", help="Path of the generated RSS file")
    run_parser.add_argument("--source-url", dest="source_url", help="Source feed URL")
    run_parser.add_argument("--selector", help="CSS selector for the item content")
    run_parser.add_argument("--num-items", dest="num_items", type=int, help="Items to keep")
    run_parser.add_argument(
        "--write-mode",
        dest="write_mode",
        choices=list(WRITE_MODES),
        help="Write always, or only when the source feed changed",
    )
    run_parser.add_argument("--title", help="Override the channel title")
    run_parser.add_argument("--link", help="Override the channel link")
    run_parser.add_argument("--user-agent", dest="user_agent", help="HTTP User-Agent")
    run_parser.add_argument("--timeout", type=int, help="HTTP timeout in seconds")
    run_parser.set_defaults(func=_cmd_run)

    cache_parser = subparsers.add_parser("cache", help="Inspect the URL cache")
    cache_subparsers = cache_parser.add_subparsers(dest="cache_command", required=True)

    cache_list = cache_subparsers.add_parser("list", help="List cached URLs")
    _add_path_arguments(cache_list)
    cache_list.set_defaults(func=_cmd_cache_list)

    cache_forget = cache_subparsers.add_parser("forget", help="Drop one cached URL")
    _add_path_arguments(cache_forget)
    cache_forget.add_argument("url", help="URL to drop from the cache")
    cache_forget.set_defaults(func=_cmd_cache_forget)

    db_parser = subparsers.add_parser("db", help="Database maintenance")
    db_subparsers = db_parser.add_subparsers(dest="db_command", required=True)

    db_migrate = db_subparsers.add_parser("migrate", help="Apply database migrations")
    _add_path_arguments(db_migrate)
    db_migrate.set_defaults(func=_cmd_db_migrate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = _setup_logging()
    return args.func(args, logger)


if __name__ == "__main__":
    raise SystemExit(main())
