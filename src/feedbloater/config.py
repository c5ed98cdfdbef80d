from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from typing import Any, Iterator

import soupsieve
import yaml

from .policy import WRITE_MODES


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class FeedConfig:
    source_url: str
    css_selector: str
    num_items: int
    write_mode: str
    title: str
    link: str


@dataclass(frozen=True)
class HttpConfig:
    timeout_seconds: int
    user_agent: str


@dataclass(frozen=True)
class PathsConfig:
    cache_db: str
    destination: str


@dataclass(frozen=True)
class Config:
    feed: FeedConfig
    http: HttpConfig
    paths: PathsConfig


DEFAULT_CONFIG: dict[str, Any] = {
    "feed": {
        "source_url": "https://llvmweekly.org/rss.xml",
        "css_selector": "div.post",
        "num_items": 20,
        "write_mode": "changed",
        "title": "",
        "link": "",
    },
    "http": {
        "timeout_seconds": 30,
        "user_agent": "feedbloater/0.1",
    },
    "paths": {
        "cache_db": "/data/cache.sqlite3",
        "destination": "/data/feed.xml",
    },
}

# env var -> (section, key, type)
ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "FB_SOURCE_URL": ("feed", "source_url", str),
    "FB_CSS_SELECTOR": ("feed", "css_selector", str),
    "FB_NUM_ITEMS": ("feed", "num_items", int),
    "FB_WRITE_MODE": ("feed", "write_mode", str),
    "FB_FEED_TITLE": ("feed", "title", str),
    "FB_FEED_LINK": ("feed", "link", str),
    "FB_USER_AGENT": ("http", "user_agent", str),
    "FB_HTTP_TIMEOUT": ("http", "timeout_seconds", int),
    "FB_CACHE_DB": ("paths", "cache_db", str),
    "FB_DESTINATION": ("paths", "destination", str),
}


def default_config_dict() -> dict[str, Any]:
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    data_dir = os.environ.get("FB_DATA_DIR")
    if data_dir:
        cfg["paths"]["cache_db"] = os.path.join(data_dir, "cache.sqlite3")
        cfg["paths"]["destination"] = os.path.join(data_dir, "feed.xml")
    return cfg


def load_config(
    path: str | None = None,
    overrides: dict[str, dict[str, Any]] | None = None,
) -> Config:
    cfg = default_config_dict()
    config_path = path or os.environ.get("FB_CONFIG_PATH")
    if config_path:
        cfg = _overlay(cfg, load_config_file(config_path))
    cfg = _overlay(cfg, env_overrides())
    if overrides:
        cfg = _overlay(cfg, overrides)
    errors = validate_config(cfg)
    if errors:
        raise ConfigError("Invalid config: " + "; ".join(errors))
    return _build_config(cfg)


def load_config_file(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def env_overrides(environ: dict[str, str] | None = None) -> dict[str, dict[str, Any]]:
    environ = os.environ if environ is None else environ
    result: dict[str, dict[str, Any]] = {}
    for name, (section, key, kind) in ENV_OVERRIDES.items():
        raw = environ.get(name)
        if raw is None or raw == "":
            continue
        if kind is int:
            try:
                value: Any = int(raw)
            except ValueError as exc:
                raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
        else:
            value = raw
        result.setdefault(section, {})[key] = value
    return result


def validate_config(cfg: dict[str, Any]) -> list[str]:
    errors = sorted(_schema_errors(cfg, DEFAULT_CONFIG, "config"))
    if errors:
        return errors
    feed = cfg["feed"]
    if not feed["source_url"].strip():
        errors.append("config.feed.source_url must not be empty")
    if feed["num_items"] < 1:
        errors.append("config.feed.num_items must be at least 1")
    if feed["write_mode"] not in WRITE_MODES:
        errors.append(
            f"config.feed.write_mode must be one of {', '.join(WRITE_MODES)}"
        )
    selector_error = _selector_error(feed["css_selector"])
    if selector_error:
        errors.append(f"config.feed.css_selector is invalid: {selector_error}")
    if cfg["http"]["timeout_seconds"] < 1:
        errors.append("config.http.timeout_seconds must be at least 1")
    for key in ("cache_db", "destination"):
        if not cfg["paths"][key].strip():
            errors.append(f"config.paths.{key} must not be empty")
    return errors


def _selector_error(selector: str) -> str | None:
    if not selector.strip():
        return "empty selector"
    try:
        soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as exc:
        return str(exc).splitlines()[0]
    return None


def _schema_errors(value: Any, schema: Any, path: str) -> Iterator[str]:
    """Yield shape errors for ``value`` against the matching part of DEFAULT_CONFIG."""
    if isinstance(schema, dict):
        if not isinstance(value, dict):
            yield f"{path} must be an object"
            return
        for key in schema.keys() - value.keys():
            yield f"missing {path}.{key}"
        for key in value.keys() - schema.keys():
            yield f"unknown {path}.{key}"
        for key in schema.keys() & value.keys():
            yield from _schema_errors(value[key], schema[key], f"{path}.{key}")
    elif isinstance(schema, int):
        if isinstance(value, bool) or not isinstance(value, int):
            yield f"{path} must be an integer"
    elif isinstance(schema, str):
        # Empty-string defaults are optional; a bare YAML key means "unset".
        if value is None and schema == "":
            return
        if not isinstance(value, str):
            yield f"{path} must be a string"


def _overlay(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _overlay(merged[key], value)
        else:
            merged[key] = value
    return merged


def _build_config(cfg: dict[str, Any]) -> Config:
    feed_cfg = cfg["feed"]
    http_cfg = cfg["http"]
    paths_cfg = cfg["paths"]

    feed = FeedConfig(
        source_url=str(feed_cfg["source_url"]).strip(),
        css_selector=str(feed_cfg["css_selector"]),
        num_items=int(feed_cfg["num_items"]),
        write_mode=str(feed_cfg["write_mode"]),
        title=str(feed_cfg["title"] or ""),
        link=str(feed_cfg["link"] or ""),
    )
    http = HttpConfig(
        timeout_seconds=int(http_cfg["timeout_seconds"]),
        user_agent=str(http_cfg["user_agent"]),
    )
    paths = PathsConfig(
        cache_db=str(paths_cfg["cache_db"]),
        destination=str(paths_cfg["destination"]),
    )
    return Config(feed=feed, http=http, paths=paths)
