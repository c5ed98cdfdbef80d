from __future__ import annotations

import logging
from xml.sax import SAXException

import feedparser

from .errors import DateParseError, ParseError
from .models import FeedEntry, SourceFeed
from .utils import log_event, parse_date_value


def parse_feed(document: bytes, logger: logging.Logger | None = None) -> SourceFeed:
    logger = logger or logging.getLogger("feedbloater.parse")
    # Text fields are kept verbatim, including escaped markup.
    parsed = feedparser.parse(document, sanitize_html=False, resolve_relative_uris=False)
    if parsed.bozo:
        exc = parsed.get("bozo_exception")
        if isinstance(exc, SAXException):
            raise ParseError(f"feed is not well-formed XML: {exc}") from exc
        log_event(logger, logging.WARNING, "feed_parse_warning", error=str(exc))

    channel = parsed.feed
    items = [_build_entry(entry) for entry in parsed.entries or []]
    return SourceFeed(
        title=channel.get("title", ""),
        link=channel.get("link", ""),
        description=channel.get("description", ""),
        items=items,
    )


def _build_entry(entry) -> FeedEntry:
    raw_date = entry.get("published")
    published_at = parse_date_value(raw_date)
    if published_at is None:
        raise DateParseError(raw_date)
    return FeedEntry(
        name=entry.get("title", ""),
        link=entry.get("link", ""),
        published_at=published_at,
    )
