from __future__ import annotations

import logging

from .config import Config
from .errors import FeedBloaterError
from .fetch import ConditionalFetcher
from .models import OutputFeed, OutputItem
from .parse import parse_feed
from .pipelines.content_extract import extract_fragment
from .publish import render_rss
from .utils import log_event


def build_feed(
    config: Config,
    fetcher: ConditionalFetcher,
    logger: logging.Logger,
) -> tuple[bytes, bool]:
    feed_cfg = config.feed
    body, source_changed = fetcher.fetch(feed_cfg.source_url)
    try:
        feed = parse_feed(body, logger)
    except FeedBloaterError as exc:
        log_event(logger, logging.ERROR, "feed_parse_failed", url=feed_cfg.source_url, error=exc)
        raise
    log_event(
        logger,
        logging.INFO,
        "feed_parsed",
        url=feed_cfg.source_url,
        changed=source_changed,
        found_count=len(feed.items),
    )

    items: list[OutputItem] = []
    for entry in feed.items[: feed_cfg.num_items]:
        # Item change flags do not feed the write decision.
        page, _changed = fetcher.fetch(entry.link)
        try:
            fragment = extract_fragment(page, feed_cfg.css_selector)
        except FeedBloaterError as exc:
            log_event(logger, logging.ERROR, "item_extract_failed", url=entry.link, error=exc)
            raise
        if not fragment:
            log_event(
                logger,
                logging.WARNING,
                "item_selector_empty",
                url=entry.link,
                selector=feed_cfg.css_selector,
            )
        items.append(
            OutputItem(
                title=entry.name,
                link=entry.link,
                published_at=entry.published_at,
                description=fragment,
            )
        )
        log_event(logger, logging.DEBUG, "item_extracted", url=entry.link, chars=len(fragment))

    output = OutputFeed(
        title=feed_cfg.title or feed.title,
        link=feed_cfg.link or feed.link,
        description=feed.description,
        author="",
        items=items,
    )
    return render_rss(output), source_changed
