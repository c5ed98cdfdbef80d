from datetime import datetime, timezone

import pytest

from feedbloater.errors import DateParseError, ParseError
from feedbloater.parse import parse_feed


def test_parse_channel_and_items(rss_document):
    document = rss_document(
        [
            ("Issue 2", "https://example.com/issue/2", "Mon, 04 Oct 2021 09:00:00 GMT"),
            ("Issue 1", "https://example.com/issue/1", "Mon, 27 Sep 2021 14:30:48 +0200"),
        ]
    )
    feed = parse_feed(document)

    assert feed.title == "Weekly"
    assert feed.link == "https://example.com/"
    assert feed.description == "Short summaries"
    assert [item.name for item in feed.items] == ["Issue 2", "Issue 1"]
    assert [item.link for item in feed.items] == [
        "https://example.com/issue/2",
        "https://example.com/issue/1",
    ]
    assert feed.items[0].published_at == datetime(2021, 10, 4, 9, 0, tzinfo=timezone.utc)
    assert feed.items[1].published_at == datetime(2021, 9, 27, 12, 30, 48, tzinfo=timezone.utc)


def test_parse_empty_channel(rss_document):
    feed = parse_feed(rss_document([]))
    assert feed.items == []


def test_parse_rejects_malformed_xml():
    with pytest.raises(ParseError):
        parse_feed(b"<rss><channel><title>broken</channel>")


def test_parse_rejects_bad_pub_date(rss_document):
    document = rss_document([("Issue 1", "https://example.com/issue/1", "not a date")])
    with pytest.raises(DateParseError) as excinfo:
        parse_feed(document)
    assert excinfo.value.value == "not a date"


def test_parse_rejects_missing_pub_date():
    document = (
        b'<?xml version="1.0"?><rss version="2.0"><channel><title>t</title>'
        b"<link>https://example.com/</link><description>d</description>"
        b"<item><title>x</title><link>https://example.com/x</link></item>"
        b"</channel></rss>"
    )
    with pytest.raises(DateParseError):
        parse_feed(document)


def test_parse_keeps_escaped_markup_in_channel_description():
    document = (
        b'<?xml version="1.0"?><rss version="2.0"><channel>'
        b"<title>Issue &lt;42&gt; &amp; more</title>"
        b"<link>https://example.com/</link>"
        b"<description>News &amp; views about &lt;C++&gt;</description>"
        b"</channel></rss>"
    )
    feed = parse_feed(document)

    assert feed.title == "Issue <42> & more"
    assert feed.description == "News & views about <C++>"
