from __future__ import annotations

import os
import tempfile
from xml.etree import ElementTree as ET

from .models import OutputFeed
from .utils import format_rfc2822

GENERATOR = "feedbloater"


def render_rss(feed: OutputFeed) -> bytes:
    rss = ET.Element("rss", {"version": "2.0"})
    channel = ET.SubElement(rss, "channel")
    _text_element(channel, "title", feed.title)
    _text_element(channel, "link", feed.link)
    _text_element(channel, "description", feed.description)
    if feed.author:
        _text_element(channel, "managingEditor", feed.author)
    _text_element(channel, "generator", GENERATOR)
    for item in feed.items:
        node = ET.SubElement(channel, "item")
        _text_element(node, "title", item.title)
        _text_element(node, "link", item.link)
        _text_element(node, "description", item.description)
        _text_element(node, "pubDate", format_rfc2822(item.published_at))
    return ET.tostring(rss, encoding="utf-8", xml_declaration=True)


def _text_element(parent: ET.Element, tag: str, text: str) -> ET.Element:
    node = ET.SubElement(parent, tag)
    node.text = text
    return node


def write_feed(path: str, document: bytes) -> str:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".feedbloater-", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(document)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    return path
