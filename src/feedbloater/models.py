from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class CachedEntry:
    url: str
    etag: str
    last_modified: str
    fetched_at: str
    stored_size: int


@dataclass(frozen=True)
class FeedEntry:
    name: str
    link: str
    published_at: datetime


@dataclass(frozen=True)
class SourceFeed:
    title: str
    link: str
    description: str
    items: list[FeedEntry] = field(default_factory=list)


@dataclass(frozen=True)
class OutputItem:
    title: str
    link: str
    published_at: datetime
    description: str


@dataclass(frozen=True)
class OutputFeed:
    title: str
    link: str
    description: str
    author: str
    items: list[OutputItem] = field(default_factory=list)
