from __future__ import annotations


class FeedBloaterError(Exception):
    pass


class FetchError(FeedBloaterError):
    def __init__(self, url: str, reason: str, status: int | None = None) -> None:
        detail = f"HTTP {status}" if status is not None else reason
        super().__init__(f"fetch failed for {url}: {detail}")
        self.url = url
        self.reason = reason
        self.status = status


class CacheInconsistency(FeedBloaterError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"cache inconsistent for {url}: {reason}")
        self.url = url
        self.reason = reason


class UnknownKey(FeedBloaterError):
    def __init__(self, url: str) -> None:
        super().__init__(f"no cache entry for {url}")
        self.url = url


class ParseError(FeedBloaterError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class DateParseError(ParseError):
    def __init__(self, value: str | None) -> None:
        super().__init__(f"unparseable publication date: {value!r}")
        self.value = value
