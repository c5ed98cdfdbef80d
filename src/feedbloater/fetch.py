from __future__ import annotations

import http.client
import logging
from dataclasses import dataclass
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .cache import CacheStore
from .errors import CacheInconsistency, FetchError, UnknownKey
from .utils import log_event


@dataclass(frozen=True)
class Fresh:
    body: bytes
    etag: str
    last_modified: str


@dataclass(frozen=True)
class NotModified:
    pass


def conditional_get(
    url: str,
    headers: dict[str, str],
    timeout: int,
) -> Fresh | NotModified:
    try:
        request = Request(url, headers=headers)
    except ValueError as exc:
        raise FetchError(url, str(exc)) from exc
    try:
        with urlopen(request, timeout=timeout) as response:
            status = response.getcode()
            if status != 200:
                raise FetchError(url, f"unexpected status {status}", status=status)
            body = response.read()
            return Fresh(
                body=body,
                etag=response.headers.get("ETag") or "",
                last_modified=response.headers.get("Last-Modified") or "",
            )
    except HTTPError as exc:
        exc.close()
        if exc.code == 304:
            return NotModified()
        raise FetchError(url, str(exc), status=exc.code) from exc
    except (URLError, http.client.HTTPException, OSError, ValueError) as exc:
        raise FetchError(url, str(exc)) from exc


class ConditionalFetcher:
    def __init__(
        self,
        cache: CacheStore,
        user_agent: str,
        timeout_seconds: int = 30,
        logger: logging.Logger | None = None,
    ) -> None:
        self._cache = cache
        self._user_agent = user_agent
        self._timeout = timeout_seconds
        self._logger = logger or logging.getLogger("feedbloater.fetch")

    def fetch(self, url: str) -> tuple[bytes, bool]:
        etag, last_modified = self._cache.lookup_validators(url)
        headers = {"User-Agent": self._user_agent}
        if etag:
            headers["If-None-Match"] = etag
        if last_modified:
            headers["If-Modified-Since"] = last_modified

        try:
            result = conditional_get(url, headers, self._timeout)
        except FetchError as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "fetch_failed",
                url=url,
                status=exc.status,
                error=exc.reason,
            )
            raise

        if isinstance(result, NotModified):
            try:
                body = self._cache.read_body(url)
            except UnknownKey as exc:
                raise CacheInconsistency(url, "server answered 304 but nothing is cached") from exc
            log_event(self._logger, logging.INFO, "fetch_not_modified", url=url, bytes=len(body))
            return body, False

        self._cache.replace(url, result.etag, result.last_modified, result.body)
        log_event(
            self._logger,
            logging.INFO,
            "fetch_fresh",
            url=url,
            bytes=len(result.body),
            etag=result.etag or "-",
        )
        return result.body, True
