from __future__ import annotations

from bs4 import BeautifulSoup, ParserRejectedMarkup

from ..errors import ParseError


def extract_fragment(html: bytes | str, selector: str) -> str:
    try:
        soup = BeautifulSoup(html, "html.parser")
    except ParserRejectedMarkup as exc:
        raise ParseError(f"HTML could not be parsed: {exc}") from exc
    return "".join(node.decode_contents() for node in soup.select(selector))
