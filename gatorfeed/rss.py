"""Fetching and parsing RSS feeds."""

from __future__ import annotations

import email.utils
import html
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone

import dateutil.parser

USER_AGENT = "gator"
FETCH_TIMEOUT = 0.8


@dataclass
class RSSItem:
    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSFeed:
    title: str = ""
    link: str = ""
    description: str = ""
    items: list[RSSItem] = field(default_factory=list)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element | None, name: str) -> list[ET.Element]:
    if element is None:
        return []
    return [child for child in element if _local_name(child.tag) == name]


def _text(element: ET.Element | None, name: str) -> str:
    matches = _children(element, name)
    if not matches:
        return ""
    return "".join(matches[-1].itertext())


def parse_feed(data: bytes | str) -> RSSFeed:
    """Parse an RSS document, unescaping HTML entities in titles and descriptions.

    Raises ``xml.etree.ElementTree.ParseError`` if the document is not XML.
    """
    root = ET.fromstring(data)
    channels = _children(root, "channel")
    channel = channels[-1] if channels else None
    items = [
        RSSItem(
            title=html.unescape(_text(item, "title")),
            link=_text(item, "link"),
            description=html.unescape(_text(item, "description")),
            pub_date=_text(item, "pubDate"),
        )
        for item in _children(channel, "item")
    ]
    return RSSFeed(
        title=html.unescape(_text(channel, "title")),
        link=_text(channel, "link"),
        description=html.unescape(_text(channel, "description")),
        items=items,
    )


def fetch_feed(url: str, timeout: float = FETCH_TIMEOUT) -> RSSFeed:
    """Download the feed at ``url`` and parse it, whatever the response status."""
    request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            body = response.read()
    except urllib.error.HTTPError as err:
        try:
            body = err.read()
        finally:
            err.close()
    return parse_feed(body)


def parse_pub_date(text: str) -> datetime:
    """Parse a publication date in any common format.

    Dates without a zone are taken as UTC. Raises ``ValueError`` if the text
    is not a date.
    """
    cleaned = text.strip()
    if not cleaned:
        raise ValueError("empty date")
    try:
        parsed = email.utils.parsedate_to_datetime(cleaned)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = dateutil.parser.parse(cleaned)
        except (ValueError, OverflowError) as err:
            raise ValueError(f"could not parse date {text!r}") from err
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed