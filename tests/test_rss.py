import threading
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from gatorfeed.rss import RSSFeed, RSSItem, fetch_feed, parse_feed, parse_pub_date

SAMPLE = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>Tea &amp;amp; Cakes</title>
<link>https://example.com/?a=1&amp;amp;b=2</link>
<description>Notes &amp;lt;daily&amp;gt;</description>
<item>
<title>First &amp;quot;post&amp;quot;</title>
<link>https://example.com/first</link>
<description>Hello &amp;amp; welcome</description>
<pubDate>Mon, 02 Jan 2006 15:04:05 +0000</pubDate>
</item>
<item>
<title>Second</title>
<link>https://example.com/second</link>
<description></description>
<pubDate></pubDate>
</item>
</channel>
</rss>
"""


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.server.user_agents.append(self.headers.get("User-Agent"))
        body = self.server.body
        self.send_response(self.server.status)
        self.send_header("Content-Type", "application/rss+xml")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args):
        pass


@pytest.fixture
def server():
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    httpd.body = SAMPLE
    httpd.status = 200
    httpd.user_agents = []
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield httpd
    httpd.shutdown()
    httpd.server_close()


def test_parse_feed_channel_fields():
    feed = parse_feed(SAMPLE)
    assert feed.title == "Tea & Cakes"
    assert feed.description == "Notes <daily>"
    assert feed.link == "https://example.com/?a=1&amp;b=2"


def test_parse_feed_items():
    feed = parse_feed(SAMPLE)
    assert feed.items == [
        RSSItem(
            title='First "post"',
            link="https://example.com/first",
            description="Hello & welcome",
            pub_date="Mon, 02 Jan 2006 15:04:05 +0000",
        ),
        RSSItem(title="Second", link="https://example.com/second", description="", pub_date=""),
    ]


def test_parse_feed_accepts_text():
    assert parse_feed(SAMPLE.decode("utf-8").split("\n", 1)[1]) == parse_feed(SAMPLE)


def test_parse_feed_without_channel_is_empty():
    assert parse_feed(b"<rss></rss>") == RSSFeed()


def test_parse_feed_matches_local_names():
    doc = (
        b'<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"'
        b' xmlns="http://purl.org/rss/1.0/"><channel><title>NS</title>'
        b"<item><title>Inside</title></item></channel></rdf:RDF>"
    )
    feed = parse_feed(doc)
    assert feed.title == "NS"
    assert [item.title for item in feed.items] == ["Inside"]


@pytest.mark.parametrize("doc", [b"", b"<rss><channel>", b"not xml at all"])
def test_parse_feed_rejects_malformed(doc):
    with pytest.raises(ET.ParseError):
        parse_feed(doc)


def test_fetch_feed_sends_user_agent(server):
    feed = fetch_feed(f"http://127.0.0.1:{server.server_port}/feed.xml", timeout=5)
    assert feed == parse_feed(SAMPLE)
    assert server.user_agents == ["gator"]


def test_fetch_feed_parses_error_responses(server):
    server.status = 404
    feed = fetch_feed(f"http://127.0.0.1:{server.server_port}/missing", timeout=5)
    assert len(feed.items) == 2


def test_fetch_feed_raises_on_bad_body(server):
    server.body = b"<html><body>oops"
    with pytest.raises(ET.ParseError):
        fetch_feed(f"http://127.0.0.1:{server.server_port}/feed.xml", timeout=5)


def test_parse_pub_date_rfc822():
    assert parse_pub_date("Mon, 02 Jan 2006 15:04:05 +0000") == datetime(
        2006, 1, 2, 15, 4, 5, tzinfo=timezone.utc
    )


def test_parse_pub_date_iso_with_offset():
    parsed = parse_pub_date("2024-03-01T10:00:00+02:00")
    assert parsed.utcoffset() == timedelta(hours=2)
    assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2024, 3, 1, 10)


def test_parse_pub_date_naive_is_utc():
    assert parse_pub_date("2024-03-01 10:00:00") == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)


@pytest.mark.parametrize("text", ["", "   ", "not a date"])
def test_parse_pub_date_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_pub_date(text)