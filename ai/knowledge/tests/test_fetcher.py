"""Tests for page fetching and HTML extraction."""

import httpx
import pytest

from knowledge.core.errors import FetchError, TransientFetchError
from knowledge.ingestion.fetcher import PageFetcher
from knowledge.ingestion.parse_html import parse_page

ARTICLE = """
<html>
  <head>
    <title>  Opening   Hours </title>
    <meta name="description" content="When the shop is open">
    <meta name="keywords" content="hours, shop , ">
    <meta name="author" content="Shop Staff">
  </head>
  <body>
    <nav><a href="/menu">Menu</a></nav>
    <script>var tracking = true;</script>
    <div class="sidebar">Sidebar promo</div>
    <main>
      <h1>Opening Hours</h1>
      <h2>Weekdays</h2>
      <p>We open at nine and close at five.</p>
      <a href="/contact#form">Contact</a>
      <a href="https://other.org/page">Partner</a>
      <a href="mailto:shop@example.com">Mail</a>
      <img src="/img/shop.png">
    </main>
    <footer>Copyright footer</footer>
  </body>
</html>
"""


def test_parse_page_extracts_main_content():
    """Boilerplate is dropped and only the main container's text is kept."""
    page = parse_page(ARTICLE, "https://example.com/hours")

    assert page.title == "Opening Hours"
    assert "We open at nine and close at five." in page.content
    assert "tracking" not in page.content
    assert "Sidebar promo" not in page.content
    assert "Copyright footer" not in page.content
    assert page.word_count == len(page.content.split())


def test_parse_page_links_metadata_and_headings():
    page = parse_page(ARTICLE, "https://example.com/hours")

    assert page.links == [
        "https://example.com/menu",
        "https://example.com/contact",
        "https://other.org/page",
    ]
    assert page.images == ["https://example.com/img/shop.png"]
    assert page.metadata.description == "When the shop is open"
    assert page.metadata.keywords == ["hours", "shop"]
    assert page.metadata.author == "Shop Staff"
    assert page.headings.h1 == ["Opening Hours"]
    assert page.headings.h2 == ["Weekdays"]


def test_parse_page_falls_back_to_body_and_h1_title():
    html = "<html><body><h1>Plain Page</h1><p>Just some text.</p></body></html>"

    page = parse_page(html, "https://example.com/plain")

    assert page.title == "Plain Page"
    assert page.content == "Plain Page Just some text."


def fetcher_for(handler, **kwargs) -> PageFetcher:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return PageFetcher(client=client, **kwargs)


def test_fetch_success_sends_user_agent():
    seen = {}

    def handler(request):
        seen["user_agent"] = request.headers["user-agent"]
        return httpx.Response(200, text=ARTICLE, headers={"content-type": "text/html; charset=utf-8"})

    page = fetcher_for(handler).fetch("https://example.com/hours", user_agent="TestBot/1.0")

    assert seen["user_agent"] == "TestBot/1.0"
    assert page.status_code == 200
    assert page.content_type == "text/html"
    assert page.title == "Opening Hours"


def test_fetch_404_raises_with_status():
    fetcher = fetcher_for(lambda request: httpx.Response(404, text="gone"))

    with pytest.raises(FetchError) as exc_info:
        fetcher.fetch("https://example.com/missing")

    assert exc_info.value.http_status == 404
    assert exc_info.value.url == "https://example.com/missing"
    assert isinstance(exc_info.value, TransientFetchError)


def test_fetch_timeout_raises():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(FetchError) as exc_info:
        fetcher_for(handler).fetch("https://example.com/slow", timeout_ms=50)

    assert exc_info.value.http_status is None
    assert "Timed out" in exc_info.value.message


def test_fetch_retries_connection_errors():
    calls = []

    def handler(request):
        calls.append(request.url)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, text=ARTICLE)

    page = fetcher_for(handler, attempts=2).fetch("https://example.com/hours")

    assert len(calls) == 2
    assert page.title == "Opening Hours"


def test_fetch_follows_redirects():
    def handler(request):
        if request.url.path == "/old":
            return httpx.Response(301, headers={"location": "https://example.com/hours"})
        return httpx.Response(200, text=ARTICLE)

    page = fetcher_for(handler).fetch("https://example.com/old")

    assert page.title == "Opening Hours"
