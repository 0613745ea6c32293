"""Shared fixtures: temp storage and a mocked website."""

from collections import Counter

import httpx
import pytest

from knowledge.core.utils import normalize_url
from knowledge.ingestion.fetcher import PageFetcher
from knowledge.ingestion.scheduler import CrawlScheduler
from knowledge.ingestion.sitemap import SitemapDiscoverer
from knowledge.ingestion.storage import BlobStore, ContentStore


class FakeSite:
    """In-memory website served through httpx.MockTransport.

    ``pages`` maps URL to an HTML string, or to a ``(status, body)`` tuple.
    Unknown URLs return 404. Every request is counted by normalized URL.
    """

    def __init__(self, pages: dict):
        self.pages = {normalize_url(url): value for url, value in pages.items()}
        self.requests: Counter = Counter()

    def handler(self, request: httpx.Request) -> httpx.Response:
        key = normalize_url(str(request.url))
        self.requests[key] += 1
        value = self.pages.get(key)
        if value is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(value, tuple):
            status, body = value
        else:
            status, body = 200, value
        content_type = "application/xml" if key.endswith(".xml") else "text/html; charset=utf-8"
        return httpx.Response(status, text=body, headers={"content-type": content_type})

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def fetched(self) -> set[str]:
        """Normalized URLs requested, excluding sitemap lookups."""
        return {url for url in self.requests if not url.endswith("/sitemap.xml")}


def html_page(title: str, body: str, links: list[str] = ()) -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return (
        f"<html><head><title>{title}</title></head>"
        f"<body><nav>{anchors}</nav><main><h1>{title}</h1><p>{body}</p></main></body></html>"
    )


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / "data")


@pytest.fixture
def store(data_dir):
    """Create content store fixture."""
    return ContentStore(data_dir)


@pytest.fixture
def blobs(data_dir):
    return BlobStore(data_dir)


@pytest.fixture
def make_scheduler(store):
    """Build a scheduler whose fetcher and sitemap lookup hit a FakeSite."""
    schedulers = []

    def factory(site: FakeSite, **kwargs) -> CrawlScheduler:
        client = site.client()
        scheduler = CrawlScheduler(
            kwargs.pop("store", store),
            fetcher=PageFetcher(client=client, attempts=1),
            sitemap=SitemapDiscoverer(client=client),
            max_workers=1,
            chunk_size=kwargs.pop("chunk_size", 50),
            **kwargs,
        )
        schedulers.append(scheduler)
        return scheduler

    yield factory
    for scheduler in schedulers:
        scheduler.shutdown()
