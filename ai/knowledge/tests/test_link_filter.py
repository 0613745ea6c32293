"""Tests for link filtering."""

from knowledge.ingestion.link_filter import filter_links, has_static_extension
from knowledge.ingestion.models import CrawlOptions

BASE = "https://example.com/docs"


def test_external_links_dropped_by_default():
    links = ["https://example.com/pricing", "https://other.org/pricing", "https://sub.example.com/x"]

    assert filter_links(links, BASE) == ["https://example.com/pricing"]


def test_external_links_kept_when_allowed():
    links = ["https://example.com/pricing", "https://other.org/pricing"]

    assert filter_links(links, BASE, CrawlOptions(follow_external_links=True)) == links


def test_static_assets_dropped():
    links = [
        "https://example.com/logo.png",
        "https://example.com/styles/site.CSS",
        "https://example.com/files/report.pdf",
        "https://example.com/about.html",
        "https://example.com/v1.2/guide",
    ]

    assert filter_links(links, BASE) == ["https://example.com/about.html", "https://example.com/v1.2/guide"]


def test_non_http_schemes_dropped():
    links = ["mailto:hello@example.com", "javascript:void(0)", "ftp://example.com/file", "https://example.com/ok"]

    assert filter_links(links, BASE) == ["https://example.com/ok"]


def test_include_and_exclude_paths():
    links = [
        "https://example.com/blog/first",
        "https://example.com/blog/drafts/second",
        "https://example.com/shop/item",
    ]
    options = CrawlOptions(include_paths=["/blog"], exclude_paths=["/drafts"])

    assert filter_links(links, BASE, options) == ["https://example.com/blog/first"]


def test_duplicates_removed_in_order():
    links = ["https://example.com/b", "https://example.com/a", "https://example.com/b"]

    assert filter_links(links, BASE) == ["https://example.com/b", "https://example.com/a"]


def test_has_static_extension():
    assert has_static_extension("/img/photo.JPEG")
    assert not has_static_extension("/")
    assert not has_static_extension("/release.notes/index")
