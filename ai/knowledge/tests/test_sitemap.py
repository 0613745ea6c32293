"""Tests for sitemap discovery."""

import httpx

from conftest import FakeSite
from knowledge.ingestion.sitemap import SitemapDiscoverer, parse_sitemap

URLSET = b"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url>
    <loc>https://example.com/</loc>
    <lastmod>2024-03-01T10:00:00Z</lastmod>
    <changefreq>weekly</changefreq>
    <priority>1.0</priority>
  </url>
  <url><loc> https://example.com/pricing </loc></url>
  <url><priority>0.5</priority></url>
</urlset>
"""


def test_parse_urlset():
    urls, children = parse_sitemap(URLSET)

    assert children == []
    assert [u.url for u in urls] == ["https://example.com/", "https://example.com/pricing"]
    assert urls[0].change_freq == "weekly"
    assert urls[0].priority == 1.0
    assert urls[0].last_modified.year == 2024
    assert urls[1].last_modified is None


def test_parse_sitemap_index():
    index = b"""<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
      <sitemap><loc>https://example.com/sitemap-pages.xml</loc></sitemap>
      <sitemap><loc>https://example.com/sitemap-blog.xml</loc></sitemap>
    </sitemapindex>"""

    urls, children = parse_sitemap(index)

    assert urls == []
    assert children == ["https://example.com/sitemap-pages.xml", "https://example.com/sitemap-blog.xml"]


def test_discover_follows_index():
    site = FakeSite(
        {
            "https://example.com/sitemap.xml": (
                '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
                "<sitemap><loc>https://example.com/sitemap-pages.xml</loc></sitemap>"
                "</sitemapindex>"
            ),
            "https://example.com/sitemap-pages.xml": URLSET.decode(),
        }
    )

    urls = SitemapDiscoverer(client=site.client()).discover("https://example.com/some/page")

    assert [u.url for u in urls] == ["https://example.com/", "https://example.com/pricing"]


def test_discover_missing_sitemap_returns_empty():
    site = FakeSite({})

    assert SitemapDiscoverer(client=site.client()).discover("https://example.com/") == []


def test_discover_malformed_sitemap_returns_empty():
    site = FakeSite({"https://example.com/sitemap.xml": "<urlset><url><loc>broken"})

    assert SitemapDiscoverer(client=site.client()).discover("https://example.com/") == []


def test_discover_network_error_returns_empty():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))

    assert SitemapDiscoverer(client=client).discover("https://example.com/") == []


def test_discover_caps_url_count():
    entries = "".join(f"<url><loc>https://example.com/p{i}</loc></url>" for i in range(10))
    site = FakeSite({"https://example.com/sitemap.xml": f"<urlset>{entries}</urlset>"})

    urls = SitemapDiscoverer(client=site.client(), max_urls=3).discover("https://example.com/")

    assert len(urls) == 3


def test_discover_skips_broken_child_sitemap():
    """A missing or malformed child in an index does not discard the others."""
    site = FakeSite(
        {
            "https://example.com/sitemap.xml": (
                "<sitemapindex>"
                "<sitemap><loc>https://example.com/s1.xml</loc></sitemap>"
                "<sitemap><loc>https://example.com/s2.xml</loc></sitemap>"
                "<sitemap><loc>https://example.com/s3.xml</loc></sitemap>"
                "</sitemapindex>"
            ),
            "https://example.com/s1.xml": "<urlset><url><loc>https://example.com/x</loc></url></urlset>",
            "https://example.com/s3.xml": "<urlset><url><loc>broken",
        }
    )

    urls = SitemapDiscoverer(client=site.client()).discover("https://example.com/")

    assert [u.url for u in urls] == ["https://example.com/x"]


def test_discover_sends_crawler_user_agent():
    seen = []

    def handler(request):
        seen.append(request.headers["user-agent"])
        return httpx.Response(404)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    SitemapDiscoverer(client=client, user_agent="TestBot/1.0").discover("https://example.com/")

    assert seen == ["TestBot/1.0"]


def test_close_only_closes_owned_client():
    injected = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    borrowed = SitemapDiscoverer(client=injected)
    owned = SitemapDiscoverer()

    borrowed.close()
    owned.close()

    assert not injected.is_closed
    assert owned.client.is_closed
    injected.close()
