"""Sitemap parsing and URL discovery."""

import logging
from typing import Optional
from xml.etree import ElementTree as ET

import httpx

from knowledge.core.config import settings
from knowledge.core.constants import FETCH_ACCEPT_HEADERS, SITEMAP_PATH
from knowledge.core.utils import origin_of, parse_iso8601
from knowledge.ingestion.models import SitemapUrl

logger = logging.getLogger(__name__)


def _local(tag: str) -> str:
    """Strip an XML namespace from a tag name."""
    return tag.rsplit("}", 1)[-1]


def _child_text(elem: ET.Element, name: str) -> Optional[str]:
    for child in elem:
        if _local(child.tag) == name and child.text:
            return child.text.strip()
    return None


def parse_sitemap(content: bytes) -> tuple[list[SitemapUrl], list[str]]:
    """Parse sitemap XML into url entries and child sitemap locations."""
    root = ET.fromstring(content)
    urls: list[SitemapUrl] = []
    children: list[str] = []

    if _local(root.tag) == "sitemapindex":
        for sitemap in root:
            loc = _child_text(sitemap, "loc")
            if loc:
                children.append(loc)
        return urls, children

    for url_elem in root:
        if _local(url_elem.tag) != "url":
            continue
        loc = _child_text(url_elem, "loc")
        if not loc:
            continue
        priority = _child_text(url_elem, "priority")
        try:
            priority_value = float(priority) if priority else None
        except ValueError:
            priority_value = None
        urls.append(
            SitemapUrl(
                url=loc,
                last_modified=parse_iso8601(_child_text(url_elem, "lastmod")),
                change_freq=_child_text(url_elem, "changefreq"),
                priority=priority_value,
            )
        )
    return urls, children


class SitemapDiscoverer:
    """Best-effort sitemap lookup used to seed a crawl frontier."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout_ms: Optional[int] = None,
        max_urls: Optional[int] = None,
        max_children: Optional[int] = None,
        user_agent: Optional[str] = None,
    ):
        self._owns_client = client is None
        self.client = client or httpx.Client(follow_redirects=True, headers=FETCH_ACCEPT_HEADERS)
        self.user_agent = user_agent or settings.crawl_user_agent
        self.timeout = (timeout_ms or settings.sitemap_timeout_ms) / 1000.0
        self.max_urls = max_urls or settings.sitemap_max_urls
        self.max_children = settings.sitemap_max_children if max_children is None else max_children

    def _fetch(self, sitemap_url: str) -> tuple[list[SitemapUrl], list[str]]:
        response = self.client.get(
            sitemap_url,
            timeout=self.timeout,
            headers={**FETCH_ACCEPT_HEADERS, "User-Agent": self.user_agent},
            follow_redirects=True,
        )
        response.raise_for_status()
        return parse_sitemap(response.content)

    def discover(self, origin_url: str) -> list[SitemapUrl]:
        """Fetch {origin}/sitemap.xml. Returns [] if the root sitemap fails."""
        sitemap_url = f"{origin_of(origin_url)}{SITEMAP_PATH}"
        try:
            urls, children = self._fetch(sitemap_url)
        except (httpx.HTTPError, ET.ParseError, ValueError) as e:
            logger.debug(f"No sitemap found for {origin_url}: {e}")
            return []

        # A sitemap index is followed one level deep; a broken child is skipped
        for child in children[: self.max_children]:
            if len(urls) >= self.max_urls:
                break
            try:
                child_urls, _ = self._fetch(child)
            except (httpx.HTTPError, ET.ParseError, ValueError) as e:
                logger.debug(f"Skipping child sitemap {child}: {e}")
                continue
            urls.extend(child_urls)

        urls = urls[: self.max_urls]
        logger.info(f"Found {len(urls)} URLs in sitemap for {origin_url}")
        return urls

    def close(self) -> None:
        """Close HTTP client."""
        if self._owns_client:
            self.client.close()
