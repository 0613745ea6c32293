"""HTML parsing and extraction."""

import logging
from urllib.parse import urldefrag, urljoin

from bs4 import BeautifulSoup

from knowledge.core.constants import BOILERPLATE_SELECTORS, MAIN_CONTENT_SELECTORS
from knowledge.core.utils import count_words, is_http_url, normalize_text
from knowledge.ingestion.models import FetchedPage, Headings, PageMetadata

logger = logging.getLogger(__name__)


def extract_title(soup: BeautifulSoup) -> str:
    """Extract page title, falling back to the first h1."""
    title_tag = soup.find("title")
    if title_tag:
        title = normalize_text(title_tag.get_text())
        if title:
            return title
    h1 = soup.find("h1")
    if h1:
        return normalize_text(h1.get_text())
    return ""


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return normalize_text(tag["content"])
    return ""


def extract_metadata(soup: BeautifulSoup) -> PageMetadata:
    """Read description, keywords and author from standard meta tags."""
    description = _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )
    keywords = [k.strip() for k in _meta_content(soup, name="keywords").split(",") if k.strip()]
    author = _meta_content(soup, name="author")
    return PageMetadata(description=description, keywords=keywords, author=author)


def _resolve_all(soup: BeautifulSoup, tag: str, attr: str, base_url: str) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for el in soup.find_all(tag):
        value = el.get(attr)
        if not value:
            continue
        try:
            absolute, _ = urldefrag(urljoin(base_url, value.strip()))
        except ValueError:
            continue
        if not is_http_url(absolute) or absolute in seen:
            continue
        seen.add(absolute)
        out.append(absolute)
    return out


def extract_links(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Resolve every anchor href to an absolute, deduplicated URL list."""
    return _resolve_all(soup, "a", "href", base_url)


def extract_images(soup: BeautifulSoup, base_url: str) -> list[str]:
    return _resolve_all(soup, "img", "src", base_url)


def extract_headings(soup: BeautifulSoup) -> Headings:
    """Collect h1/h2/h3 text."""
    found: dict[str, list[str]] = {}
    for level in ("h1", "h2", "h3"):
        found[level] = [
            text for text in (normalize_text(tag.get_text()) for tag in soup.find_all(level)) if text
        ]
    return Headings(**found)


def extract_main_text(soup: BeautifulSoup) -> str:
    """Strip boilerplate and return visible text of the main content container.

    Mutates ``soup``.
    """
    for el in soup.select(BOILERPLATE_SELECTORS):
        el.decompose()

    container = None
    for selector in MAIN_CONTENT_SELECTORS:
        container = soup.select_one(selector)
        if container is not None:
            break
    if container is None:
        container = soup.body or soup

    return normalize_text(container.get_text(separator=" "))


def parse_page(
    html: str,
    url: str,
    status_code: int = 200,
    content_type: str = "text/html",
) -> FetchedPage:
    """Parse an HTML document into a FetchedPage."""
    soup = BeautifulSoup(html, "lxml")

    title = extract_title(soup)
    metadata = extract_metadata(soup)
    links = extract_links(soup, url)
    images = extract_images(soup, url)
    headings = extract_headings(soup)
    # Boilerplate removal is destructive, so it runs last
    content = extract_main_text(soup)

    return FetchedPage(
        url=url,
        status_code=status_code,
        content_type=content_type,
        title=title,
        content=content,
        metadata=metadata,
        links=links,
        images=images,
        headings=headings,
        word_count=count_words(content),
    )
