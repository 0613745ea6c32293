"""Crawl policy for outbound links."""

from typing import Iterable, Optional
from urllib.parse import urlparse

from knowledge.core.constants import STATIC_EXTENSIONS
from knowledge.ingestion.models import CrawlOptions


def has_static_extension(path: str) -> bool:
    last = path.rsplit("/", 1)[-1]
    if "." not in last:
        return False
    return last.rsplit(".", 1)[-1].lower() in STATIC_EXTENSIONS


def filter_links(
    links: Iterable[str],
    base_url: str,
    options: Optional[CrawlOptions] = None,
) -> list[str]:
    """Filter a page's links down to the ones worth following."""
    options = options or CrawlOptions()
    base_host = (urlparse(base_url).hostname or "").lower()

    seen: set[str] = set()
    kept: list[str] = []
    for link in links:
        try:
            parsed = urlparse(link)
            host = (parsed.hostname or "").lower()
        except ValueError:
            continue
        if parsed.scheme not in ("http", "https") or not host:
            continue
        if not options.follow_external_links and host != base_host:
            continue

        path = parsed.path or "/"
        if has_static_extension(path):
            continue
        if options.include_paths and not any(p in path for p in options.include_paths):
            continue
        if options.exclude_paths and any(p in path for p in options.exclude_paths):
            continue

        if link not in seen:
            seen.add(link)
            kept.append(link)
    return kept
