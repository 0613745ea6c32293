"""Utility functions."""

import hashlib
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urldefrag, urljoin, urlparse


def normalize_url(url: str, base_url: Optional[str] = None) -> str:
    """Normalize and canonicalize URL for dedup."""
    if base_url:
        url = urljoin(base_url, url)
    url, _ = urldefrag(url.strip())
    parsed = urlparse(url)

    path = parsed.path or "/"
    # Remove trailing slash (except for root)
    if path.endswith("/") and len(path) > 1:
        path = path[:-1]

    normalized = f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}"
    if parsed.query:
        normalized += f"?{parsed.query}"
    return normalized


def is_http_url(url: str) -> bool:
    """Check that a URL is absolute http(s) with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def origin_of(url: str) -> str:
    """Return scheme://host[:port] for a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def compute_content_hash(content: str | bytes) -> str:
    """Compute SHA256 hash of content."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso8601(s: Optional[str]) -> Optional[datetime]:
    """Parse ISO8601 string to datetime."""
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def normalize_text(text: str) -> str:
    """Normalize whitespace in text."""
    # Replace multiple whitespace with single space
    text = re.sub(r"\s+", " ", text)
    # Remove leading/trailing whitespace
    return text.strip()


def count_words(text: str) -> int:
    return len(text.split())


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate text to max length with suffix."""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix


def safe_filename(filename: str) -> str:
    """Strip directory parts and unsafe characters from an uploaded filename."""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name or "upload"
