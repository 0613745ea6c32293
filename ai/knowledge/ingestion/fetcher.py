"""Single-page fetcher."""

import logging
from typing import Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from knowledge.core.config import settings
from knowledge.core.constants import FETCH_ACCEPT_HEADERS
from knowledge.core.errors import FetchError
from knowledge.ingestion.models import FetchedPage
from knowledge.ingestion.parse_html import parse_page

logger = logging.getLogger(__name__)


class PageFetcher:
    """Fetches one URL and extracts its text, links and metadata."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        user_agent: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        max_redirects: Optional[int] = None,
        attempts: Optional[int] = None,
    ):
        self.user_agent = user_agent or settings.crawl_user_agent
        self.timeout_ms = timeout_ms or settings.crawl_timeout_ms
        self.attempts = max(1, attempts or settings.crawl_fetch_attempts)
        self._owns_client = client is None
        self.client = client or httpx.Client(
            follow_redirects=True,
            max_redirects=max_redirects or settings.crawl_max_redirects,
            headers=FETCH_ACCEPT_HEADERS,
        )

    def _get(self, url: str, timeout: float, user_agent: str) -> httpx.Response:
        # Only connection failures are retried; timeouts and bad statuses are final
        retrying = Retrying(
            retry=retry_if_exception_type(httpx.ConnectError),
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(multiplier=0.5, max=4),
            reraise=True,
        )
        return retrying(
            self.client.get,
            url,
            timeout=timeout,
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )

    def fetch(
        self,
        url: str,
        timeout_ms: Optional[int] = None,
        user_agent: Optional[str] = None,
    ) -> FetchedPage:
        """Fetch a single URL.

        Raises:
            FetchError: on timeout, network failure, too many redirects or
                a final status >= 400.
        """
        timeout = (timeout_ms or self.timeout_ms) / 1000.0
        try:
            response = self._get(url, timeout, user_agent or self.user_agent)
        except httpx.TimeoutException as e:
            raise FetchError(url, f"Timed out fetching {url}: {e}") from e
        except httpx.TooManyRedirects as e:
            raise FetchError(url, f"Too many redirects for {url}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"Failed to fetch {url}: {e}") from e

        if response.status_code >= 400:
            raise FetchError(
                url,
                f"Failed to fetch {url}: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "text/html")
        try:
            page = parse_page(
                response.text,
                url,
                status_code=response.status_code,
                content_type=content_type.split(";")[0].strip() or "text/html",
            )
        except Exception as e:
            raise FetchError(url, f"Failed to parse {url}: {e}", status_code=response.status_code) from e
        logger.debug(f"Fetched {url}: {page.word_count} words, {len(page.links)} links")
        return page

    def close(self) -> None:
        """Close HTTP client."""
        if self._owns_client:
            self.client.close()
