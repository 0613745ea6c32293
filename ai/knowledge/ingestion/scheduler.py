"""Breadth-first crawl scheduler with cooperative cancellation."""

import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional, Protocol
from urllib.parse import urlparse

from knowledge.core.config import settings
from knowledge.core.constants import EVENT_CRAWL_COMPLETED, EVENT_CRAWL_ERROR, EVENT_CRAWL_PROGRESS
from knowledge.core.errors import NotFoundError, TransientFetchError, ValidationError
from knowledge.core.utils import is_http_url, normalize_url, utcnow
from knowledge.ingestion.chunker import chunk_text
from knowledge.ingestion.events import EventPublisher, NullPublisher, safe_publish
from knowledge.ingestion.fetcher import PageFetcher
from knowledge.ingestion.link_filter import filter_links
from knowledge.ingestion.models import (
    CrawlJob,
    CrawlOptions,
    CrawlStatus,
    CrawlStatusReport,
    FetchedPage,
    PageError,
    SourceType,
)
from knowledge.ingestion.sitemap import SitemapDiscoverer
from knowledge.ingestion.storage import ContentStore

logger = logging.getLogger(__name__)


class JobRegistry(Protocol):
    """Holds the per-job active flag; False means cancellation was requested."""

    def get(self, job_id: str) -> Optional[bool]: ...

    def set(self, job_id: str, active: bool) -> None: ...

    def delete(self, job_id: str) -> None: ...


class InMemoryJobRegistry:
    """Process-local registry. Flags are lost on restart."""

    def __init__(self) -> None:
        self._flags: dict[str, bool] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> Optional[bool]:
        with self._lock:
            return self._flags.get(job_id)

    def set(self, job_id: str, active: bool) -> None:
        with self._lock:
            self._flags[job_id] = active

    def delete(self, job_id: str) -> None:
        with self._lock:
            self._flags.pop(job_id, None)


def page_title(page: FetchedPage) -> str:
    return page.title or urlparse(page.url).path or page.url


class CrawlScheduler:
    """Runs crawl jobs in the background and owns their lifecycle.

    Depth convention: the start URL (and any sitemap URLs) form level 0 and
    ``max_depth`` counts levels, so ``max_depth=1`` fetches level 0 only.
    Links found on level ``d`` are fetched on level ``d + 1``. Within a job
    fetches are sequential, separated by the politeness delay.
    """

    def __init__(
        self,
        store: ContentStore,
        fetcher: Optional[PageFetcher] = None,
        sitemap: Optional[SitemapDiscoverer] = None,
        publisher: Optional[EventPublisher] = None,
        registry: Optional[JobRegistry] = None,
        max_workers: Optional[int] = None,
        chunk_size: Optional[int] = None,
    ):
        self.store = store
        self.fetcher = fetcher or PageFetcher()
        self.sitemap = sitemap or SitemapDiscoverer()
        self.publisher = publisher or NullPublisher()
        self.registry = registry or InMemoryJobRegistry()
        self.chunk_size = chunk_size or settings.crawl_chunk_size
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.crawl_workers,
            thread_name_prefix="crawl",
        )
        self._futures: dict[str, Future] = {}
        self._futures_lock = threading.Lock()

    # Public operations

    def start_crawl(self, chatbot_id: str, start_url: str, options: Optional[CrawlOptions] = None) -> str:
        """Create a QUEUED job, launch its traversal and return the job id."""
        if not is_http_url(start_url):
            raise ValidationError("Invalid URL provided", code="INVALID_URL", details={"url": start_url})
        options = options or CrawlOptions()

        job = CrawlJob(
            id=str(uuid.uuid4()),
            chatbot_id=chatbot_id,
            start_url=start_url,
            max_depth=options.max_depth,
            max_pages=options.max_pages,
        )
        self.store.save_job(job)
        self.registry.set(job.id, True)

        future = self._executor.submit(self._run, job, options)
        with self._futures_lock:
            self._futures[job.id] = future
        future.add_done_callback(lambda _: self._forget(job.id))

        logger.info(f"Queued crawl {job.id} for chatbot {chatbot_id}: {start_url}")
        return job.id

    def get_crawl_status(self, job_id: str) -> CrawlStatusReport:
        job = self.store.get_job(job_id)
        if job is None:
            raise NotFoundError("Crawl not found", code="CRAWL_NOT_FOUND", details={"job_id": job_id})
        return CrawlStatusReport.from_job(job, is_active=self.registry.get(job_id) is True)

    def cancel_crawl(self, job_id: str) -> bool:
        """Request cancellation; observed between URL fetches.

        Returns False when the job already finished or is not running in
        this process.
        """
        job = self.store.get_job(job_id)
        if job is None:
            raise NotFoundError("Crawl not found", code="CRAWL_NOT_FOUND", details={"job_id": job_id})
        if job.status.is_terminal or self.registry.get(job_id) is None:
            return False
        self.registry.set(job_id, False)
        logger.info(f"Cancellation requested for crawl {job_id}")
        return True

    def scrape_single_page(self, chatbot_id: str, url: str) -> FetchedPage:
        """Fetch one page and store its chunks synchronously."""
        if not is_http_url(url):
            raise ValidationError("Invalid URL provided", code="INVALID_URL", details={"url": url})
        page = self.fetcher.fetch(url)
        self._store_page(chatbot_id, page)
        return page

    def list_content(self, chatbot_id: str) -> list[dict[str, Any]]:
        """Summarize stored website pages for a chatbot."""
        pages: dict[str, dict[str, Any]] = {}
        for chunk in self.store.list_chunks(chatbot_id):
            if chunk.source_type != SourceType.WEBSITE:
                continue
            entry = pages.setdefault(
                chunk.source_ref,
                {"id": chunk.source_ref, "title": chunk.title.split(" - Part ")[0], "url": chunk.source_ref, "wordCount": 0},
            )
            entry["wordCount"] += chunk.word_count
        return list(pages.values())

    def wait(self, job_id: str, timeout: Optional[float] = None) -> CrawlStatusReport:
        """Block until a job started by this scheduler finishes."""
        with self._futures_lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.get_crawl_status(job_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        self.fetcher.close()
        self.sitemap.close()

    # Traversal

    def _forget(self, job_id: str) -> None:
        with self._futures_lock:
            self._futures.pop(job_id, None)

    def _is_cancelled(self, job_id: str) -> bool:
        return self.registry.get(job_id) is not True

    def _run(self, job: CrawlJob, options: CrawlOptions) -> None:
        try:
            job.status = CrawlStatus.RUNNING
            job.started_at = utcnow()
            self.store.save_job(job)
            self._publish_progress(job, options, current_url=None, depth=0)

            cancelled = self._traverse(job, options)

            job.status = CrawlStatus.CANCELLED if cancelled else CrawlStatus.COMPLETED
            job.finished_at = utcnow()
            self.store.save_job(job)

            logger.info(
                f"Crawl {job.id} {job.status.value.lower()}: {job.successful_pages} pages scraped, "
                f"{job.failed_pages} failed"
            )
            safe_publish(
                self.publisher,
                EVENT_CRAWL_COMPLETED,
                job.id,
                {
                    "jobId": job.id,
                    "status": job.status.value,
                    "totals": {
                        "totalPages": job.total_pages,
                        "successfulPages": job.successful_pages,
                        "failedPages": job.failed_pages,
                    },
                    "durationSeconds": job.duration_seconds,
                    "errors": [e.model_dump() for e in job.errors],
                },
            )
        except Exception as e:
            logger.error(f"Crawl {job.id} failed: {e}", exc_info=True)
            job.status = CrawlStatus.FAILED
            job.error = str(e)
            job.finished_at = utcnow()
            try:
                self.store.save_job(job)
            except Exception as save_error:
                logger.error(f"Could not record failure of crawl {job.id}: {save_error}")
            safe_publish(
                self.publisher,
                EVENT_CRAWL_ERROR,
                job.id,
                {"jobId": job.id, "status": job.status.value, "error": str(e), "timestamp": utcnow().isoformat()},
            )
        finally:
            self.registry.delete(job.id)

    def _seed_frontier(self, job: CrawlJob, seen: set[str]) -> list[str]:
        frontier = [job.start_url]
        seen.add(normalize_url(job.start_url))
        for entry in self.sitemap.discover(job.start_url):
            key = normalize_url(entry.url)
            if is_http_url(entry.url) and key not in seen:
                seen.add(key)
                frontier.append(entry.url)
        return frontier

    def _traverse(self, job: CrawlJob, options: CrawlOptions) -> bool:
        """Walk the site level by level. Returns True if cancellation was observed."""
        seen: set[str] = set()
        visited: set[str] = set()
        frontier = self._seed_frontier(job, seen)
        delay = options.delay_ms / 1000.0
        fetches = 0
        depth = 0

        while frontier and depth < options.max_depth and job.successful_pages < options.max_pages:
            next_level: list[str] = []

            for url in frontier:
                if job.successful_pages >= options.max_pages:
                    break
                key = normalize_url(url)
                if key in visited:
                    continue
                if fetches and delay > 0:
                    time.sleep(delay)
                if self._is_cancelled(job.id):
                    return True

                visited.add(key)
                job.total_pages += 1
                fetches += 1

                try:
                    page = self.fetcher.fetch(url, timeout_ms=options.timeout_ms, user_agent=options.user_agent)
                except TransientFetchError as e:
                    job.failed_pages += 1
                    job.errors.append(PageError(url=url, message=e.message, status_code=e.details.get("status_code")))
                    logger.warning(f"Failed to scrape {url}: {e.message}")
                    self.store.save_job(job)
                    self._publish_progress(job, options, current_url=url, depth=depth)
                    continue

                job.successful_pages += 1
                self._store_page(job.chatbot_id, page)
                self.store.save_job(job)
                self._publish_progress(job, options, current_url=url, depth=depth)

                if depth < options.max_depth - 1:
                    for link in filter_links(page.links, url, options):
                        link_key = normalize_url(link)
                        if link_key not in seen:
                            seen.add(link_key)
                            next_level.append(link)

            frontier = next_level
            depth += 1

        return False

    def _store_page(self, chatbot_id: str, page: FetchedPage) -> int:
        chunks = chunk_text(
            page.content,
            self.chunk_size,
            chatbot_id=chatbot_id,
            source_ref=page.url,
            source_type=SourceType.WEBSITE,
            title=page_title(page),
        )
        return self.store.replace_chunks(chatbot_id, page.url, chunks)

    def _publish_progress(self, job: CrawlJob, options: CrawlOptions, current_url: Optional[str], depth: int) -> None:
        percentage = min(100, round(job.successful_pages / options.max_pages * 100))
        safe_publish(
            self.publisher,
            EVENT_CRAWL_PROGRESS,
            job.id,
            {
                "jobId": job.id,
                "status": job.status.value,
                "totalPages": job.total_pages,
                "completedPages": job.successful_pages,
                "failedPages": job.failed_pages,
                "percentage": percentage,
                "currentUrl": current_url,
                "currentDepth": depth,
            },
        )
