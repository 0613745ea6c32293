"""Ingestion CLI script."""

import logging
import mimetypes
from pathlib import Path
from typing import Optional

import typer
from tqdm import tqdm

from knowledge.core.config import settings
from knowledge.core.constants import EVENT_CRAWL_PROGRESS, EXTENSION_MIME_TYPES
from knowledge.core.errors import KnowledgeBaseError
from knowledge.core.logging import setup_logging
from knowledge.ingestion.events import EventBroadcaster
from knowledge.ingestion.models import CrawlOptions, FileProcessingOptions, UploadedFile
from knowledge.ingestion.processor import FileProcessor
from knowledge.ingestion.scheduler import CrawlScheduler
from knowledge.ingestion.storage import BlobStore, ContentStore

setup_logging()
logger = logging.getLogger(__name__)

app = typer.Typer()


def _split_csv(value: Optional[str]) -> list[str]:
    return [s.strip() for s in (value.split(",") if value else []) if s.strip()]


@app.command()
def crawl(
    chatbot_id: str = typer.Argument(..., help="Chatbot that owns the crawled content"),
    start_url: str = typer.Argument(..., help="URL to start crawling from"),
    max_depth: int = typer.Option(settings.crawl_max_depth, help="Number of link levels to crawl (1 = start page only)"),
    max_pages: int = typer.Option(settings.crawl_max_pages, help="Maximum number of pages to store"),
    delay_ms: int = typer.Option(settings.crawl_delay_ms, help="Politeness delay between fetches"),
    include_paths: Optional[str] = typer.Option(None, help="Comma-separated path fragments to ALLOW"),
    exclude_paths: Optional[str] = typer.Option(None, help="Comma-separated path fragments to BLOCK"),
    follow_external: bool = typer.Option(False, help="Follow links to other hosts"),
    data_dir: str = typer.Option(settings.data_dir, help="Storage directory"),
):
    """Crawl a website into a chatbot's knowledge base."""
    options = CrawlOptions(
        max_depth=max_depth,
        max_pages=max_pages,
        delay_ms=delay_ms,
        include_paths=_split_csv(include_paths),
        exclude_paths=_split_csv(exclude_paths),
        follow_external_links=follow_external,
    )
    broadcaster = EventBroadcaster()
    scheduler = CrawlScheduler(ContentStore(data_dir), publisher=broadcaster, max_workers=1)

    with tqdm(total=max_pages, desc="Crawling pages") as pbar:

        def on_event(event: str, job_id: str, payload: dict) -> None:
            if event == EVENT_CRAWL_PROGRESS and payload.get("currentUrl"):
                pbar.n = payload["completedPages"]
                pbar.set_postfix(failed=payload["failedPages"], depth=payload["currentDepth"])
                pbar.refresh()

        broadcaster.subscribe(on_event)
        try:
            job_id = scheduler.start_crawl(chatbot_id, start_url, options)
        except KnowledgeBaseError as e:
            scheduler.shutdown()
            logger.error(f"Crawl could not start: {e.message}")
            raise typer.Exit(code=1)

        try:
            report = scheduler.wait(job_id)
        except KeyboardInterrupt:
            scheduler.cancel_crawl(job_id)
            report = scheduler.wait(job_id)
        finally:
            scheduler.shutdown()

    logger.info(
        f"Crawl {report.job_id} {report.status.value}: {report.successful_pages} pages, "
        f"{report.failed_pages} failed"
    )
    for error in report.errors:
        logger.warning(f"  {error.url}: {error.message}")
    if report.error:
        logger.error(f"Crawl failed: {report.error}")
        raise typer.Exit(code=1)


@app.command()
def file(
    chatbot_id: str = typer.Argument(..., help="Chatbot that owns the file"),
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to ingest"),
    mime_type: Optional[str] = typer.Option(None, help="Override the detected mime type"),
    chunk_size: int = typer.Option(settings.file_chunk_size, help="Words per chunk"),
    data_dir: str = typer.Option(settings.data_dir, help="Storage directory"),
):
    """Ingest a local file into a chatbot's knowledge base."""
    data = path.read_bytes()
    detected = (
        mime_type
        or EXTENSION_MIME_TYPES.get(path.suffix.lower())
        or mimetypes.guess_type(path.name)[0]
        or "application/octet-stream"
    )
    upload = UploadedFile(filename=path.name, mime_type=detected, size=len(data), data=data)

    processor = FileProcessor(ContentStore(data_dir), BlobStore(data_dir))
    try:
        result = processor.process_file(chatbot_id, upload, FileProcessingOptions(chunk_size=chunk_size))
    except KnowledgeBaseError as e:
        logger.error(f"{e.code}: {e.message}")
        raise typer.Exit(code=1)

    logger.info(f"Ingested {path.name} as {result.file.id}: {len(result.chunks)} chunks")


if __name__ == "__main__":
    app()
