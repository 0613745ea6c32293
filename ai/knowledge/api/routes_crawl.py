"""Website crawl API routes."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from knowledge.api.deps import get_scheduler, to_http_exception
from knowledge.core.errors import KnowledgeBaseError
from knowledge.core.schemas import (
    CrawlRequest,
    CrawlStartResponse,
    PageScrapeRequest,
    PageScrapeResponse,
)
from knowledge.core.security import verify_api_key
from knowledge.ingestion.models import CrawlStatusReport
from knowledge.ingestion.scheduler import CrawlScheduler

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(verify_api_key)])


@router.post("/chatbots/{chatbot_id}/crawls", response_model=CrawlStartResponse, status_code=status.HTTP_202_ACCEPTED)
def start_crawl(
    chatbot_id: str,
    request: CrawlRequest,
    scheduler: CrawlScheduler = Depends(get_scheduler),
):
    """Start a background website crawl."""
    try:
        job_id = scheduler.start_crawl(chatbot_id, request.start_url, request.to_options())
        return CrawlStartResponse(job_id=job_id)
    except KnowledgeBaseError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error starting crawl: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )


@router.get("/crawls/{job_id}", response_model=CrawlStatusReport)
def get_crawl_status(job_id: str, scheduler: CrawlScheduler = Depends(get_scheduler)):
    """Get crawl status, counts and per-page errors."""
    try:
        return scheduler.get_crawl_status(job_id)
    except KnowledgeBaseError as e:
        raise to_http_exception(e)


@router.post("/crawls/{job_id}/cancel")
def cancel_crawl(job_id: str, scheduler: CrawlScheduler = Depends(get_scheduler)) -> dict[str, Any]:
    """Request cancellation of a running crawl."""
    try:
        cancelled = scheduler.cancel_crawl(job_id)
    except KnowledgeBaseError as e:
        raise to_http_exception(e)
    return {"job_id": job_id, "cancelled": cancelled}


@router.post("/chatbots/{chatbot_id}/pages", response_model=PageScrapeResponse)
def scrape_page(
    chatbot_id: str,
    request: PageScrapeRequest,
    scheduler: CrawlScheduler = Depends(get_scheduler),
):
    """Scrape and store a single page."""
    try:
        page = scheduler.scrape_single_page(chatbot_id, request.url)
    except KnowledgeBaseError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error scraping page {request.url}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    return PageScrapeResponse(
        url=page.url,
        title=page.title,
        word_count=page.word_count,
        links=len(page.links),
        images=len(page.images),
        description=page.metadata.description,
    )


@router.get("/chatbots/{chatbot_id}/pages")
def list_pages(chatbot_id: str, scheduler: CrawlScheduler = Depends(get_scheduler)) -> list[dict[str, Any]]:
    """List stored website content for a chatbot."""
    return scheduler.list_content(chatbot_id)
