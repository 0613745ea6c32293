"""FastAPI dependencies."""

from functools import lru_cache

from fastapi import HTTPException

from knowledge.core.config import settings
from knowledge.core.errors import KnowledgeBaseError
from knowledge.ingestion.events import EventBroadcaster
from knowledge.ingestion.processor import FileProcessor
from knowledge.ingestion.scheduler import CrawlScheduler
from knowledge.ingestion.storage import BlobStore, ContentStore
from knowledge.retrieval.retriever import RelevanceRetriever


@lru_cache
def get_content_store() -> ContentStore:
    return ContentStore(settings.data_dir)


@lru_cache
def get_broadcaster() -> EventBroadcaster:
    return EventBroadcaster()


@lru_cache
def get_scheduler() -> CrawlScheduler:
    return CrawlScheduler(get_content_store(), publisher=get_broadcaster())


@lru_cache
def get_file_processor() -> FileProcessor:
    return FileProcessor(get_content_store(), BlobStore(settings.data_dir), publisher=get_broadcaster())


@lru_cache
def get_retriever() -> RelevanceRetriever:
    return RelevanceRetriever(get_content_store())


def to_http_exception(error: KnowledgeBaseError) -> HTTPException:
    """Map a typed pipeline error to an HTTP error with a {code, message} detail."""
    return HTTPException(status_code=error.status_code, detail=error.to_dict())
