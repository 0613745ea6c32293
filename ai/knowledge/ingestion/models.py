"""Data models for ingestion pipeline."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from knowledge.core.config import settings
from knowledge.core.utils import utcnow


class CrawlStatus(str, Enum):
    """Crawl job lifecycle states."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (CrawlStatus.COMPLETED, CrawlStatus.FAILED, CrawlStatus.CANCELLED)


class SourceType(str, Enum):
    """Where a content chunk came from."""

    WEBSITE = "WEBSITE"
    FILE = "FILE"


class CrawlOptions(BaseModel):
    """Options for a website crawl."""

    max_depth: int = Field(default_factory=lambda: settings.crawl_max_depth, ge=1)
    max_pages: int = Field(default_factory=lambda: settings.crawl_max_pages, ge=1)
    include_paths: list[str] = Field(default_factory=list)
    exclude_paths: list[str] = Field(default_factory=list)
    follow_external_links: bool = False
    delay_ms: int = Field(default_factory=lambda: settings.crawl_delay_ms, ge=0)
    timeout_ms: int = Field(default_factory=lambda: settings.crawl_timeout_ms, gt=0)
    user_agent: str = Field(default_factory=lambda: settings.crawl_user_agent)


class PageError(BaseModel):
    """A per-URL failure recorded on a crawl job."""

    url: str
    message: str
    status_code: Optional[int] = None


class CrawlJob(BaseModel):
    """Model for a crawl job and its running totals."""

    id: str
    chatbot_id: str
    start_url: str
    max_depth: int
    max_pages: int
    status: CrawlStatus = CrawlStatus.QUEUED
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    total_pages: int = 0
    successful_pages: int = 0
    failed_pages: int = 0
    errors: list[PageError] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        if not self.started_at:
            return 0.0
        end = self.finished_at or utcnow()
        return (end - self.started_at).total_seconds()


class PageMetadata(BaseModel):
    description: str = ""
    keywords: list[str] = Field(default_factory=list)
    author: str = ""


class Headings(BaseModel):
    h1: list[str] = Field(default_factory=list)
    h2: list[str] = Field(default_factory=list)
    h3: list[str] = Field(default_factory=list)


class FetchedPage(BaseModel):
    """Model for a fetched and extracted web page."""

    model_config = ConfigDict(frozen=True)

    url: str
    status_code: int = 200
    content_type: str = "text/html"
    title: str = ""
    content: str = ""
    metadata: PageMetadata = Field(default_factory=PageMetadata)
    links: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    headings: Headings = Field(default_factory=Headings)
    word_count: int = 0
    fetched_at: datetime = Field(default_factory=utcnow)


class SitemapUrl(BaseModel):
    url: str
    last_modified: Optional[datetime] = None
    change_freq: Optional[str] = None
    priority: Optional[float] = None


class UploadedFile(BaseModel):
    """An uploaded file as received from the caller."""

    filename: str
    mime_type: str
    size: int
    data: bytes


class FileProcessingOptions(BaseModel):
    chunk_size: int = Field(default_factory=lambda: settings.file_chunk_size, ge=1)
    extract_metadata: bool = True
    max_file_size: int = Field(default_factory=lambda: settings.max_file_size, gt=0)
    allowed_types: list[str] = Field(default_factory=lambda: list(settings.allowed_file_types))


class ExtractedContent(BaseModel):
    """Raw text and metadata returned by a file type extractor."""

    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    file_type: str = "TEXT"


class IngestedFile(BaseModel):
    """Model for an uploaded file and its processing state."""

    id: str
    chatbot_id: str
    filename: str
    mime_type: str
    size: int
    stored_path: str
    file_type: str = "TEXT"
    extracted_text: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    processed: bool = False
    processed_at: Optional[datetime] = None
    error: Optional[str] = None
    chunk_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class ContentChunk(BaseModel):
    """Model for a stored text chunk."""

    model_config = ConfigDict(frozen=True)

    id: str
    chatbot_id: str
    source_ref: str
    source_type: SourceType
    title: str = ""
    chunk_index: int
    text: str
    word_count: int
    created_at: datetime = Field(default_factory=utcnow)


class IngestResult(BaseModel):
    file: IngestedFile
    chunks: list[ContentChunk] = Field(default_factory=list)


class RetrievalCandidate(BaseModel):
    """A ranked chunk handed to the response generator."""

    chunk_id: str
    title: str
    text: str
    source: str
    relevance_score: float


class CrawlStatusReport(BaseModel):
    job_id: str
    chatbot_id: str
    start_url: str
    status: CrawlStatus
    total_pages: int
    successful_pages: int
    failed_pages: int
    errors: list[PageError] = Field(default_factory=list)
    is_active: bool = False
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @classmethod
    def from_job(cls, job: CrawlJob, is_active: bool) -> "CrawlStatusReport":
        return cls(
            job_id=job.id,
            chatbot_id=job.chatbot_id,
            start_url=job.start_url,
            status=job.status,
            total_pages=job.total_pages,
            successful_pages=job.successful_pages,
            failed_pages=job.failed_pages,
            errors=list(job.errors),
            is_active=is_active,
            created_at=job.created_at,
            started_at=job.started_at,
            finished_at=job.finished_at,
            error=job.error,
        )
