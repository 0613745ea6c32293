"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from knowledge.ingestion.models import (
    CrawlOptions,
    FileProcessingOptions,
    IngestedFile,
    RetrievalCandidate,
)


class CrawlRequest(BaseModel):
    """Start crawl request schema."""

    start_url: str = Field(..., description="URL the crawl starts from", min_length=1)
    max_depth: Optional[int] = Field(None, ge=1, le=10)
    max_pages: Optional[int] = Field(None, ge=1, le=1000)
    include_paths: list[str] = Field(default_factory=list)
    exclude_paths: list[str] = Field(default_factory=list)
    follow_external_links: bool = False

    def to_options(self) -> CrawlOptions:
        overrides = self.model_dump(exclude={"start_url"}, exclude_none=True)
        return CrawlOptions(**overrides)


class CrawlStartResponse(BaseModel):
    job_id: str
    status: str = "started"
    message: str = "Website crawl started"


class PageScrapeRequest(BaseModel):
    url: str = Field(..., min_length=1)


class PageScrapeResponse(BaseModel):
    url: str
    title: str
    word_count: int
    links: int
    images: int
    description: str = ""


class ReprocessRequest(BaseModel):
    chunk_size: Optional[int] = Field(None, ge=1, le=10000)
    extract_metadata: Optional[bool] = None

    def to_options(self) -> FileProcessingOptions:
        return FileProcessingOptions(**self.model_dump(exclude_none=True))


class FileSummary(BaseModel):
    """Ingested file schema (without the extracted text)."""

    id: str
    chatbot_id: str
    filename: str
    mime_type: str
    size: int
    file_type: str
    processed: bool
    processed_at: Optional[datetime] = None
    error: Optional[str] = None
    chunk_count: int
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_record(cls, record: IngestedFile) -> "FileSummary":
        return cls(**record.model_dump(exclude={"extracted_text", "stored_path"}))


class SearchRequest(BaseModel):
    """Relevance search request schema."""

    query: str = Field(..., description="User query", min_length=1, max_length=2000)
    top_k: Optional[int] = Field(None, ge=1, le=50)


class SearchResponse(BaseModel):
    results: list[RetrievalCandidate]
