"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = "dev"

    # API Security
    api_key: str = "dev-secret"
    rate_limit: str = "60/minute"

    # Storage
    data_dir: str = "data"

    # Crawling
    crawl_max_depth: int = 3
    crawl_max_pages: int = 50
    crawl_delay_ms: int = 1000
    crawl_timeout_ms: int = 10000
    crawl_user_agent: str = "Knowledge Crawler 1.0"
    crawl_max_redirects: int = 5
    crawl_fetch_attempts: int = 2
    crawl_chunk_size: int = 500
    crawl_workers: int = 4

    # Sitemap
    sitemap_timeout_ms: int = 10000
    sitemap_max_urls: int = 500
    sitemap_max_children: int = 5

    # File ingestion
    file_chunk_size: int = 500
    max_file_size: int = 10 * 1024 * 1024
    allowed_file_types: list[str] = [
        "application/pdf",
        "text/csv",
        "application/csv",
        "text/plain",
        "text/txt",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/msword",
    ]
    csv_sample_rows: int = 5

    # Retrieval
    retrieval_top_k: int = 5
    retrieval_min_score: float = 0.1
    retrieval_snippet_length: int = 500
    retrieval_window: int = 1000

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
