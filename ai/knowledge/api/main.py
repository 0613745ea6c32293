"""FastAPI application main module."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from knowledge.api.deps import get_scheduler
from knowledge.api.routes_crawl import router as crawl_router
from knowledge.api.routes_files import router as files_router
from knowledge.api.routes_search import router as search_router
from knowledge.core.config import settings
from knowledge.core.logging import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# Rate limiter
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    logger.info("Starting knowledge ingestion API")
    yield
    logger.info("Shutting down knowledge ingestion API")
    if get_scheduler.cache_info().currsize:
        get_scheduler().shutdown(wait=False)


# Create FastAPI app
app = FastAPI(
    title="Chatbot Knowledge API",
    description="Website crawling, file ingestion and relevance retrieval for chatbot knowledge bases",
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(crawl_router, prefix="/v1", tags=["crawl"])
app.include_router(files_router, prefix="/v1", tags=["files"])
app.include_router(search_router, prefix="/v1", tags=["search"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Chatbot Knowledge API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
