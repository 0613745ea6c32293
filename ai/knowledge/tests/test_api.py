"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSite, html_page
from knowledge.api.deps import get_file_processor, get_retriever, get_scheduler
from knowledge.api.main import app
from knowledge.core.config import settings
from knowledge.ingestion.processor import FileProcessor
from knowledge.retrieval.retriever import RelevanceRetriever

HEADERS = {"X-API-Key": settings.api_key}


@pytest.fixture
def scheduler(make_scheduler):
    site = FakeSite(
        {
            "https://example.com/": html_page("Home", "store opening hours", ["/faq"]),
            "https://example.com/faq": html_page("FAQ", "frequently asked questions"),
        }
    )
    return make_scheduler(site)


@pytest.fixture
def client(scheduler, store, blobs):
    """Create API client backed by temp storage."""
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_file_processor] = lambda: FileProcessor(store, blobs)
    app.dependency_overrides[get_retriever] = lambda: RelevanceRetriever(store)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_invalid_api_key(client):
    response = client.get("/v1/chatbots/bot-1/files", headers={"X-API-Key": "wrong"})

    assert response.status_code == 401


def test_crawl_lifecycle(client, scheduler):
    response = client.post(
        "/v1/chatbots/bot-1/crawls",
        json={"start_url": "https://example.com/", "max_depth": 2, "max_pages": 5},
        headers=HEADERS,
    )
    assert response.status_code == 202
    job_id = response.json()["job_id"]

    scheduler.wait(job_id, timeout=10)
    status = client.get(f"/v1/crawls/{job_id}", headers=HEADERS).json()

    assert status["status"] == "COMPLETED"
    assert status["successful_pages"] == 2
    assert status["is_active"] is False

    pages = client.get("/v1/chatbots/bot-1/pages", headers=HEADERS).json()
    assert {p["url"] for p in pages} == {"https://example.com/", "https://example.com/faq"}

    cancel = client.post(f"/v1/crawls/{job_id}/cancel", headers=HEADERS).json()
    assert cancel["cancelled"] is False


def test_crawl_invalid_url(client):
    response = client.post("/v1/chatbots/bot-1/crawls", json={"start_url": "ftp://example.com"}, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_URL"


def test_unknown_crawl(client):
    response = client.get("/v1/crawls/missing", headers=HEADERS)

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "CRAWL_NOT_FOUND"


def test_scrape_single_page(client):
    response = client.post("/v1/chatbots/bot-1/pages", json={"url": "https://example.com/faq"}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["title"] == "FAQ"


def test_file_upload_search_and_delete(client):
    response = client.post(
        "/v1/chatbots/bot-1/files",
        files={"file": ("returns.txt", b"items can be returned within thirty days", "text/plain")},
        data={"chunk_size": "3"},
        headers=HEADERS,
    )
    assert response.status_code == 201
    summary = response.json()
    assert summary["chunk_count"] == 3
    assert "extracted_text" not in summary

    listed = client.get("/v1/chatbots/bot-1/files", headers=HEADERS).json()
    assert [f["id"] for f in listed] == [summary["id"]]

    search = client.post("/v1/chatbots/bot-1/search", json={"query": "returned thirty"}, headers=HEADERS).json()
    assert search["results"][0]["source"] == "returns.txt"

    reprocessed = client.post(f"/v1/files/{summary['id']}/reprocess", json={"chunk_size": 10}, headers=HEADERS)
    assert reprocessed.json()["chunk_count"] == 1

    deleted = client.delete(f"/v1/files/{summary['id']}", headers=HEADERS)
    assert deleted.json() == {"file_id": summary["id"], "deleted": True}


def test_file_upload_unsupported_type(client):
    response = client.post(
        "/v1/chatbots/bot-1/files",
        files={"file": ("logo.png", b"\x89PNG", "image/png")},
        headers=HEADERS,
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "UNSUPPORTED_FILE_TYPE"
