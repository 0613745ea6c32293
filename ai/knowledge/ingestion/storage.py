"""Storage for uploaded blobs, crawl jobs, ingested files and chunks."""

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Iterable, Optional

import orjson

from knowledge.core.config import settings
from knowledge.core.errors import NotFoundError, PersistenceError
from knowledge.core.utils import compute_content_hash
from knowledge.ingestion.models import ContentChunk, CrawlJob, IngestedFile

logger = logging.getLogger(__name__)


def _key(value: str) -> str:
    return compute_content_hash(value)[:16]


def _atomic_write(path: Path, payload: bytes) -> None:
    """Write to a temp file in the same directory, then move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class BlobStore:
    """Durable storage for raw uploaded bytes."""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.data_dir) / "uploads"

    def write(self, name: str, data: bytes) -> str:
        """Store bytes under ``name``; returns the stored path."""
        path = self.base_dir / name
        try:
            _atomic_write(path, data)
        except OSError as e:
            raise PersistenceError(f"Failed to store blob {name}: {e}") from e
        logger.debug(f"Stored blob: {path}")
        return str(path)

    def read(self, path: str) -> bytes:
        try:
            return Path(path).read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"Blob not found: {path}", code="FILE_NOT_ON_DISK") from e

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def delete(self, path: str) -> None:
        Path(path).unlink()


class ContentStore:
    """Stores crawl jobs, ingested files and content chunks as JSON files.

    Each source's chunk set lives in one JSONL file that is swapped in with
    ``os.replace``, so readers never observe a partially written set.
    """

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.data_dir)
        self.jobs_dir = self.base_dir / "jobs"
        self.files_dir = self.base_dir / "files"
        self.chunks_dir = self.base_dir / "chunks"
        self._lock = threading.RLock()

        try:
            for dir_path in [self.jobs_dir, self.files_dir, self.chunks_dir]:
                dir_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot initialise content store at {self.base_dir}: {e}") from e

    # Crawl jobs

    def save_job(self, job: CrawlJob) -> None:
        path = self.jobs_dir / f"{_key(job.id)}.json"
        try:
            with self._lock:
                _atomic_write(path, orjson.dumps(job.model_dump(mode="json")))
        except OSError as e:
            raise PersistenceError(f"Failed to save crawl job {job.id}: {e}") from e

    def get_job(self, job_id: str) -> Optional[CrawlJob]:
        path = self.jobs_dir / f"{_key(job_id)}.json"
        with self._lock:
            if not path.exists():
                return None
            return CrawlJob.model_validate(orjson.loads(path.read_bytes()))

    # Ingested files

    def save_file(self, record: IngestedFile) -> None:
        path = self.files_dir / f"{_key(record.id)}.json"
        try:
            with self._lock:
                _atomic_write(path, orjson.dumps(record.model_dump(mode="json")))
        except OSError as e:
            raise PersistenceError(f"Failed to save file record {record.id}: {e}") from e

    def get_file(self, file_id: str) -> Optional[IngestedFile]:
        path = self.files_dir / f"{_key(file_id)}.json"
        with self._lock:
            if not path.exists():
                return None
            return IngestedFile.model_validate(orjson.loads(path.read_bytes()))

    def list_files(self, chatbot_id: str) -> list[IngestedFile]:
        """List a chatbot's ingested files, newest first."""
        with self._lock:
            records = [
                IngestedFile.model_validate(orjson.loads(p.read_bytes()))
                for p in self.files_dir.glob("*.json")
            ]
        records = [r for r in records if r.chatbot_id == chatbot_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    # Chunks

    def _chunk_path(self, chatbot_id: str, source_ref: str) -> Path:
        return self.chunks_dir / _key(chatbot_id) / f"{_key(source_ref)}.jsonl"

    def replace_chunks(self, chatbot_id: str, source_ref: str, chunks: Iterable[ContentChunk]) -> int:
        """Atomically replace the chunk set of one source. Returns chunk count."""
        chunks = list(chunks)
        path = self._chunk_path(chatbot_id, source_ref)
        payload = b"".join(orjson.dumps(c.model_dump(mode="json")) + b"\n" for c in chunks)
        try:
            with self._lock:
                if chunks:
                    _atomic_write(path, payload)
                elif path.exists():
                    path.unlink()
        except OSError as e:
            raise PersistenceError(f"Failed to save chunks for {source_ref}: {e}") from e

        logger.debug(f"Saved {len(chunks)} chunks to {path}")
        return len(chunks)

    def get_chunks(self, chatbot_id: str, source_ref: str) -> list[ContentChunk]:
        path = self._chunk_path(chatbot_id, source_ref)
        with self._lock:
            if not path.exists():
                return []
            return self._read_chunk_file(path)

    def list_chunks(self, chatbot_id: str, limit: Optional[int] = None) -> list[ContentChunk]:
        """Load a chatbot's chunks, most recently written sources first."""
        directory = self.chunks_dir / _key(chatbot_id)
        chunks: list[ContentChunk] = []
        with self._lock:
            if not directory.exists():
                return []
            files = sorted(directory.glob("*.jsonl"), key=lambda p: p.stat().st_mtime, reverse=True)
            for path in files:
                chunks.extend(self._read_chunk_file(path))
                if limit is not None and len(chunks) >= limit:
                    return chunks[:limit]
        return chunks

    def delete_file_and_chunks(self, file_id: str) -> bool:
        """Remove a file record and all of its chunks under one lock."""
        with self._lock:
            record = self.get_file(file_id)
            if record is None:
                return False
            record_path = self.files_dir / f"{_key(file_id)}.json"
            chunk_path = self._chunk_path(record.chatbot_id, file_id)
            try:
                if chunk_path.exists():
                    chunk_path.unlink()
                record_path.unlink()
            except OSError as e:
                raise PersistenceError(f"Failed to delete file {file_id}: {e}") from e
        return True

    @staticmethod
    def _read_chunk_file(path: Path) -> list[ContentChunk]:
        chunks = []
        with open(path, "rb") as f:
            for line in f:
                if line.strip():
                    chunks.append(ContentChunk.model_validate(orjson.loads(line)))
        return chunks
