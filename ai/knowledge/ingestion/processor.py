"""Uploaded file ingestion: validate, store, extract, chunk, persist."""

import logging
import uuid
from pathlib import PurePath
from typing import Optional

from knowledge.core.constants import EVENT_FILE_COMPLETED, EVENT_FILE_ERROR
from knowledge.core.errors import ExtractionError, KnowledgeBaseError, NotFoundError, ValidationError
from knowledge.core.utils import safe_filename, utcnow
from knowledge.ingestion.chunker import chunk_text
from knowledge.ingestion.events import EventPublisher, NullPublisher, safe_publish
from knowledge.ingestion.extractors import ExtractorRegistry, default_registry
from knowledge.ingestion.models import (
    ContentChunk,
    ExtractedContent,
    FileProcessingOptions,
    IngestedFile,
    IngestResult,
    SourceType,
    UploadedFile,
)
from knowledge.ingestion.storage import BlobStore, ContentStore

logger = logging.getLogger(__name__)


def validate_upload(mime_type: str, size: int, options: FileProcessingOptions) -> None:
    """Reject oversized or unsupported files before anything is stored."""
    if size > options.max_file_size:
        raise ValidationError(
            f"File size ({size / 1024 / 1024:.1f}MB) exceeds maximum allowed size "
            f"({options.max_file_size / 1024 / 1024:.1f}MB)",
            code="FILE_TOO_LARGE",
            details={"size": size, "max_file_size": options.max_file_size},
        )
    base_type = (mime_type or "").split(";")[0].strip().lower()
    if base_type not in options.allowed_types:
        raise ValidationError(
            f"File type '{mime_type}' is not supported",
            code="UNSUPPORTED_FILE_TYPE",
            details={"mime_type": mime_type},
        )


class FileProcessor:
    """Synchronous pipeline turning uploaded files into stored content chunks."""

    def __init__(
        self,
        store: ContentStore,
        blobs: BlobStore,
        extractors: Optional[ExtractorRegistry] = None,
        publisher: Optional[EventPublisher] = None,
    ):
        self.store = store
        self.blobs = blobs
        self.extractors = extractors or default_registry()
        self.publisher = publisher or NullPublisher()

    def process_file(
        self,
        chatbot_id: str,
        upload: UploadedFile,
        options: Optional[FileProcessingOptions] = None,
    ) -> IngestResult:
        """Validate, store and ingest an uploaded file.

        Raises:
            ValidationError: FILE_TOO_LARGE or UNSUPPORTED_FILE_TYPE; nothing
                is stored.
            ExtractionError, PersistenceError: the pipeline failed; the file
                record is kept with ``processed=False`` and no chunks.
        """
        options = options or FileProcessingOptions()
        validate_upload(upload.mime_type, upload.size, options)

        stored_name = f"{uuid.uuid4().hex}-{safe_filename(upload.filename)}"
        stored_path = self.blobs.write(stored_name, upload.data)

        record = IngestedFile(
            id=str(uuid.uuid4()),
            chatbot_id=chatbot_id,
            filename=upload.filename,
            mime_type=upload.mime_type,
            size=upload.size,
            stored_path=stored_path,
        )
        self.store.save_file(record)
        logger.info(f"Stored upload {upload.filename} for chatbot {chatbot_id} as {record.id}")

        return self._run_pipeline(record, upload.data, options)

    def reprocess_file(self, file_id: str, options: Optional[FileProcessingOptions] = None) -> IngestResult:
        """Re-run extraction and chunking from the stored bytes."""
        options = options or FileProcessingOptions()
        record = self.get_file(file_id)

        if not self.blobs.exists(record.stored_path):
            raise NotFoundError("File no longer exists on disk", code="FILE_NOT_ON_DISK", details={"file_id": file_id})
        try:
            data = self.blobs.read(record.stored_path)
        except OSError as e:
            raise ExtractionError(f"Failed to read stored file {record.stored_path}: {e}") from e

        validate_upload(record.mime_type, len(data), options)
        logger.info(f"Reprocessing file {file_id} ({record.filename})")
        return self._run_pipeline(record, data, options)

    def delete_ingested_source(self, file_id: str) -> bool:
        """Delete a file's stored bytes, its record and all of its chunks."""
        record = self.get_file(file_id)
        try:
            self.blobs.delete(record.stored_path)
        except OSError as e:
            logger.warning(f"Failed to delete file from disk: {record.stored_path} ({e})")
        deleted = self.store.delete_file_and_chunks(file_id)
        logger.info(f"Deleted file {file_id} ({record.filename})")
        return deleted

    def get_file(self, file_id: str) -> IngestedFile:
        record = self.store.get_file(file_id)
        if record is None:
            raise NotFoundError("File not found", code="FILE_NOT_FOUND", details={"file_id": file_id})
        return record

    def list_files(self, chatbot_id: str) -> list[IngestedFile]:
        return self.store.list_files(chatbot_id)

    def _extract(self, record: IngestedFile, data: bytes) -> ExtractedContent:
        extractor = self.extractors.for_file(record.mime_type, record.filename)
        try:
            return extractor.extract(data, record.filename)
        except KnowledgeBaseError:
            raise
        except Exception as e:
            raise ExtractionError(f"Failed to extract {record.filename}: {e}") from e

    def _run_pipeline(self, record: IngestedFile, data: bytes, options: FileProcessingOptions) -> IngestResult:
        try:
            content = self._extract(record, data)
            title = content.metadata.get("title") or PurePath(record.filename).stem or record.filename
            chunks: list[ContentChunk] = chunk_text(
                content.text,
                options.chunk_size,
                chatbot_id=record.chatbot_id,
                source_ref=record.id,
                source_type=SourceType.FILE,
                title=title,
            )
            # Old chunks are swapped out only once the new set is written
            self.store.replace_chunks(record.chatbot_id, record.id, chunks)
        except KnowledgeBaseError as e:
            logger.error(f"Failed to process file {record.id} ({record.filename}): {e.message}")
            self.store.save_file(record.model_copy(update={"processed": False, "error": e.message}))
            safe_publish(
                self.publisher,
                EVENT_FILE_ERROR,
                record.id,
                {"fileId": record.id, "error": e.message, "code": e.code, "timestamp": utcnow().isoformat()},
            )
            raise

        processed = record.model_copy(
            update={
                "file_type": content.file_type,
                "extracted_text": content.text,
                "metadata": content.metadata if options.extract_metadata else {},
                "processed": True,
                "processed_at": utcnow(),
                "error": None,
                "chunk_count": len(chunks),
            }
        )
        self.store.save_file(processed)
        logger.info(f"Saved {len(chunks)} text chunks for file {record.filename}")

        safe_publish(
            self.publisher,
            EVENT_FILE_COMPLETED,
            record.id,
            {"fileId": record.id, "chatbotId": record.chatbot_id, "chunks": len(chunks), "fileType": content.file_type},
        )
        return IngestResult(file=processed, chunks=chunks)
