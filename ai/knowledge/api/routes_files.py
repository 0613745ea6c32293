"""File ingestion API routes."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from knowledge.api.deps import get_file_processor, to_http_exception
from knowledge.core.errors import KnowledgeBaseError
from knowledge.core.schemas import FileSummary, ReprocessRequest
from knowledge.core.security import verify_api_key
from knowledge.ingestion.models import FileProcessingOptions, UploadedFile
from knowledge.ingestion.processor import FileProcessor

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(verify_api_key)])


@router.post("/chatbots/{chatbot_id}/files", response_model=FileSummary, status_code=status.HTTP_201_CREATED)
def upload_file(
    chatbot_id: str,
    file: UploadFile = File(...),
    chunk_size: Optional[int] = Form(None),
    processor: FileProcessor = Depends(get_file_processor),
):
    """Upload a file and ingest it synchronously."""
    data = file.file.read()
    upload = UploadedFile(
        filename=file.filename or "upload",
        mime_type=file.content_type or "application/octet-stream",
        size=len(data),
        data=data,
    )
    options = FileProcessingOptions(chunk_size=chunk_size) if chunk_size else FileProcessingOptions()

    try:
        result = processor.process_file(chatbot_id, upload, options)
    except KnowledgeBaseError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error processing upload {upload.filename}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
    return FileSummary.from_record(result.file)


@router.get("/chatbots/{chatbot_id}/files", response_model=list[FileSummary])
def list_files(chatbot_id: str, processor: FileProcessor = Depends(get_file_processor)):
    """List processed files for a chatbot, newest first."""
    return [FileSummary.from_record(r) for r in processor.list_files(chatbot_id)]


@router.post("/files/{file_id}/reprocess", response_model=FileSummary)
def reprocess_file(
    file_id: str,
    request: Optional[ReprocessRequest] = None,
    processor: FileProcessor = Depends(get_file_processor),
):
    """Re-run extraction and chunking for a stored file."""
    options = (request or ReprocessRequest()).to_options()
    try:
        result = processor.reprocess_file(file_id, options)
    except KnowledgeBaseError as e:
        raise to_http_exception(e)
    return FileSummary.from_record(result.file)


@router.delete("/files/{file_id}")
def delete_file(file_id: str, processor: FileProcessor = Depends(get_file_processor)) -> dict[str, Any]:
    """Delete a file with all of its chunks."""
    try:
        deleted = processor.delete_ingested_source(file_id)
    except KnowledgeBaseError as e:
        raise to_http_exception(e)
    return {"file_id": file_id, "deleted": deleted}
