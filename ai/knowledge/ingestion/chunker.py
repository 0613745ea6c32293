"""Fixed-size word chunking."""

import logging
import uuid

from knowledge.core.errors import ValidationError
from knowledge.ingestion.models import ContentChunk, SourceType

logger = logging.getLogger(__name__)


def split_words(text: str, chunk_size: int) -> list[list[str]]:
    """Group whitespace-separated words into runs of ``chunk_size``."""
    if chunk_size < 1:
        raise ValidationError(f"chunk_size must be >= 1, got {chunk_size}", code="INVALID_CHUNK_SIZE")
    words = text.split()
    return [words[i : i + chunk_size] for i in range(0, len(words), chunk_size)]


def chunk_text(
    text: str,
    chunk_size: int,
    *,
    chatbot_id: str,
    source_ref: str,
    source_type: SourceType,
    title: str = "",
) -> list[ContentChunk]:
    """Split text into chunks of exactly ``chunk_size`` words.

    The final chunk may be shorter. Chunk ids are derived from the source
    reference, the index and the chunk text, so the same input always
    yields the same chunks.
    """
    groups = split_words(text, chunk_size)

    chunks = []
    for index, words in enumerate(groups):
        body = " ".join(words)
        chunk_id = str(uuid.uuid5(uuid.NAMESPACE_URL, f"{source_ref}#{index}:{body[:100]}"))
        chunk_title = f"{title} - Part {index + 1}" if len(groups) > 1 else title
        chunks.append(
            ContentChunk(
                id=chunk_id,
                chatbot_id=chatbot_id,
                source_ref=source_ref,
                source_type=source_type,
                title=chunk_title,
                chunk_index=index,
                text=body,
                word_count=len(words),
            )
        )

    logger.debug(f"Created {len(chunks)} chunks from {source_ref}")
    return chunks
