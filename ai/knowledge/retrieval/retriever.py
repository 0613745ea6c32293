"""Relevance ranking of stored chunks for a query."""

import logging
from typing import Optional, Protocol

from knowledge.core.config import settings
from knowledge.core.utils import truncate_text
from knowledge.ingestion.models import ContentChunk, RetrievalCandidate, SourceType
from knowledge.ingestion.storage import ContentStore

logger = logging.getLogger(__name__)


def tokenize(text: str) -> list[str]:
    return text.lower().split()


class RelevanceStrategy(Protocol):
    """Scores one chunk against a query. An embedding-based strategy can
    replace the lexical default without changing the retriever contract."""

    def score(self, query: str, text: str) -> float: ...


class LexicalOverlapStrategy:
    """Share of query tokens found inside some chunk token.

    With ``bidirectional=True`` a chunk token found inside a query token also
    counts. Short chunk words like "is" then match almost any long query token.
    """

    def __init__(self, bidirectional: bool = False):
        self.bidirectional = bidirectional

    def _overlaps(self, q: str, c: str) -> bool:
        return q in c or (self.bidirectional and c in q)

    def score(self, query: str, text: str) -> float:
        query_tokens = tokenize(query)
        if not query_tokens:
            return 0.0
        chunk_tokens = set(tokenize(text))
        if not chunk_tokens:
            return 0.0

        matches = 0
        for q in query_tokens:
            if q in chunk_tokens or any(self._overlaps(q, c) for c in chunk_tokens):
                matches += 1
        return matches / len(query_tokens)


class RelevanceRetriever:
    """Ranks a chatbot's content chunks against a query."""

    def __init__(
        self,
        store: ContentStore,
        strategy: Optional[RelevanceStrategy] = None,
        min_score: Optional[float] = None,
        snippet_length: Optional[int] = None,
        window: Optional[int] = None,
    ):
        self.store = store
        self.strategy = strategy or LexicalOverlapStrategy()
        self.min_score = settings.retrieval_min_score if min_score is None else min_score
        self.snippet_length = snippet_length or settings.retrieval_snippet_length
        self.window = window or settings.retrieval_window

    def source_label(self, chunk: ContentChunk, labels: dict[str, str]) -> str:
        """Human-readable source: page URL or original filename."""
        if chunk.source_type == SourceType.WEBSITE:
            return chunk.source_ref
        if chunk.source_ref not in labels:
            record = self.store.get_file(chunk.source_ref)
            labels[chunk.source_ref] = record.filename if record else chunk.source_ref
        return labels[chunk.source_ref]

    def retrieve(self, chatbot_id: str, query: str, top_k: Optional[int] = None) -> list[RetrievalCandidate]:
        """Return the ``top_k`` chunks scoring above the threshold, best first."""
        top_k = settings.retrieval_top_k if top_k is None else top_k
        if top_k <= 0 or not query.strip():
            return []

        chunks = self.store.list_chunks(chatbot_id, limit=self.window)
        scored: list[tuple[float, ContentChunk]] = []
        for chunk in chunks:
            score = self.strategy.score(query, chunk.text)
            if score > self.min_score:
                scored.append((score, chunk))

        # Stable sort keeps store order among equal scores
        scored.sort(key=lambda pair: pair[0], reverse=True)

        labels: dict[str, str] = {}
        results = [
            RetrievalCandidate(
                chunk_id=chunk.id,
                title=chunk.title,
                text=truncate_text(chunk.text, self.snippet_length),
                source=self.source_label(chunk, labels),
                relevance_score=score,
            )
            for score, chunk in scored[:top_k]
        ]
        logger.info(f"Retrieved {len(results)} of {len(chunks)} chunks for chatbot {chatbot_id}")
        return results
