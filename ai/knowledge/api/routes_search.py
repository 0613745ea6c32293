"""Relevance search API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from knowledge.api.deps import get_retriever
from knowledge.core.schemas import SearchRequest, SearchResponse
from knowledge.core.security import verify_api_key
from knowledge.retrieval.retriever import RelevanceRetriever

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(verify_api_key)])


@router.post("/chatbots/{chatbot_id}/search", response_model=SearchResponse)
def search(
    chatbot_id: str,
    request: SearchRequest,
    retriever: RelevanceRetriever = Depends(get_retriever),
):
    """Rank a chatbot's stored content against a query."""
    try:
        results = retriever.retrieve(chatbot_id, request.query, top_k=request.top_k)
    except Exception as e:
        logger.error(f"Error in search endpoint: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    logger.info(f"Search for chatbot {chatbot_id}: {len(results)} results")
    return SearchResponse(results=results)
