"""Relevance search CLI script."""

import logging

import typer

from knowledge.core.config import settings
from knowledge.core.logging import setup_logging
from knowledge.ingestion.storage import ContentStore
from knowledge.retrieval.retriever import RelevanceRetriever

setup_logging()
logger = logging.getLogger(__name__)

app = typer.Typer()


@app.command()
def main(
    chatbot_id: str = typer.Argument(..., help="Chatbot to search"),
    query: str = typer.Argument(..., help="Query text"),
    top_k: int = typer.Option(settings.retrieval_top_k, help="Number of results"),
    data_dir: str = typer.Option(settings.data_dir, help="Storage directory"),
):
    """Print the chunks that best match a query."""
    retriever = RelevanceRetriever(ContentStore(data_dir))
    results = retriever.retrieve(chatbot_id, query, top_k=top_k)

    if not results:
        typer.echo("No relevant content found.")
        return

    for rank, candidate in enumerate(results, start=1):
        typer.echo(f"{rank}. [{candidate.relevance_score:.2f}] {candidate.title} ({candidate.source})")
        typer.echo(f"   {candidate.text[:200]}")


if __name__ == "__main__":
    app()
