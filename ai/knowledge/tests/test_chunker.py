"""Tests for text chunking."""

import pytest

from knowledge.core.errors import ValidationError
from knowledge.ingestion.chunker import chunk_text, split_words
from knowledge.ingestion.models import SourceType


def make_chunks(text, chunk_size, title="Guide"):
    return chunk_text(
        text,
        chunk_size,
        chatbot_id="bot-1",
        source_ref="https://example.com/guide",
        source_type=SourceType.WEBSITE,
        title=title,
    )


def test_exact_chunk_sizes():
    """Every chunk but the last has exactly chunk_size words."""
    text = " ".join(f"word{i}" for i in range(23))
    chunks = make_chunks(text, 5)

    assert [c.word_count for c in chunks] == [5, 5, 5, 5, 3]
    assert [c.chunk_index for c in chunks] == [0, 1, 2, 3, 4]


def test_chunks_reconstruct_text():
    text = "alpha  beta\ngamma\tdelta epsilon zeta eta"
    chunks = make_chunks(text, 3)

    assert " ".join(c.text for c in chunks) == " ".join(text.split())


def test_chunking_is_deterministic():
    text = "one two three four five six seven"

    first = make_chunks(text, 2)
    second = make_chunks(text, 2)

    assert [c.id for c in first] == [c.id for c in second]
    assert len({c.id for c in first}) == len(first)


def test_multi_chunk_titles_are_numbered():
    chunks = make_chunks("a b c d", 2)

    assert [c.title for c in chunks] == ["Guide - Part 1", "Guide - Part 2"]


def test_single_chunk_keeps_title():
    chunks = make_chunks("short text", 10)

    assert len(chunks) == 1
    assert chunks[0].title == "Guide"
    assert chunks[0].source_type == SourceType.WEBSITE
    assert chunks[0].chatbot_id == "bot-1"


def test_empty_text():
    """Empty or whitespace-only text yields no chunks."""
    assert make_chunks("", 5) == []
    assert make_chunks("   \n\t ", 5) == []


@pytest.mark.parametrize("size", [0, -3])
def test_invalid_chunk_size(size):
    with pytest.raises(ValidationError) as exc_info:
        split_words("some words", size)

    assert exc_info.value.code == "INVALID_CHUNK_SIZE"
