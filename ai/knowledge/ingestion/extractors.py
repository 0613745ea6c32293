"""Per-format text extractors and the registry that dispatches to them."""

import csv
import io
import logging
from pathlib import PurePath
from typing import Iterable, Optional, Protocol

from knowledge.core.config import settings
from knowledge.core.constants import MIME_CSV, MIME_DOC, MIME_PDF, MIME_TEXT
from knowledge.ingestion.models import ExtractedContent
from knowledge.ingestion.parse_pdf import PdfExtractor

logger = logging.getLogger(__name__)


class Extractor(Protocol):
    file_type: str

    def extract(self, data: bytes, filename: str = "") -> ExtractedContent: ...


def decode_text(data: bytes) -> str:
    # utf-8-sig drops a BOM if present
    return data.decode("utf-8-sig", errors="replace")


class TextExtractor:
    """Plain text, also the fallback for unrecognized text-like types."""

    file_type = "TEXT"

    def extract(self, data: bytes, filename: str = "") -> ExtractedContent:
        return ExtractedContent(
            text=decode_text(data),
            metadata={"title": PurePath(filename).stem or filename, "encoding": "utf-8"},
            file_type=self.file_type,
        )


class CsvExtractor:
    """Renders a CSV as header/value lines for a sample of rows."""

    file_type = "CSV"

    def __init__(self, sample_rows: Optional[int] = None):
        self.sample_rows = settings.csv_sample_rows if sample_rows is None else sample_rows

    def extract(self, data: bytes, filename: str = "") -> ExtractedContent:
        rows = [row for row in csv.reader(io.StringIO(decode_text(data))) if any(c.strip() for c in row)]
        headers = [h.strip() for h in rows[0]] if rows else []
        body = rows[1:]

        lines = [f"CSV Data from {filename}", "", f"Headers: {', '.join(headers)}", ""]
        for index, row in enumerate(body[: self.sample_rows], start=1):
            lines.append(f"Row {index}:")
            for i, header in enumerate(headers):
                value = row[i].strip() if i < len(row) else ""
                lines.append(f"  {header}: {value}")
            lines.append("")
        if len(body) > self.sample_rows:
            lines.append(f"... and {len(body) - self.sample_rows} more rows")

        return ExtractedContent(
            text="\n".join(lines),
            metadata={
                "title": PurePath(filename).stem or filename,
                "encoding": "utf-8",
                "row_count": len(body),
                "column_count": len(headers),
            },
            file_type=self.file_type,
        )


class DocumentPlaceholderExtractor:
    """Stand-in for Word documents until a real office-format extractor is plugged in."""

    file_type = "DOCUMENT"

    def extract(self, data: bytes, filename: str = "") -> ExtractedContent:
        return ExtractedContent(
            text=f"Document: {filename}\n\n[Word document content would be extracted here]",
            metadata={"title": PurePath(filename).stem or filename, "placeholder": True},
            file_type=self.file_type,
        )


class ExtractorRegistry:
    """Maps mime types and file extensions to extractors."""

    def __init__(self, fallback: Optional[Extractor] = None):
        self._by_mime: dict[str, Extractor] = {}
        self._by_extension: dict[str, Extractor] = {}
        self.fallback = fallback or TextExtractor()

    def register(
        self,
        extractor: Extractor,
        mime_types: Iterable[str] = (),
        extensions: Iterable[str] = (),
    ) -> None:
        for mime in mime_types:
            self._by_mime[mime.lower()] = extractor
        for ext in extensions:
            self._by_extension[ext.lower().lstrip(".")] = extractor

    def for_file(self, mime_type: str, filename: str = "") -> Extractor:
        """Resolve by mime type, then extension, then the raw-text fallback."""
        extractor = self._by_mime.get((mime_type or "").split(";")[0].strip().lower())
        if extractor is not None:
            return extractor
        suffix = PurePath(filename).suffix.lower().lstrip(".")
        if suffix and suffix in self._by_extension:
            return self._by_extension[suffix]
        logger.debug(f"No extractor for {mime_type} ({filename}); decoding as text")
        return self.fallback


def default_registry() -> ExtractorRegistry:
    registry = ExtractorRegistry()
    registry.register(PdfExtractor(), mime_types=[MIME_PDF], extensions=["pdf"])
    registry.register(CsvExtractor(), mime_types=MIME_CSV, extensions=["csv"])
    registry.register(TextExtractor(), mime_types=MIME_TEXT, extensions=["txt", "md"])
    registry.register(DocumentPlaceholderExtractor(), mime_types=MIME_DOC, extensions=["doc", "docx"])
    return registry
