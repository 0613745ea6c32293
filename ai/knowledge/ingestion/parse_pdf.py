"""PDF parsing and text extraction."""

import logging
from io import BytesIO
from pathlib import PurePath

import fitz  # PyMuPDF

from knowledge.core.utils import normalize_text
from knowledge.ingestion.models import ExtractedContent

logger = logging.getLogger(__name__)

PDF_PLACEHOLDER = "PDF file: {name}\n\n[PDF content could not be extracted - file may be encrypted or corrupted]"


def extract_pdf_text(pdf_bytes: bytes) -> tuple[str, dict]:
    """Extract text and document metadata from a PDF."""
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        page_texts = []
        for page in doc:
            normalized = normalize_text(page.get_text())
            if normalized:
                page_texts.append(normalized)

        info = doc.metadata or {}
        metadata = {
            "page_count": doc.page_count,
            "title": info.get("title") or None,
            "author": info.get("author") or None,
        }
    finally:
        doc.close()

    return "\n\n".join(page_texts), metadata


def _extract_with_pdfminer(pdf_bytes: bytes) -> str:
    from pdfminer.high_level import extract_text

    # pdfminer expects a file path or a file-like object
    return normalize_text(extract_text(BytesIO(pdf_bytes)))


class PdfExtractor:
    """PyMuPDF extraction with a pdfminer fallback and a placeholder of last resort."""

    file_type = "PDF"

    def extract(self, data: bytes, filename: str = "") -> ExtractedContent:
        title = PurePath(filename).stem or filename
        try:
            text, metadata = extract_pdf_text(data)
        except Exception as e:
            logger.error(f"Error parsing PDF {filename}: {e}")
            text, metadata = "", {"page_count": 0}

        if not text.strip():
            try:
                text = _extract_with_pdfminer(data)
            except Exception as fallback_error:
                logger.error(f"Fallback PDF extraction also failed for {filename}: {fallback_error}")
                text = ""

        if not text.strip():
            text = PDF_PLACEHOLDER.format(name=filename or "document.pdf")
            metadata["extraction_failed"] = True

        metadata["title"] = metadata.get("title") or title
        return ExtractedContent(text=text, metadata=metadata, file_type=self.file_type)
