"""
Text extraction for uploaded documents.
PDFs are read with pdfplumber; plain text and markdown are decoded as UTF-8.
"""

import io
import logging
import math
import os
from typing import List, Optional, Sequence, Tuple

import pdfplumber

from ...core.exceptions import DocumentExtractionError, UnsupportedDocumentError
from ...core.interfaces import DocumentExtractor


logger = logging.getLogger(__name__)

WORDS_PER_PAGE = 500


def count_words(text: str) -> int:
    return len(text.split())


def estimate_page_count(text: str) -> int:
    """Rough page estimate for text without physical pages."""
    return max(1, math.ceil(count_words(text) / WORDS_PER_PAGE))


def detect_document_category(filename: str) -> str:
    """Guess what part of a petition a file is from its name."""
    lower = filename.lower()

    if "rfe" in lower and "response" in lower:
        return "rfe_response"
    if "rfe" in lower or "request for evidence" in lower:
        return "rfe_original"
    if "exhibit" in lower:
        return "exhibit"
    if "contract" in lower or "deal" in lower or "agreement" in lower:
        return "contract"
    if "letter" in lower and "support" in lower:
        return "support_letter"
    if "letter" in lower and "recommend" in lower:
        return "recommendation"
    if "cv" in lower or "resume" in lower or "curriculum" in lower:
        return "cv"
    if "petition" in lower or "i-129" in lower or "i-140" in lower:
        return "petition"
    return "document"


class PlainTextExtractor(DocumentExtractor):
    """Decodes text/plain and text/markdown uploads."""

    MIME_TYPES = ("text/plain", "text/markdown", "text/x-markdown")

    def supports(self, file_type: Optional[str]) -> bool:
        return file_type in self.MIME_TYPES

    def extract(self, content: bytes, filename: str) -> Tuple[str, int]:
        text = content.decode("utf-8", errors="replace")
        return text, estimate_page_count(text)


class PdfTextExtractor(DocumentExtractor):
    """Extracts the text layer of a PDF page by page."""

    def supports(self, file_type: Optional[str]) -> bool:
        return file_type == "application/pdf"

    def extract(self, content: bytes, filename: str) -> Tuple[str, int]:
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                pages: List[str] = []
                for page in pdf.pages:
                    text = page.extract_text() or ""
                    if text.strip():
                        pages.append(text)
                page_count = len(pdf.pages)
        except Exception as e:
            logger.error(f"PDF extraction failed for {filename}: {str(e)}")
            raise DocumentExtractionError(f"Could not read PDF {filename}: {str(e)}") from e

        if not pages:
            raise DocumentExtractionError(f"No text layer found in {filename}")

        return "\n\n".join(pages), page_count


class ExtractorRegistry:
    """
    Picks an extractor by MIME type, falling back to the file extension
    when the upload carries no usable content type.
    """

    EXTENSION_TYPES = {
        ".pdf": "application/pdf",
        ".txt": "text/plain",
        ".md": "text/markdown",
    }

    def __init__(self, extractors: Optional[Sequence[DocumentExtractor]] = None):
        self.extractors: List[DocumentExtractor] = list(
            extractors if extractors is not None else (PdfTextExtractor(), PlainTextExtractor())
        )

    def resolve_type(self, file_type: Optional[str], filename: str) -> Optional[str]:
        if file_type and file_type != "application/octet-stream":
            return file_type.split(";")[0].strip().lower()
        extension = os.path.splitext(filename)[1].lower()
        return self.EXTENSION_TYPES.get(extension)

    def extract(self, content: bytes, filename: str, file_type: Optional[str] = None) -> Tuple[str, int]:
        """
        Extract text with the first extractor that supports the file.

        Raises:
            UnsupportedDocumentError: If no extractor handles the type
            DocumentExtractionError: If the extractor fails
        """
        resolved = self.resolve_type(file_type, filename)
        for extractor in self.extractors:
            if extractor.supports(resolved):
                return extractor.extract(content, filename)

        raise UnsupportedDocumentError(f"Unsupported document type for {filename}: {file_type}")
