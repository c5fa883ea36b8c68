"""
Background scoring jobs: persistence, document text extraction and the
checkpointed runner.
"""

from .extraction import (
    ExtractorRegistry,
    PdfTextExtractor,
    PlainTextExtractor,
    detect_document_category,
)
from .runner import ScoringJobRunner
from .store import InMemoryJobStore

__all__ = [
    'ExtractorRegistry',
    'PdfTextExtractor',
    'PlainTextExtractor',
    'detect_document_category',
    'ScoringJobRunner',
    'InMemoryJobStore',
]
