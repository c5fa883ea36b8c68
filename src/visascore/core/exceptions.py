"""
Exception hierarchy for VisaScore.

The report parser itself never raises; these cover the collaborators around it.
"""


class VisaScoreError(Exception):
    """Base class for all VisaScore errors."""
    pass


class UnknownVisaTypeError(VisaScoreError, ValueError):
    """Raised when a visa type has no criterion definitions."""
    pass


class GenerationError(VisaScoreError):
    """Raised when the generative backend fails to produce a report."""
    pass


class EmptyGenerationError(GenerationError):
    """Raised when a provider responds without any text content."""
    pass


class GenerationNotConfiguredError(GenerationError):
    """Raised when no generative provider has credentials."""
    pass


class ScoringError(VisaScoreError):
    """Raised when an officer scoring run cannot complete."""
    pass


class DocumentExtractionError(VisaScoreError):
    """Raised when text cannot be extracted from an uploaded document."""
    pass


class UnsupportedDocumentError(DocumentExtractionError):
    """Raised for document MIME types without an extractor."""
    pass


class JobNotFoundError(VisaScoreError, KeyError):
    """Raised when a session or job id is unknown to the store."""
    pass
