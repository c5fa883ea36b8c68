"""
Abstract base classes and interfaces for VisaScore services.
These define the contracts that collaborator implementations must follow.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from uuid import UUID

from .models import (
    ChatMessage,
    ScoringJob,
    ScoringSession,
    UploadedDocument,
)


class TextGenerator(ABC):
    """Abstract interface for a generative text backend."""

    name: str = "generator"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.3
    ) -> str:
        """
        Generate text for a prompt under a system prompt.

        Args:
            prompt: User prompt
            system_prompt: Persona / instruction prompt
            max_tokens: Upper bound on generated tokens
            temperature: Sampling temperature

        Returns:
            Generated text

        Raises:
            GenerationError: When the provider returns no usable content
        """
        pass

    async def generate_with_provider(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.3
    ) -> Tuple[str, str]:
        """Generate text and report which provider produced it."""
        text = await self.generate(prompt, system_prompt, max_tokens, temperature)
        return text, self.name


class DocumentExtractor(ABC):
    """Abstract interface for turning uploaded files into text."""

    @abstractmethod
    def supports(self, file_type: Optional[str]) -> bool:
        """Whether this extractor handles the given MIME type."""
        pass

    @abstractmethod
    def extract(self, content: bytes, filename: str) -> Tuple[str, int]:
        """
        Extract text from a document.

        Args:
            content: Raw file bytes
            filename: Original filename, for logging

        Returns:
            Tuple of (extracted text, page count)
        """
        pass


class JobStore(ABC):
    """Abstract interface for session, document and job persistence."""

    @abstractmethod
    async def save_session(self, session: ScoringSession) -> None:
        """Insert or replace a session."""
        pass

    @abstractmethod
    async def get_session(self, session_id: UUID) -> ScoringSession:
        """Fetch a session or raise JobNotFoundError."""
        pass

    @abstractmethod
    async def save_document(self, document: UploadedDocument) -> None:
        """Insert or replace an uploaded document."""
        pass

    @abstractmethod
    async def get_documents(self, session_id: UUID) -> List[UploadedDocument]:
        """Documents attached to a session, in upload order."""
        pass

    @abstractmethod
    async def save_job(self, job: ScoringJob) -> None:
        """Persist a job checkpoint."""
        pass

    @abstractmethod
    async def get_job(self, job_id: UUID) -> ScoringJob:
        """Fetch a job or raise JobNotFoundError."""
        pass

    @abstractmethod
    async def get_job_for_session(self, session_id: UUID) -> Optional[ScoringJob]:
        """Most recent job of a session, if any."""
        pass

    @abstractmethod
    async def add_chat_message(self, message: ChatMessage) -> None:
        """Append a chat message."""
        pass

    @abstractmethod
    async def get_chat_history(self, session_id: UUID) -> List[ChatMessage]:
        """Chat messages of a session, oldest first."""
        pass
