"""
Officer scoring service.

Builds the officer prompts, calls the generative backend and parses the
resulting report into a ParsedReport.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from ...core.config import Settings
from ...core.criteria import get_criteria
from ...core.exceptions import ScoringError
from ...core.interfaces import TextGenerator
from ...core.models import DocumentType, ParsedReport, ScoringInput, UploadedDocument, VisaType
from ...core.monitoring import monitor_performance
from ..parsing import parse_officer_report
from .prompts import officer_chat_prompt, officer_system_prompt, scoring_prompt


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, str], Union[None, Awaitable[None]]]

TRUNCATION_MARKER = "\n\n[Document truncated due to length...]"


def build_document_content(
    documents: Sequence[UploadedDocument],
    max_length: int = 150_000
) -> str:
    """
    Join the extracted text of every document into one submission.

    Each file gets a ``=== FILE: <category> ===`` header and files are
    separated by ``---``. Output longer than max_length is cut and marked.
    """
    parts = []
    for document in documents:
        if not document.extracted_text:
            continue
        category = document.document_category or document.filename
        parts.append(f"=== FILE: {category} ===\n{document.extracted_text}")

    content = "\n\n---\n\n".join(parts)
    if len(content) > max_length:
        logger.warning(f"Document content truncated from {len(content)} to {max_length} characters")
        content = content[:max_length] + TRUNCATION_MARKER
    return content


class OfficerScoringService:
    """
    Runs an officer review of a submission and answers follow-up questions.
    """

    def __init__(self, generator: TextGenerator, settings: Optional[Settings] = None):
        """
        Initialize the scoring service.

        Args:
            generator: Generative backend (usually a FallbackTextGenerator)
            settings: Token and temperature limits
        """
        self.generator = generator
        self.settings = settings or Settings()

    async def _report_progress(
        self,
        on_progress: Optional[ProgressCallback],
        stage: str,
        progress: int,
        message: str
    ) -> None:
        if on_progress is None:
            return
        try:
            result = on_progress(stage, progress, message)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.warning(f"Progress callback failed at stage {stage}: {str(e)}")

    @staticmethod
    def _submission_content(scoring_input: ScoringInput) -> str:
        if scoring_input.document_type == DocumentType.RFE_RESPONSE and scoring_input.rfe_original_content:
            return (
                "=== ORIGINAL RFE FROM USCIS ===\n"
                f"{scoring_input.rfe_original_content}\n\n"
                "=== PETITIONER'S RFE RESPONSE ===\n"
                f"{scoring_input.document_content}"
            )
        return scoring_input.document_content

    @monitor_performance("scoring", "run_officer_scoring")
    async def run_officer_scoring(
        self,
        scoring_input: ScoringInput,
        on_progress: Optional[ProgressCallback] = None
    ) -> ParsedReport:
        """
        Score a submission as the adjudicating officer.

        Args:
            scoring_input: Visa type, document type and document text
            on_progress: Called with (stage, progress, message); may be async

        Returns:
            ParsedReport for the generated officer report

        Raises:
            ScoringError: If the generative backend fails
        """
        visa_type = scoring_input.visa_type
        await self._report_progress(on_progress, "Initializing", 5, "Preparing officer review")

        system_prompt = officer_system_prompt(visa_type)
        prompt = scoring_prompt(
            scoring_input.document_type,
            visa_type,
            self._submission_content(scoring_input),
            beneficiary_name=scoring_input.beneficiary_name,
        )

        await self._report_progress(on_progress, "Scoring", 20, "Officer is reviewing the documents")

        try:
            report, provider = await self.generator.generate_with_provider(
                prompt,
                system_prompt,
                max_tokens=self.settings.scoring_max_tokens,
                temperature=self.settings.scoring_temperature,
            )
        except Exception as e:
            logger.error(
                f"Officer scoring failed for session {scoring_input.session_id}: {str(e)}",
                extra={'session_id': scoring_input.session_id}
            )
            raise ScoringError(f"Officer scoring failed: {str(e)}") from e

        logger.info(
            f"Officer report generated for session {scoring_input.session_id} ({len(report)} characters)",
            extra={'session_id': scoring_input.session_id, 'provider': provider}
        )

        await self._report_progress(on_progress, "Analyzing", 70, "Parsing officer findings")
        parsed = parse_officer_report(report, get_criteria(visa_type))

        await self._report_progress(on_progress, "Finalizing", 95, "Finalizing results")
        return parsed

    @monitor_performance("scoring", "generate_chat_response")
    async def generate_chat_response(
        self,
        visa_type: VisaType,
        scoring_summary: str,
        history: List[Dict[str, str]],
        user_message: str
    ) -> str:
        """
        Answer a follow-up question in the officer's voice.

        Args:
            visa_type: Classification under review
            scoring_summary: Summary of the completed evaluation
            history: Earlier turns as {"role", "content"} dicts, oldest first
            user_message: The new question

        Returns:
            The officer's reply

        Raises:
            ScoringError: If the generative backend fails
        """
        conversation = list(history) + [{"role": "user", "content": user_message}]
        prompt = officer_chat_prompt(visa_type, scoring_summary, conversation)

        try:
            return await self.generator.generate(
                prompt,
                officer_system_prompt(visa_type),
                max_tokens=self.settings.chat_max_tokens,
                temperature=self.settings.chat_temperature,
            )
        except Exception as e:
            logger.error(f"Officer chat failed: {str(e)}")
            raise ScoringError(f"Officer chat failed: {str(e)}") from e
