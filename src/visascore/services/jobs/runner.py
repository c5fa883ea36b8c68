"""
Background scoring job runner.

A job moves queued -> extracting -> scoring -> completed, or to error.
Each step's output is checkpointed on the job before the next step starts,
so running a job again resumes after the last completed step.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from ...core.exceptions import DocumentExtractionError, VisaScoreError
from ...core.interfaces import JobStore
from ...core.models import (
    DocumentType,
    FileStatus,
    JobStatus,
    ScoringInput,
    ScoringJob,
    ScoringSession,
    UploadedDocument,
)
from ...core.monitoring import monitor_performance
from ..scoring import OfficerScoringService, build_document_content
from .extraction import ExtractorRegistry, count_words


logger = logging.getLogger(__name__)

MIN_USABLE_TEXT = 100
RFE_ORIGINAL_CATEGORY = "rfe_original"


class ScoringJobRunner:
    """
    Drives scoring jobs through extraction and officer scoring.
    """

    def __init__(
        self,
        store: JobStore,
        extractor: ExtractorRegistry,
        scoring_service: OfficerScoringService,
        max_document_chars: int = 150_000
    ):
        self.store = store
        self.extractor = extractor
        self.scoring_service = scoring_service
        self.max_document_chars = max_document_chars

    async def enqueue(self, session_id: UUID) -> ScoringJob:
        """Create a queued job for a session."""
        session = await self.store.get_session(session_id)
        job = ScoringJob(session_id=session.id)
        await self.store.save_job(job)

        await self._update_session(session, JobStatus.QUEUED, 0, "Queued for officer review")
        logger.info(f"Queued scoring job {job.id} for session {session_id}", extra={'job_id': str(job.id)})
        return job

    @monitor_performance("jobs", "run")
    async def run(self, job_id: UUID) -> ScoringJob:
        """
        Run a job to completion, resuming after its last checkpoint.

        Returns:
            The job in its final state (completed or error)
        """
        job = await self.store.get_job(job_id)
        if job.status == JobStatus.COMPLETED:
            logger.info(f"Job {job_id} already completed")
            return job

        session = await self.store.get_session(job.session_id)
        job.attempts += 1
        job.error_message = None
        session.error_message = None

        try:
            if job.document_content is None:
                await self._extract(job, session)
            else:
                logger.info(f"Job {job_id} resuming with extracted content")

            if job.report is None:
                await self._score(job, session)
            else:
                logger.info(f"Job {job_id} resuming with parsed report")

        except VisaScoreError as e:
            logger.error(f"Job {job_id} failed: {str(e)}", extra={'job_id': str(job_id)})
            await self._fail(job, session, str(e))
            return job
        except Exception as e:
            logger.error(f"Job {job_id} failed unexpectedly: {str(e)}", extra={'job_id': str(job_id)})
            await self._fail(job, session, str(e))
            raise

        job.status = JobStatus.COMPLETED
        await self._save_job(job)

        session.completed_at = datetime.utcnow()
        await self._update_session(session, JobStatus.COMPLETED, 100, "Scoring complete")

        logger.info(
            f"Job {job_id} completed with score {job.report.overall_score}",
            extra={'job_id': str(job_id), 'session_id': str(session.id)}
        )
        return job

    async def _extract(self, job: ScoringJob, session: ScoringSession) -> None:
        job.status = JobStatus.EXTRACTING
        await self._save_job(job)
        await self._update_session(session, JobStatus.EXTRACTING, 5, "Extracting document text")

        documents = await self.store.get_documents(session.id)
        if not documents:
            raise DocumentExtractionError("No documents uploaded for this session")

        ready: List[UploadedDocument] = []
        for document in documents:
            if document.extracted_text and len(document.extracted_text) > MIN_USABLE_TEXT:
                ready.append(document)
                continue

            document = await self._extract_document(document)
            if document.status == FileStatus.COMPLETED:
                ready.append(document)

        if not ready:
            raise DocumentExtractionError("Failed to extract text from any document")

        main, rfe_original = self._split_documents(ready, session.document_type)
        job.document_content = build_document_content(main, self.max_document_chars)
        if rfe_original:
            job.rfe_original_content = build_document_content(rfe_original, self.max_document_chars)

        await self._save_job(job)
        logger.info(f"Job {job.id} extracted {len(ready)} of {len(documents)} documents")

    async def _extract_document(self, document: UploadedDocument) -> UploadedDocument:
        document.status = FileStatus.PROCESSING
        await self.store.save_document(document)

        try:
            text, page_count = await asyncio.to_thread(
                self.extractor.extract, document.content, document.filename, document.file_type
            )
        except DocumentExtractionError as e:
            logger.warning(f"Extraction failed for {document.filename}: {str(e)}")
            document.status = FileStatus.ERROR
            await self.store.save_document(document)
            return document

        document.extracted_text = text
        document.word_count = count_words(text)
        document.page_count = page_count
        document.status = FileStatus.COMPLETED
        await self.store.save_document(document)
        return document

    @staticmethod
    def _split_documents(
        documents: List[UploadedDocument],
        document_type: DocumentType
    ) -> Tuple[List[UploadedDocument], List[UploadedDocument]]:
        """Separate the original RFE from the response when scoring an RFE response."""
        if document_type != DocumentType.RFE_RESPONSE:
            return documents, []

        original = [d for d in documents if d.document_category == RFE_ORIGINAL_CATEGORY]
        response = [d for d in documents if d.document_category != RFE_ORIGINAL_CATEGORY]
        if not response:
            return documents, []
        return response, original

    async def _score(self, job: ScoringJob, session: ScoringSession) -> None:
        job.status = JobStatus.SCORING
        await self._save_job(job)
        await self._update_session(session, JobStatus.SCORING, 20, "Officer is reviewing the documents")

        scoring_input = ScoringInput(
            session_id=str(session.id),
            document_type=session.document_type,
            visa_type=session.visa_type,
            beneficiary_name=session.beneficiary_name,
            document_content=job.document_content,
            rfe_original_content=job.rfe_original_content,
        )

        async def on_progress(stage: str, progress: int, message: str) -> None:
            # Keep session progress between the scoring start and completion marks
            await self._update_session(session, JobStatus.SCORING, max(20, min(progress, 99)), message)

        job.report = await self.scoring_service.run_officer_scoring(scoring_input, on_progress)
        await self._save_job(job)

    async def _fail(self, job: ScoringJob, session: ScoringSession, message: str) -> None:
        job.status = JobStatus.ERROR
        job.error_message = message
        await self._save_job(job)

        session.error_message = message
        await self._update_session(session, JobStatus.ERROR, session.progress, "Scoring failed")

    async def _save_job(self, job: ScoringJob) -> None:
        job.updated_at = datetime.utcnow()
        await self.store.save_job(job)

    async def _update_session(
        self,
        session: ScoringSession,
        status: JobStatus,
        progress: int,
        message: Optional[str] = None
    ) -> None:
        session.status = status
        session.progress = progress
        session.progress_message = message
        session.updated_at = datetime.utcnow()
        await self.store.save_session(session)
