"""
Unit tests for the job store, document extraction and the scoring job runner.
"""

import pytest
from unittest.mock import MagicMock, patch
from uuid import uuid4

from visascore.core.exceptions import (
    DocumentExtractionError,
    JobNotFoundError,
    UnsupportedDocumentError,
)
from visascore.core.models import (
    ChatMessage,
    ChatRole,
    DocumentType,
    FileStatus,
    JobStatus,
    ScoringJob,
    ScoringSession,
    UploadedDocument,
    VisaType,
)
from visascore.services.jobs import (
    ExtractorRegistry,
    InMemoryJobStore,
    PdfTextExtractor,
    PlainTextExtractor,
    ScoringJobRunner,
    detect_document_category,
)
from visascore.services.parsing import parse_officer_report
from visascore.services.scoring import OfficerScoringService

from conftest import SAMPLE_REPORT, StubTextGenerator


class TestInMemoryJobStore:
    """Test persistence semantics of the in-memory store."""

    @pytest.mark.asyncio
    async def test_session_round_trip_is_a_copy(self, sample_session):
        store = InMemoryJobStore()
        await store.save_session(sample_session)

        sample_session.progress = 50
        stored = await store.get_session(sample_session.id)

        assert stored.progress == 0
        stored.progress = 75
        assert (await store.get_session(sample_session.id)).progress == 0

    @pytest.mark.asyncio
    async def test_missing_records(self):
        store = InMemoryJobStore()

        with pytest.raises(JobNotFoundError):
            await store.get_session(uuid4())
        with pytest.raises(JobNotFoundError):
            await store.get_job(uuid4())
        assert await store.get_job_for_session(uuid4()) is None
        assert await store.get_documents(uuid4()) == []

    @pytest.mark.asyncio
    async def test_latest_job_for_session(self, sample_session):
        store = InMemoryJobStore()
        first = ScoringJob(session_id=sample_session.id)
        second = ScoringJob(session_id=sample_session.id)
        await store.save_job(first)
        await store.save_job(second)
        await store.save_job(first)

        assert (await store.get_job_for_session(sample_session.id)).id == second.id

    @pytest.mark.asyncio
    async def test_documents_keep_upload_order(self, sample_session):
        store = InMemoryJobStore()
        names = ["a.txt", "b.txt", "c.txt"]
        for name in names:
            await store.save_document(UploadedDocument(session_id=sample_session.id, filename=name))

        assert [d.filename for d in await store.get_documents(sample_session.id)] == names

    @pytest.mark.asyncio
    async def test_chat_history(self, sample_session):
        store = InMemoryJobStore()
        await store.add_chat_message(ChatMessage(session_id=sample_session.id, role=ChatRole.USER, content="Q"))
        await store.add_chat_message(ChatMessage(session_id=sample_session.id, role=ChatRole.ASSISTANT, content="A"))

        history = await store.get_chat_history(sample_session.id)
        assert [(m.role, m.content) for m in history] == [(ChatRole.USER, "Q"), (ChatRole.ASSISTANT, "A")]


class TestExtraction:
    """Test document text extraction."""

    def test_plain_text(self):
        text, pages = PlainTextExtractor().extract(("word " * 1001).encode("utf-8"), "cv.txt")

        assert text.startswith("word word")
        assert pages == 3

    def test_registry_uses_extension_without_content_type(self):
        text, pages = ExtractorRegistry().extract(b"Markdown body", "notes.md", None)

        assert text == "Markdown body"
        assert pages == 1

    def test_registry_strips_mime_parameters(self):
        text, _ = ExtractorRegistry().extract(b"Body", "upload", "text/plain; charset=utf-8")
        assert text == "Body"

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedDocumentError):
            ExtractorRegistry().extract(b"\x89PNG", "scan.png", "image/png")

    def test_pdf_pages(self):
        pages = [MagicMock(), MagicMock()]
        pages[0].extract_text.return_value = "Page one text"
        pages[1].extract_text.return_value = None
        pdf = MagicMock()
        pdf.pages = pages
        pdf.__enter__.return_value = pdf

        with patch("visascore.services.jobs.extraction.pdfplumber.open", return_value=pdf):
            text, page_count = PdfTextExtractor().extract(b"%PDF-1.4", "petition.pdf")

        assert text == "Page one text"
        assert page_count == 2

    def test_pdf_without_text_layer(self):
        page = MagicMock()
        page.extract_text.return_value = "   "
        pdf = MagicMock()
        pdf.pages = [page]
        pdf.__enter__.return_value = pdf

        with patch("visascore.services.jobs.extraction.pdfplumber.open", return_value=pdf):
            with pytest.raises(DocumentExtractionError):
                PdfTextExtractor().extract(b"%PDF-1.4", "scan.pdf")

    def test_corrupt_pdf(self):
        with patch("visascore.services.jobs.extraction.pdfplumber.open", side_effect=Exception("bad xref")):
            with pytest.raises(DocumentExtractionError, match="bad xref"):
                PdfTextExtractor().extract(b"not a pdf", "broken.pdf")

    @pytest.mark.parametrize("filename,category", [
        ("RFE_response_final.pdf", "rfe_response"),
        ("uscis_rfe.pdf", "rfe_original"),
        ("Exhibit_A.pdf", "exhibit"),
        ("deal_memo.pdf", "contract"),
        ("support_letter_smith.pdf", "support_letter"),
        ("recommendation_letter.pdf", "recommendation"),
        ("resume.pdf", "cv"),
        ("I-129_petition.pdf", "petition"),
        ("notes.txt", "document"),
    ])
    def test_detect_document_category(self, filename, category):
        assert detect_document_category(filename) == category


class FailingOnceScoringService:
    """Scoring service that fails on its first call, then delegates."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    async def run_officer_scoring(self, scoring_input, on_progress=None):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("worker crashed")
        return await self.inner.run_officer_scoring(scoring_input, on_progress)


class TestScoringJobRunner:
    """Test the job state machine."""

    async def _setup(self, session, documents, generator=None):
        store = InMemoryJobStore()
        await store.save_session(session)
        for document in documents:
            await store.save_document(document)

        service = OfficerScoringService(generator or StubTextGenerator())
        runner = ScoringJobRunner(store, ExtractorRegistry(), service)
        job = await runner.enqueue(session.id)
        return store, runner, job

    @pytest.mark.asyncio
    async def test_completes(self, sample_session, text_document, petition_text):
        store, runner, job = await self._setup(sample_session, [text_document])

        result = await runner.run(job.id)

        assert result.status == JobStatus.COMPLETED
        assert result.report.overall_score == 64
        assert result.document_content == f"=== FILE: petition ===\n{petition_text}"
        assert result.attempts == 1

        session = await store.get_session(sample_session.id)
        assert session.status == JobStatus.COMPLETED
        assert session.progress == 100
        assert session.completed_at is not None

        document = (await store.get_documents(sample_session.id))[0]
        assert document.status == FileStatus.COMPLETED
        assert document.word_count == len(petition_text.split())
        assert document.page_count == 1

    @pytest.mark.asyncio
    async def test_enqueue_marks_session_queued(self, sample_session, text_document):
        store, runner, job = await self._setup(sample_session, [text_document])

        assert job.status == JobStatus.QUEUED
        assert (await store.get_job(job.id)).status == JobStatus.QUEUED
        assert (await store.get_session(sample_session.id)).status == JobStatus.QUEUED

    @pytest.mark.asyncio
    async def test_usable_text_not_re_extracted(self, sample_session):
        existing = "Already extracted petition text. " * 10
        document = UploadedDocument(
            session_id=sample_session.id,
            filename="scan.png",
            file_type="image/png",
            extracted_text=existing,
            status=FileStatus.COMPLETED,
            document_category="petition",
        )
        store, runner, job = await self._setup(sample_session, [document])

        result = await runner.run(job.id)

        assert result.status == JobStatus.COMPLETED
        assert existing in result.document_content

    @pytest.mark.asyncio
    async def test_partial_extraction_failure(self, sample_session, text_document):
        bad = UploadedDocument(
            session_id=sample_session.id,
            filename="photo.png",
            file_type="image/png",
            content=b"\x89PNG",
        )
        store, runner, job = await self._setup(sample_session, [text_document, bad])

        result = await runner.run(job.id)

        assert result.status == JobStatus.COMPLETED
        statuses = {d.filename: d.status for d in await store.get_documents(sample_session.id)}
        assert statuses == {"petition.txt": FileStatus.COMPLETED, "photo.png": FileStatus.ERROR}

    @pytest.mark.asyncio
    async def test_all_extractions_fail(self, sample_session):
        bad = UploadedDocument(session_id=sample_session.id, filename="photo.png", file_type="image/png")
        store, runner, job = await self._setup(sample_session, [bad])

        result = await runner.run(job.id)

        assert result.status == JobStatus.ERROR
        assert "Failed to extract text" in result.error_message
        session = await store.get_session(sample_session.id)
        assert session.status == JobStatus.ERROR
        assert session.error_message == result.error_message

    @pytest.mark.asyncio
    async def test_no_documents(self, sample_session):
        store, runner, job = await self._setup(sample_session, [])

        result = await runner.run(job.id)

        assert result.status == JobStatus.ERROR
        assert "No documents" in result.error_message

    @pytest.mark.asyncio
    async def test_scoring_failure(self, sample_session, text_document):
        store, runner, job = await self._setup(
            sample_session, [text_document], StubTextGenerator(error=RuntimeError("provider down"))
        )

        result = await runner.run(job.id)

        assert result.status == JobStatus.ERROR
        assert "provider down" in result.error_message
        assert result.document_content is not None
        assert (await store.get_session(sample_session.id)).status == JobStatus.ERROR

    @pytest.mark.asyncio
    async def test_resume_skips_extraction(self, sample_session, text_document):
        store, runner, job = await self._setup(sample_session, [text_document])
        runner.scoring_service = FailingOnceScoringService(runner.scoring_service)

        with pytest.raises(RuntimeError):
            await runner.run(job.id)

        crashed = await store.get_job(job.id)
        assert crashed.status == JobStatus.ERROR
        assert crashed.document_content is not None

        with patch.object(runner.extractor, "extract", side_effect=AssertionError("re-extracted")):
            result = await runner.run(job.id)

        assert result.status == JobStatus.COMPLETED
        assert result.attempts == 2
        assert result.error_message is None
        assert (await store.get_session(sample_session.id)).error_message is None

    @pytest.mark.asyncio
    async def test_resume_skips_scoring(self, sample_session, text_document):
        store, runner, job = await self._setup(sample_session, [text_document])

        checkpoint = await store.get_job(job.id)
        checkpoint.status = JobStatus.SCORING
        checkpoint.document_content = "Checkpointed content"
        checkpoint.report = parse_officer_report(SAMPLE_REPORT, VisaType.O_1A)
        await store.save_job(checkpoint)

        generator = StubTextGenerator()
        runner.scoring_service = OfficerScoringService(generator)
        result = await runner.run(job.id)

        assert result.status == JobStatus.COMPLETED
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_completed_job_returns_immediately(self, sample_session, text_document):
        store, runner, job = await self._setup(sample_session, [text_document])
        await runner.run(job.id)

        again = await runner.run(job.id)

        assert again.status == JobStatus.COMPLETED
        assert again.attempts == 1

    @pytest.mark.asyncio
    async def test_rfe_original_separated(self):
        session = ScoringSession(visa_type=VisaType.O_1A, document_type=DocumentType.RFE_RESPONSE)
        original = UploadedDocument(
            session_id=session.id, filename="rfe.txt", file_type="text/plain",
            content=b"USCIS requests evidence of judging", document_category="rfe_original",
        )
        response = UploadedDocument(
            session_id=session.id, filename="rfe_response.txt", file_type="text/plain",
            content=b"Enclosed are judging invitations", document_category="rfe_response",
        )
        generator = StubTextGenerator()
        store, runner, job = await self._setup(session, [original, response], generator)

        result = await runner.run(job.id)

        assert result.rfe_original_content == "=== FILE: rfe_original ===\nUSCIS requests evidence of judging"
        assert "judging invitations" in result.document_content
        assert "USCIS requests" not in result.document_content
        assert "=== ORIGINAL RFE FROM USCIS ===" in generator.calls[0][0]

    @pytest.mark.asyncio
    async def test_unknown_job(self, sample_session, text_document):
        store, runner, job = await self._setup(sample_session, [text_document])

        with pytest.raises(JobNotFoundError):
            await runner.run(uuid4())
