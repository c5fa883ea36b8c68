"""
Main FastAPI application for VisaScore.
Thin HTTP gateway over report parsing, officer scoring jobs, session comparison and officer chat.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional
import logging
import os
import time
import uuid
from datetime import datetime
from uuid import UUID

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core.config import Settings, get_settings
from ..core.criteria import VISA_CRITERIA, MINIMUM_CRITERIA
from ..core.exceptions import (
    GenerationNotConfiguredError,
    JobNotFoundError,
    UnknownVisaTypeError,
    VisaScoreError,
)
from ..core.interfaces import JobStore, TextGenerator
from ..core.models import (
    CamelModel,
    ChatMessage,
    ChatRole,
    DocumentType,
    JobStatus,
    ParsedReport,
    ScoringSession,
    UploadedDocument,
    VisaType,
)
from ..core.monitoring import get_monitoring_status, setup_logging
from ..services.generation import build_text_generator
from ..services.jobs import ExtractorRegistry, InMemoryJobStore, ScoringJobRunner, detect_document_category
from ..services.parsing import compare_reports, parse_officer_report, summarize_report
from ..services.scoring import OfficerScoringService


logger = logging.getLogger(__name__)


# Request/Response Models
class ParseReportRequest(CamelModel):
    """Request model for parsing an existing officer report."""
    report_text: str = Field(..., description="Free-text officer report")
    visa_type: VisaType = Field(..., description="Classification the report evaluates")


class SessionCreatedResponse(CamelModel):
    """Response model for a newly created scoring session."""
    session_id: str
    job_id: str
    status: JobStatus
    document_count: int


class SessionStatusResponse(CamelModel):
    """Response model for session status."""
    session_id: str
    status: JobStatus
    progress: int
    progress_message: Optional[str] = None
    error_message: Optional[str] = None
    visa_type: VisaType
    document_type: DocumentType
    updated_at: str


class CompareRequest(CamelModel):
    """Request model for comparing two completed sessions."""
    before_session_id: str = Field(..., description="Session scored before the RFE response")
    after_session_id: str = Field(..., description="Session scored after the RFE response")


class ChatRequest(CamelModel):
    """Request model for officer chat."""
    message: str = Field(..., min_length=1)


class ChatResponse(CamelModel):
    """Response model for officer chat."""
    session_id: str
    reply: str


class HealthCheckResponse(BaseModel):
    """Response model for health checks."""
    status: str
    service: str
    version: str
    timestamp: float
    services: Optional[Dict[str, str]] = None
    metrics: Optional[Dict[str, Any]] = None


# Global settings instance
settings = get_settings()


def initialize_services(app: FastAPI, app_settings: Settings, generator: Optional[TextGenerator] = None):
    """Construct services from settings and attach them to app.state."""
    logger.info("Initializing services...")

    store = InMemoryJobStore()
    scoring_service = None

    if generator is None:
        try:
            generator = build_text_generator(app_settings)
        except GenerationNotConfiguredError as e:
            logger.warning(f"Officer scoring disabled: {str(e)}")

    if generator is not None:
        scoring_service = OfficerScoringService(generator, app_settings)

    app.state.settings = app_settings
    app.state.store = store
    app.state.scoring_service = scoring_service
    app.state.runner = (
        ScoringJobRunner(store, ExtractorRegistry(), scoring_service, app_settings.max_document_chars)
        if scoring_service else None
    )

    logger.info("All services initialized successfully")


def create_app(app_settings: Optional[Settings] = None, generator: Optional[TextGenerator] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        app_settings: Settings to use (environment settings if omitted)
        generator: Text generator override; built from settings if omitted
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        setup_logging(app_settings.log_level, app_settings.structured_logging)
        logger.info(f"Starting {app_settings.app_name}")

        initialize_services(app, app_settings, generator)

        yield

        logger.info(f"Shutting down {app_settings.app_name}")

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.version,
        description="Officer-perspective scoring of O-1A, O-1B, P-1A and EB-1A petitions",
        lifespan=lifespan,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=app_settings.allowed_hosts
    )

    register_routes(app)
    return app


def _error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    response = JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": status_code,
                "message": message,
                "timestamp": datetime.now().isoformat(),
                "request_id": request_id
            }
        }
    )
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def _parse_uuid(value: str, detail: str = "Invalid session ID format") -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


def _require_runner(request: Request) -> ScoringJobRunner:
    runner = request.app.state.runner
    if runner is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Officer scoring is not configured"
        )
    return runner


def validate_file_upload(file: UploadFile, app_settings: Settings) -> None:
    """Validate uploaded file."""
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filename is required"
        )

    file_ext = os.path.splitext(file.filename)[1].lower()
    if file_ext not in app_settings.allowed_file_types:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type {file_ext} not allowed. Allowed types: {app_settings.allowed_file_types}"
        )

    if file.size and file.size > app_settings.max_file_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds maximum allowed size of {app_settings.max_file_size} bytes"
        )


async def _completed_report(store: JobStore, session: ScoringSession) -> ParsedReport:
    job = await store.get_job_for_session(session.id)
    if job is None or job.status != JobStatus.COMPLETED or job.report is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Session {session.id} is not completed (status: {session.status.value})"
        )
    return job.report


async def run_scoring_job(runner: ScoringJobRunner, job_id: UUID) -> None:
    """Background task wrapper; failures are recorded on the job."""
    try:
        await runner.run(job_id)
    except Exception as e:
        logger.error(f"Background scoring job {job_id} crashed: {str(e)}", exc_info=True)


def register_routes(app: FastAPI) -> None:
    """Attach middleware hooks, exception handlers and endpoints."""

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Add request ID and timing to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        execution_time = (time.time() - start_time) * 1000

        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"Request {request_id}: {request.method} {request.url.path} "
            f"completed in {execution_time:.2f}ms with status {response.status_code}"
        )
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with proper logging."""
        logger.warning(f"HTTP {exc.status_code}: {exc.detail} - {request.method} {request.url}")
        return _error_response(request, exc.status_code, exc.detail)

    @app.exception_handler(VisaScoreError)
    async def domain_exception_handler(request: Request, exc: VisaScoreError):
        """Map domain errors to HTTP status codes."""
        if isinstance(exc, JobNotFoundError):
            status_code = status.HTTP_404_NOT_FOUND
        elif isinstance(exc, UnknownVisaTypeError):
            status_code = status.HTTP_400_BAD_REQUEST
        elif isinstance(exc, GenerationNotConfiguredError):
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        else:
            status_code = status.HTTP_502_BAD_GATEWAY

        # KeyError wraps its message in quotes
        message = exc.args[0] if exc.args else type(exc).__name__
        logger.warning(f"{type(exc).__name__}: {message} - {request.method} {request.url}")
        return _error_response(request, status_code, str(message))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions with proper logging."""
        logger.error(f"Unhandled exception: {str(exc)} - {request.method} {request.url}", exc_info=True)
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    @app.get("/health", response_model=HealthCheckResponse)
    async def health_check(request: Request):
        """Health check including service availability and operation counters."""
        services_status = {
            "job_store": "healthy" if getattr(request.app.state, "store", None) else "not_initialized",
            "officer_scoring": "healthy" if getattr(request.app.state, "scoring_service", None) else "not_configured",
        }
        overall_status = "healthy" if all(s == "healthy" for s in services_status.values()) else "degraded"

        return HealthCheckResponse(
            status=overall_status,
            service="api-gateway",
            version=request.app.version,
            timestamp=time.time(),
            services=services_status,
            metrics=get_monitoring_status()["metrics"]
        )

    @app.get("/api/v1/visa-types")
    async def get_supported_visa_types():
        """Supported classifications with their criteria and minimum counts."""
        return {
            "visaTypes": [
                {
                    "code": visa_type.value,
                    "minimumCriteria": MINIMUM_CRITERIA[visa_type],
                    "criteria": [c.model_dump(by_alias=True) for c in criteria],
                }
                for visa_type, criteria in VISA_CRITERIA.items()
            ],
            "documentTypes": [d.value for d in DocumentType],
        }

    @app.post("/api/v1/reports/parse")
    async def parse_report(body: ParseReportRequest):
        """Parse an existing officer report without calling a model."""
        parsed = parse_officer_report(body.report_text, body.visa_type)
        return parsed.model_dump(mode="json", by_alias=True)

    @app.post("/api/v1/sessions", response_model=SessionCreatedResponse, status_code=status.HTTP_202_ACCEPTED)
    async def create_scoring_session(
        request: Request,
        background_tasks: BackgroundTasks,
        visa_type: VisaType = Form(...),
        document_type: DocumentType = Form(...),
        beneficiary_name: Optional[str] = Form(None),
        files: List[UploadFile] = File(..., description="Petition documents to score")
    ):
        """
        Create a scoring session from uploaded documents and start scoring
        in the background. Poll the session for progress.
        """
        runner = _require_runner(request)
        app_settings: Settings = request.app.state.settings
        store = request.app.state.store

        if not files:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="At least one document file is required"
            )

        if len(files) > app_settings.max_files_per_request:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Too many files. Maximum allowed: {app_settings.max_files_per_request}"
            )

        for file in files:
            validate_file_upload(file, app_settings)

        session = ScoringSession(
            visa_type=visa_type,
            document_type=document_type,
            beneficiary_name=beneficiary_name,
        )

        documents = []
        for file in files:
            content = await file.read()
            if len(content) > app_settings.max_file_size:
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail=f"File {file.filename} exceeds maximum size of {app_settings.max_file_size} bytes"
                )
            documents.append(UploadedDocument(
                session_id=session.id,
                filename=file.filename,
                file_type=file.content_type,
                content=content,
                document_category=detect_document_category(file.filename),
            ))

        await store.save_session(session)
        for document in documents:
            await store.save_document(document)

        job = await runner.enqueue(session.id)
        background_tasks.add_task(run_scoring_job, runner, job.id)

        return SessionCreatedResponse(
            session_id=str(session.id),
            job_id=str(job.id),
            status=job.status,
            document_count=len(documents),
        )

    @app.get("/api/v1/sessions/{session_id}", response_model=SessionStatusResponse)
    async def get_session_status(session_id: str, request: Request):
        """Current status and progress of a scoring session."""
        session = await request.app.state.store.get_session(_parse_uuid(session_id))
        return SessionStatusResponse(
            session_id=str(session.id),
            status=session.status,
            progress=session.progress,
            progress_message=session.progress_message,
            error_message=session.error_message,
            visa_type=session.visa_type,
            document_type=session.document_type,
            updated_at=session.updated_at.isoformat(),
        )

    @app.get("/api/v1/sessions/{session_id}/results")
    async def get_session_results(session_id: str, request: Request):
        """Parsed officer report of a completed session."""
        session = await request.app.state.store.get_session(_parse_uuid(session_id))
        report = await _completed_report(request.app.state.store, session)

        return {
            "sessionId": str(session.id),
            "visaType": session.visa_type.value,
            "documentType": session.document_type.value,
            "report": report.model_dump(mode="json", by_alias=True),
        }

    @app.post("/api/v1/sessions/compare")
    async def compare_sessions(body: CompareRequest, request: Request):
        """Compare the results of two sessions, typically before and after an RFE response."""
        store = request.app.state.store
        before_id = _parse_uuid(body.before_session_id, "Valid beforeSessionId is required")
        after_id = _parse_uuid(body.after_session_id, "Valid afterSessionId is required")

        before = await _completed_report(store, await store.get_session(before_id))
        after = await _completed_report(store, await store.get_session(after_id))

        comparison = compare_reports(before, after)
        return {
            "beforeSessionId": str(before_id),
            "afterSessionId": str(after_id),
            "comparison": comparison.model_dump(mode="json", by_alias=True),
        }

    @app.post("/api/v1/sessions/{session_id}/chat", response_model=ChatResponse)
    async def chat_with_officer(session_id: str, body: ChatRequest, request: Request):
        """Ask the officer a follow-up question about a completed evaluation."""
        store = request.app.state.store
        scoring_service: Optional[OfficerScoringService] = request.app.state.scoring_service
        if scoring_service is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Officer scoring is not configured"
            )

        session = await store.get_session(_parse_uuid(session_id))
        job = await store.get_job_for_session(session.id)
        if job is None or job.report is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Chat is available once scoring has completed"
            )

        history = [
            {"role": message.role.value, "content": message.content}
            for message in await store.get_chat_history(session.id)
        ]

        reply = await scoring_service.generate_chat_response(
            session.visa_type,
            summarize_report(job.report),
            history,
            body.message,
        )

        await store.add_chat_message(ChatMessage(session_id=session.id, role=ChatRole.USER, content=body.message))
        await store.add_chat_message(ChatMessage(session_id=session.id, role=ChatRole.ASSISTANT, content=reply))

        return ChatResponse(session_id=str(session.id), reply=reply)


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "visascore.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info"
    )
