"""
In-memory job store.
Holds sessions, uploaded documents, job checkpoints and chat history.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional
from uuid import UUID

from ...core.exceptions import JobNotFoundError
from ...core.interfaces import JobStore
from ...core.models import ChatMessage, ScoringJob, ScoringSession, UploadedDocument


logger = logging.getLogger(__name__)


class InMemoryJobStore(JobStore):
    """
    Process-local JobStore. Every save stores a deep copy so callers
    cannot mutate persisted state behind the store's back.
    """

    def __init__(self):
        self._sessions: Dict[UUID, ScoringSession] = {}
        self._documents: Dict[UUID, Dict[UUID, UploadedDocument]] = defaultdict(dict)
        self._jobs: Dict[UUID, ScoringJob] = {}
        self._session_jobs: Dict[UUID, List[UUID]] = defaultdict(list)
        self._chat: Dict[UUID, List[ChatMessage]] = defaultdict(list)

        logger.info("Initialized in-memory job store")

    async def save_session(self, session: ScoringSession) -> None:
        self._sessions[session.id] = session.model_copy(deep=True)

    async def get_session(self, session_id: UUID) -> ScoringSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise JobNotFoundError(f"Session {session_id} not found")
        return session.model_copy(deep=True)

    async def save_document(self, document: UploadedDocument) -> None:
        self._documents[document.session_id][document.id] = document.model_copy(deep=True)

    async def get_documents(self, session_id: UUID) -> List[UploadedDocument]:
        return [doc.model_copy(deep=True) for doc in self._documents.get(session_id, {}).values()]

    async def save_job(self, job: ScoringJob) -> None:
        if job.id not in self._jobs:
            self._session_jobs[job.session_id].append(job.id)
        self._jobs[job.id] = job.model_copy(deep=True)

    async def get_job(self, job_id: UUID) -> ScoringJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job.model_copy(deep=True)

    async def get_job_for_session(self, session_id: UUID) -> Optional[ScoringJob]:
        job_ids = self._session_jobs.get(session_id)
        if not job_ids:
            return None
        return self._jobs[job_ids[-1]].model_copy(deep=True)

    async def add_chat_message(self, message: ChatMessage) -> None:
        self._chat[message.session_id].append(message.model_copy(deep=True))

    async def get_chat_history(self, session_id: UUID) -> List[ChatMessage]:
        return [m.model_copy(deep=True) for m in self._chat.get(session_id, [])]
