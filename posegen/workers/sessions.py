"""
Generation Sessions
A session is the run object owned by the UI layer: form input, latest
progress, delivered images and the last error. SessionManager keeps them
in memory and runs generations as background asyncio tasks.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from posegen.core.config import Settings, settings as default_settings
from posegen.core.exceptions import GenerationFailure
from posegen.schemas.generate import GeneratedImage, GenerationRequest, ProgressState
from posegen.schemas.session import SessionResponse
from posegen.workers.base import GenerationObserver, RunState
from posegen.workers.orchestrator import GenerationOrchestrator

logger = logging.getLogger(__name__)


class SessionBusyError(Exception):
    """A run is already in flight for this session."""


class GenerationSession(GenerationObserver):
    """Holds the UI state for one user's generation runs."""
    
    def __init__(self, session_id: Optional[str] = None):
        self.id = session_id or f"sess_{uuid.uuid4().hex[:12]}"
        self.request: Optional[GenerationRequest] = None
        self.state = RunState.IDLE
        self.progress = ProgressState()
        self.images: List[GeneratedImage] = []
        self.error: Optional[str] = None
        self.created_at = datetime.utcnow()
        self.updated_at = self.created_at
        self.completed_at: Optional[datetime] = None
    
    @property
    def is_loading(self) -> bool:
        return self.state.is_running
    
    def begin(self, request: GenerationRequest):
        """Reset results for a new run."""
        if self.is_loading:
            raise SessionBusyError(self.id)
        self.request = request
        self.images = []
        self.error = None
        self.progress = ProgressState()
        self.completed_at = None
        self._touch()
    
    def _touch(self):
        self.updated_at = datetime.utcnow()
    
    # Observer callbacks
    
    def on_state(self, state: RunState):
        self.state = state
        self._touch()
    
    def on_progress(self, progress: ProgressState):
        self.progress = progress
        self._touch()
    
    def on_image(self, image: GeneratedImage):
        self.images.append(image)
        self._touch()
    
    def on_done(self, delivered: int):
        self.completed_at = datetime.utcnow()
        self._touch()
    
    def on_failed(self, error: GenerationFailure):
        # Fatal errors clear in-progress UI state; only the message remains
        self.error = error.message
        self.progress = ProgressState()
        self.completed_at = datetime.utcnow()
        self._touch()
    
    def to_response(self) -> SessionResponse:
        request = self.request
        return SessionResponse(
            id=self.id,
            state=self.state.value,
            is_loading=self.is_loading,
            theme=request.theme if request else None,
            aspect_ratio=request.aspect_ratio.value if request else None,
            num_poses=request.num_poses if request else None,
            progress=self.progress,
            image_count=len(self.images),
            error=self.error,
            created_at=self.created_at,
            updated_at=self.updated_at,
            completed_at=self.completed_at,
        )


class SessionManager:
    """
    In-memory session registry.
    
    Features:
    - One background run per session at a time
    - TTL eviction of finished sessions
    """
    
    def __init__(self, orchestrator: GenerationOrchestrator, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.orchestrator = orchestrator
        self.ttl = timedelta(seconds=settings.SESSION_TTL_SECONDS)
        self._sessions: Dict[str, GenerationSession] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
    
    def create(self) -> GenerationSession:
        self.evict_expired()
        session = GenerationSession()
        self._sessions[session.id] = session
        logger.info(f"[Sessions] Created session {session.id}")
        return session
    
    def get(self, session_id: str) -> Optional[GenerationSession]:
        return self._sessions.get(session_id)
    
    def delete(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        # In-flight runs are not cancelled; the task stays tracked until it finishes
        return session is not None
    
    def start(self, session: GenerationSession, request: GenerationRequest) -> asyncio.Task:
        """Begin a run for `session` in the background."""
        session.begin(request)
        session.on_state(RunState.IDEATING)
        task = asyncio.create_task(self._run(session, request))
        self._tasks[session.id] = task
        task.add_done_callback(lambda t: self._forget_task(session.id, t))
        return task

    def _forget_task(self, session_id: str, task: asyncio.Task):
        if self._tasks.get(session_id) is task:
            del self._tasks[session_id]
    
    async def _run(self, session: GenerationSession, request: GenerationRequest):
        try:
            await self.orchestrator.run(request, session)
        except GenerationFailure as e:
            logger.info(f"[Sessions] Session {session.id} failed: {e.message}")
        except Exception as e:
            logger.error(f"[Sessions] Session {session.id} crashed: {e}", exc_info=True)
            session.on_state(RunState.FAILED)
            session.on_failed(GenerationFailure(details={"cause": repr(e)}))
    
    async def wait(self, session_id: str):
        """Wait for the session's current run, if any."""
        task = self._tasks.get(session_id)
        if task is not None:
            await task
    
    def evict_expired(self) -> int:
        cutoff = datetime.utcnow() - self.ttl
        expired = [
            sid for sid, session in self._sessions.items()
            if not session.is_loading and session.updated_at < cutoff
        ]
        for sid in expired:
            self.delete(sid)
        if expired:
            logger.info(f"[Sessions] Evicted {len(expired)} expired sessions")
        return len(expired)
    
    def __len__(self) -> int:
        return len(self._sessions)
