# Workers package - run orchestration and session tracking

from posegen.workers.base import (
    RunState,
    GenerationObserver,
    CallbackObserver,
)
from posegen.workers.orchestrator import GenerationOrchestrator
from posegen.workers.sessions import (
    GenerationSession,
    SessionBusyError,
    SessionManager,
)

__all__ = [
    "RunState",
    "GenerationObserver",
    "CallbackObserver",
    "GenerationOrchestrator",
    "GenerationSession",
    "SessionBusyError",
    "SessionManager",
]
