"""
API Dependencies
Common dependencies for FastAPI routes (orchestrator, sessions, settings).
"""

from fastapi import Request

from posegen.core.config import Settings
from posegen.services.archive import ArchiveService
from posegen.workers.orchestrator import GenerationOrchestrator
from posegen.workers.sessions import SessionManager


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with."""
    return request.app.state.settings


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    """Orchestrator built at startup."""
    return request.app.state.orchestrator


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_archive_service(request: Request) -> ArchiveService:
    return request.app.state.archive
