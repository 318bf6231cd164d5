"""
Sessions API Routes
Background runs with polling, per-image download and zip download.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from posegen.api.deps import get_app_settings, get_archive_service, get_session_manager
from posegen.api.forms import build_generation_request
from posegen.core.config import Settings
from posegen.core.exceptions import PackagingFailure
from posegen.schemas.session import SessionCreated, SessionResponse
from posegen.services.archive import ArchiveService, default_entries
from posegen.workers.sessions import GenerationSession, SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_session_or_404(session_id: str, sessions: SessionManager) -> GenerationSession:
    session = sessions.get(session_id)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )
    return session


@router.post("", response_model=SessionCreated, status_code=status.HTTP_202_ACCEPTED)
async def create_session(
    file: Optional[UploadFile] = File(None),
    theme: Optional[str] = Form(None),
    aspect_ratio: str = Form("1:1"),
    num_poses: int = Form(9),
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Start a generation run in the background. Poll the session for progress."""
    request = await build_generation_request(file, theme, aspect_ratio, num_poses, settings)
    
    session = sessions.create()
    sessions.start(session, request)
    
    return SessionCreated(
        id=session.id,
        state=session.state.value,
        message=f"Generating {request.num_poses} poses",
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    sessions: SessionManager = Depends(get_session_manager),
):
    """Get session state, progress and image count."""
    return _get_session_or_404(session_id, sessions).to_response()


@router.get("/{session_id}/images/{index}")
async def download_image(
    session_id: str,
    index: int,
    sessions: SessionManager = Depends(get_session_manager),
):
    """Download one generated image (1-based index, completion order)."""
    session = _get_session_or_404(session_id, sessions)
    
    if index < 1 or index > len(session.images):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found"
        )
    
    image = session.images[index - 1]
    return Response(
        content=image.data,
        media_type=image.mime_type,
        headers={"Content-Disposition": f'attachment; filename="pose_{index}.png"'},
    )


@router.get("/{session_id}/archive")
async def download_archive(
    session_id: str,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_session_manager),
    archive: ArchiveService = Depends(get_archive_service),
):
    """Download every generated image as one zip file."""
    session = _get_session_or_404(session_id, sessions)
    
    if session.is_loading:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Generation is still running"
        )
    
    if not session.images:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No generated images to download"
        )
    
    try:
        content = await archive.build_archive(default_entries([image.data for image in session.images]))
    except PackagingFailure as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)
    
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{settings.ARCHIVE_FILENAME}"'},
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    sessions: SessionManager = Depends(get_session_manager),
):
    """Forget a session and its images."""
    if not sessions.delete(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
