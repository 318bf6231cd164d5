"""
Form Handling
Validates the generation form and builds a GenerationRequest.
"""

import logging
from typing import Optional
from fastapi import HTTPException, UploadFile, status
from pydantic import ValidationError

from posegen.core.config import Settings
from posegen.core.exceptions import InvalidUploadError
from posegen.schemas.generate import AspectRatio, GenerationRequest
from posegen.services.uploads import capture_upload

logger = logging.getLogger(__name__)


async def build_generation_request(
    file: Optional[UploadFile],
    theme: Optional[str],
    aspect_ratio: str,
    num_poses: int,
    settings: Settings,
) -> GenerationRequest:
    """Turn multipart form fields into a GenerationRequest, or raise 400."""
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please upload an image first."
        )
    
    if not theme or not theme.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please enter a prompt describing the scene or theme."
        )
    
    if num_poses < 1 or num_poses > settings.MAX_POSE_COUNT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Number of poses must be between 1 and {settings.MAX_POSE_COUNT}."
        )
    
    try:
        ratio = AspectRatio.parse(aspect_ratio)
    except ValueError:
        choices = ", ".join(r.value for r in AspectRatio)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Aspect ratio must be one of: {choices}."
        )
    
    data = await file.read()
    try:
        uploaded = capture_upload(file.filename, file.content_type, data, settings=settings)
    except InvalidUploadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    
    try:
        return GenerationRequest(
            source=uploaded.to_source_image(),
            theme=theme,
            aspect_ratio=ratio,
            num_poses=num_poses,
        )
    except ValidationError as e:
        logger.info(f"[Forms] Rejected generation request: {e.errors()}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid generation request. Please check the form and try again."
        )
