"""
Generation API Routes
Synchronous and streaming pose generation.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import StreamingResponse

from posegen.api.deps import get_app_settings, get_orchestrator
from posegen.api.forms import build_generation_request
from posegen.core.config import Settings
from posegen.core.exceptions import GenerationFailure
from posegen.schemas.generate import (
    AspectRatio,
    GeneratedImage,
    GenerateResponse,
    GenerationOptions,
    ProgressState,
)
from posegen.workers.base import GenerationObserver
from posegen.workers.orchestrator import GenerationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


class _CollectingObserver(GenerationObserver):
    def __init__(self):
        self.images: List[GeneratedImage] = []
        self.progress = ProgressState()
    
    def on_progress(self, progress: ProgressState):
        self.progress = progress
    
    def on_image(self, image: GeneratedImage):
        self.images.append(image)


@router.get("/options", response_model=GenerationOptions)
async def get_options(settings: Settings = Depends(get_app_settings)):
    """Defaults and choices for the generation form."""
    return GenerationOptions(
        default_theme=settings.DEFAULT_THEME,
        default_aspect_ratio=settings.DEFAULT_ASPECT_RATIO,
        default_num_poses=settings.DEFAULT_POSE_COUNT,
        num_poses_choices=settings.POSE_COUNT_CHOICES,
        aspect_ratio_choices=[r.value for r in AspectRatio],
        max_num_poses=settings.MAX_POSE_COUNT,
    )


@router.post("/generate", response_model=GenerateResponse)
async def generate_poses(
    file: Optional[UploadFile] = File(None),
    theme: Optional[str] = Form(None),
    aspect_ratio: str = Form("1:1"),
    num_poses: int = Form(9),
    settings: Settings = Depends(get_app_settings),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """
    Generate pose variations and return them all at once.
    Images are listed in the order they finished.
    """
    request = await build_generation_request(file, theme, aspect_ratio, num_poses, settings)
    observer = _CollectingObserver()
    
    try:
        await orchestrator.run(request, observer)
    except GenerationFailure as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    
    delivered = len(observer.images)
    return GenerateResponse(
        status="completed",
        message=f"Generated {delivered} of {request.num_poses} poses",
        progress=observer.progress,
        requested=request.num_poses,
        delivered=delivered,
        images=[image.data_url for image in observer.images],
    )


@router.post("/generate/stream")
async def generate_poses_stream(
    file: Optional[UploadFile] = File(None),
    theme: Optional[str] = Form(None),
    aspect_ratio: str = Form("1:1"),
    num_poses: int = Form(9),
    settings: Settings = Depends(get_app_settings),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Generate pose variations as server-sent events (progress, image, done/failed)."""
    request = await build_generation_request(file, theme, aspect_ratio, num_poses, settings)
    
    async def event_source():
        async for event in orchestrator.stream(request):
            yield f"event: {event.type}\ndata: {event.model_dump_json(exclude_none=True)}\n\n"
    
    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
