"""
Generation Orchestrator
Sequences a run: ideation, then one concurrent image request per pose idea,
reporting progress and delivering images as they finish.
"""

import asyncio
import logging
from typing import AsyncIterator, List, Optional

from posegen.core.config import Settings, settings as default_settings
from posegen.core.exceptions import EmptyIdeationResult, GenerationFailure
from posegen.schemas.generate import (
    GeneratedImage,
    GenerationEvent,
    GenerationRequest,
    ProgressState,
)
from posegen.services.gemini_pose import GeminiPoseService
from posegen.workers.base import GenerationObserver, RunState

logger = logging.getLogger(__name__)


class GenerationOrchestrator:
    """
    Runs ideation followed by the image fan-out.
    
    Holds no state between runs; everything a run produces goes to the
    observer passed to `run`.
    """
    
    IDEATING_MESSAGE = "Generating creative pose ideas..."
    
    def __init__(
        self,
        pose_service: Optional[GeminiPoseService] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or default_settings
        # Raises ConfigurationError without a credential
        self.pose_service = pose_service or GeminiPoseService(settings=settings)
        self.concurrency_limit = max(0, settings.IMAGE_CONCURRENCY_LIMIT)
    
    async def run(self, request: GenerationRequest, observer: Optional[GenerationObserver] = None) -> None:
        """
        Execute one run.
        
        Returns when every image request has resolved. Raises
        GenerationFailure (IdeationFailure / EmptyIdeationResult) if no
        image work could start.
        """
        observer = observer or GenerationObserver()
        
        observer.on_state(RunState.IDEATING)
        observer.on_progress(ProgressState(message=self.IDEATING_MESSAGE))
        
        try:
            ideas = await self.pose_service.get_pose_ideas(request.theme, request.num_poses)
            if not ideas:
                raise EmptyIdeationResult(details={"theme": request.theme, "requested": request.num_poses})
        except GenerationFailure as e:
            logger.error(f"[Orchestrator] Run failed during ideation: {e.message} {e.details}")
            observer.on_state(RunState.FAILED)
            observer.on_failed(e)
            raise
        
        total = len(ideas)
        observer.on_state(RunState.IMAGE_FAN_OUT)
        observer.on_progress(ProgressState(
            message=f"Got {total} ideas! Now generating images...",
            completed=0,
            total=total,
        ))
        
        delivered = await self._fan_out(request, ideas, observer)
        
        logger.info(f"[Orchestrator] Run complete: {delivered}/{total} images delivered "
                    f"({request.num_poses} requested)")
        observer.on_state(RunState.COMPLETED)
        observer.on_done(delivered)
    
    async def _fan_out(self, request: GenerationRequest, ideas: List[str], observer: GenerationObserver) -> int:
        """Launch one image request per idea and join them all."""
        total = len(ideas)
        lock = asyncio.Lock()
        semaphore = asyncio.Semaphore(self.concurrency_limit) if self.concurrency_limit else None
        counters = {"completed": 0, "delivered": 0}
        
        async def generate_one(idea: str):
            if semaphore is not None:
                async with semaphore:
                    data = await self._generate(request, idea)
            else:
                data = await self._generate(request, idea)
            
            # Counter update, progress and delivery are published together
            async with lock:
                counters["completed"] += 1
                observer.on_progress(ProgressState(
                    message=f"Generating images... ({counters['completed']}/{total})",
                    completed=counters["completed"],
                    total=total,
                ))
                if data:
                    counters["delivered"] += 1
                    observer.on_image(GeneratedImage(data=data))
        
        # Join every sibling before surfacing an observer error
        results = await asyncio.gather(*(generate_one(idea) for idea in ideas), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return counters["delivered"]
    
    async def _generate(self, request: GenerationRequest, idea: str) -> Optional[bytes]:
        return await self.pose_service.generate_single_pose(
            request.source,
            idea,
            request.theme,
            request.aspect_ratio,
        )
    
    async def stream(self, request: GenerationRequest) -> AsyncIterator[GenerationEvent]:
        """
        Run and yield events as they happen.
        
        The final event is `done` or `failed`; failures are reported as an
        event rather than raised.
        """
        queue: asyncio.Queue = asyncio.Queue()
        observer = _QueueObserver(queue)
        
        async def runner():
            try:
                await self.run(request, observer)
            except GenerationFailure:
                pass  # already delivered as a failed event
            finally:
                queue.put_nowait(None)
        
        task = asyncio.create_task(runner())
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
            await task
        finally:
            if not task.done():
                # Consumer went away; remaining image requests still finish
                logger.info("[Orchestrator] Stream consumer closed before run completed")


class _QueueObserver(GenerationObserver):
    """Turns observer callbacks into queued events."""
    
    def __init__(self, queue: asyncio.Queue):
        self.queue = queue
    
    def on_progress(self, progress: ProgressState):
        self.queue.put_nowait(GenerationEvent(type="progress", progress=progress))
    
    def on_image(self, image: GeneratedImage):
        self.queue.put_nowait(GenerationEvent(type="image", image=image.data_url))
    
    def on_done(self, delivered: int):
        self.queue.put_nowait(GenerationEvent(type="done", delivered=delivered))
    
    def on_failed(self, error: GenerationFailure):
        self.queue.put_nowait(GenerationEvent(type="failed", error=error.message))
