"""
Run State and Observer Interface
Shared by the orchestrator, sessions and the streaming API.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from posegen.core.exceptions import GenerationFailure
from posegen.schemas.generate import GeneratedImage, ProgressState

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle of one generation run."""
    IDLE = "idle"
    IDEATING = "ideating"
    IMAGE_FAN_OUT = "image_fan_out"
    COMPLETED = "completed"
    FAILED = "failed"
    
    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED)
    
    @property
    def is_running(self) -> bool:
        return self in (RunState.IDEATING, RunState.IMAGE_FAN_OUT)


class GenerationObserver:
    """
    Receives progressive results from a run.
    
    Callbacks are invoked on the event loop running the orchestrator.
    Image callbacks arrive in completion order, not idea order.
    """
    
    def on_state(self, state: RunState):
        pass
    
    def on_progress(self, progress: ProgressState):
        pass
    
    def on_image(self, image: GeneratedImage):
        pass
    
    def on_done(self, delivered: int):
        pass
    
    def on_failed(self, error: GenerationFailure):
        pass


class CallbackObserver(GenerationObserver):
    """Adapts the plain two-sink interface (progress text, image) to an observer."""
    
    def __init__(
        self,
        on_message: Optional[Callable[[str], None]] = None,
        on_image: Optional[Callable[[GeneratedImage], None]] = None,
    ):
        self._on_message = on_message
        self._on_image = on_image
    
    def on_progress(self, progress: ProgressState):
        if self._on_message:
            self._on_message(progress.message)
    
    def on_image(self, image: GeneratedImage):
        if self._on_image:
            self._on_image(image)
