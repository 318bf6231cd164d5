# Pydantic schemas package
from posegen.schemas.generate import (
    AspectRatio, SourceImage, UploadedFile, GenerationRequest, GeneratedImage,
    ProgressState, GenerationOptions, GenerateResponse, GenerationEvent
)
from posegen.schemas.session import SessionResponse, SessionCreated

__all__ = [
    "AspectRatio", "SourceImage", "UploadedFile", "GenerationRequest", "GeneratedImage",
    "ProgressState", "GenerationOptions", "GenerateResponse", "GenerationEvent",
    "SessionResponse", "SessionCreated",
]
