"""
Generate Schemas
Pydantic models for the generation data model and API requests/responses.
"""

import base64
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class AspectRatio(str, Enum):
    """Output framing. Values are the literal tokens sent by the form."""
    SQUARE = "1:1"
    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"
    
    @classmethod
    def parse(cls, value) -> "AspectRatio":
        """Accept either the ratio token or the mode name."""
        if isinstance(value, cls):
            return value
        token = str(value).strip().lower()
        aliases = {
            "square": cls.SQUARE,
            "portrait": cls.PORTRAIT,
            "vertical": cls.PORTRAIT,
            "landscape": cls.LANDSCAPE,
            "horizontal": cls.LANDSCAPE,
        }
        if token in aliases:
            return aliases[token]
        return cls(token)


class SourceImage(BaseModel):
    """Uploaded portrait, kept as a base64 payload for the run's duration."""
    data: str
    mime_type: str
    
    model_config = {"frozen": True}
    
    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str) -> "SourceImage":
        return cls(data=base64.b64encode(raw).decode("ascii"), mime_type=mime_type)
    
    @property
    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class UploadedFile(BaseModel):
    """Captured file input: name, type, base64 payload and a preview data URL."""
    name: str
    mime_type: str
    base64: str
    preview: str
    
    def to_source_image(self) -> SourceImage:
        return SourceImage(data=self.base64, mime_type=self.mime_type)


class GenerationRequest(BaseModel):
    """One run's input. Built fresh for every run."""
    source: SourceImage
    theme: str
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    num_poses: int = Field(default=9, ge=1)
    
    @field_validator("theme")
    @classmethod
    def theme_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please enter a prompt describing the scene or theme.")
        return v
    
    @field_validator("aspect_ratio", mode="before")
    @classmethod
    def parse_aspect_ratio(cls, v):
        return AspectRatio.parse(v)


class GeneratedImage(BaseModel):
    """Image bytes produced by one successful pose call."""
    data: bytes
    mime_type: str = "image/png"
    
    model_config = {"frozen": True}
    
    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")
    
    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


class ProgressState(BaseModel):
    """Most recent status shown to the user."""
    message: str = ""
    completed: int = 0
    total: int = 0


class GenerationOptions(BaseModel):
    """Defaults and choices for the generation form."""
    default_theme: str
    default_aspect_ratio: str
    default_num_poses: int
    num_poses_choices: List[int]
    aspect_ratio_choices: List[str]
    max_num_poses: int


class GenerateResponse(BaseModel):
    """Schema for a synchronous generation response."""
    status: str
    message: str
    progress: ProgressState
    requested: int
    delivered: int
    images: List[str] = []  # data URLs, in completion order


class GenerationEvent(BaseModel):
    """One progressive-delivery event."""
    type: str  # progress | image | done | failed
    progress: Optional[ProgressState] = None
    image: Optional[str] = None  # data URL
    delivered: Optional[int] = None
    error: Optional[str] = None
