"""
Session Schemas
Pydantic models for session API responses.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from posegen.schemas.generate import ProgressState


class SessionResponse(BaseModel):
    """Schema for session status."""
    id: str
    state: str
    is_loading: bool
    theme: Optional[str]
    aspect_ratio: Optional[str]
    num_poses: Optional[int]
    progress: ProgressState
    image_count: int
    error: Optional[str]
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime]


class SessionCreated(BaseModel):
    """Schema for session creation response."""
    id: str
    state: str
    message: str
