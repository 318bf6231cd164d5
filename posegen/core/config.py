"""
Application Configuration
Loads settings from environment variables.
"""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # App
    APP_NAME: str = "AI Pose Generator API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Gemini - credential is required, checked when the pose service is built
    GEMINI_API_KEY: str = ""
    GEMINI_IDEA_MODEL: str = "gemini-2.5-flash"  # Text model for pose ideation
    GEMINI_IMAGE_MODEL: str = "gemini-2.5-flash-image"  # Nano Banana image model
    
    # Fan-out: 0 means one concurrent request per pose idea, no cap
    IMAGE_CONCURRENCY_LIMIT: int = 0
    
    # Form defaults
    DEFAULT_THEME: str = "posing in a futuristic city"
    DEFAULT_ASPECT_RATIO: str = "1:1"
    DEFAULT_POSE_COUNT: int = 9
    POSE_COUNT_CHOICES: List[int] = [1, 3, 9]
    MAX_POSE_COUNT: int = 20
    
    # Uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    ALLOWED_IMAGE_TYPES: List[str] = ["image/png", "image/jpeg", "image/webp", "image/gif"]
    
    # Archive packaging
    ARCHIVE_FILENAME: str = "generated_poses.zip"
    ARCHIVE_FETCH_TIMEOUT: float = 30.0
    
    # Sessions (in-memory)
    SESSION_TTL_SECONDS: int = 3600
    
    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    
    @field_validator('GEMINI_API_KEY', mode='before')
    @classmethod
    def strip_api_keys(cls, v):
        """Strip whitespace and newlines from API keys loaded from secrets."""
        if isinstance(v, str):
            return v.strip()
        return v
    
    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
