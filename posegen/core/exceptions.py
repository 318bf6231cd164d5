"""
Error Taxonomy
User-facing messages live on the exception; diagnostics go in `details`
and are logged, never shown.
"""

from typing import Optional


class PoseGenError(Exception):
    """Base exception for pose generator errors."""
    
    default_message = "An unknown error occurred."
    
    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.details = details or {}


class ConfigurationError(PoseGenError):
    """Required configuration (e.g. the API credential) is missing."""
    
    default_message = "GEMINI_API_KEY environment variable is not set"


class GenerationFailure(PoseGenError):
    """A run failed before any image work could start."""


class IdeationFailure(GenerationFailure):
    """The ideation call failed or returned something other than a string array."""
    
    default_message = (
        "Could not generate pose ideas. "
        "The model may be unavailable or the prompt may be inappropriate."
    )


class EmptyIdeationResult(GenerationFailure):
    """Ideation succeeded but produced zero ideas."""
    
    default_message = "Failed to generate any pose ideas."


class PackagingFailure(PoseGenError):
    """Archive creation failed."""
    
    default_message = "Could not create zip file for download."


class InvalidUploadError(PoseGenError):
    """Uploaded source image was rejected."""
    
    default_message = "Please upload an image first."
