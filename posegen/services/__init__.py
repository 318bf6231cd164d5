# Services package - external integrations and file glue
from posegen.services.gemini_pose import GeminiPoseService
from posegen.services.archive import ArchiveService
from posegen.services.uploads import capture_upload

__all__ = [
    "GeminiPoseService",
    "ArchiveService",
    "capture_upload",
]
