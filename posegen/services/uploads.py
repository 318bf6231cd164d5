"""
Upload Capture
Turns an uploaded portrait into the {name, type, base64, preview} record
the generation form works with.
"""

import base64
import logging
from typing import Optional

from posegen.core.config import Settings, settings as default_settings
from posegen.core.exceptions import InvalidUploadError
from posegen.schemas.generate import UploadedFile

logger = logging.getLogger(__name__)


def sniff_mime_type(data: bytes) -> Optional[str]:
    """Detect image type from magic bytes."""
    if data.startswith(b'\x89PNG\r\n\x1a\n'):
        return "image/png"
    if data.startswith(b'\xff\xd8'):
        return "image/jpeg"
    if data.startswith(b'RIFF') and data[8:12] == b'WEBP':
        return "image/webp"
    if data.startswith((b'GIF87a', b'GIF89a')):
        return "image/gif"
    return None


def capture_upload(
    filename: Optional[str],
    content_type: Optional[str],
    data: bytes,
    settings: Optional[Settings] = None,
) -> UploadedFile:
    """
    Validate and encode an uploaded image.
    
    Raises:
        InvalidUploadError: empty file, too large, or not an allowed image type
    """
    settings = settings or default_settings
    
    if not data:
        raise InvalidUploadError()
    
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise InvalidUploadError(
            f"Image is too large (max {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB).",
            details={"size": len(data)},
        )
    
    mime_type = content_type if content_type and content_type.startswith("image/") else None
    mime_type = mime_type or sniff_mime_type(data)
    if mime_type not in settings.ALLOWED_IMAGE_TYPES:
        raise InvalidUploadError(
            "Unsupported file type. Please upload a PNG, JPEG, WEBP or GIF image.",
            details={"content_type": content_type, "detected": mime_type},
        )
    
    encoded = base64.b64encode(data).decode("ascii")
    logger.debug(f"[Uploads] Captured {filename or 'upload'} ({len(data)} bytes, {mime_type})")
    return UploadedFile(
        name=filename or "upload",
        mime_type=mime_type,
        base64=encoded,
        preview=f"data:{mime_type};base64,{encoded}",
    )
