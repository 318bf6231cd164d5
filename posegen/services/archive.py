"""
Archive Service
Packages already-generated images into one downloadable zip file.
"""

import base64
import io
import logging
import zipfile
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import httpx

from posegen.core.config import settings
from posegen.core.exceptions import PackagingFailure

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, str]


def default_entries(images: Sequence[bytes]) -> List[Tuple[str, bytes]]:
    """Name images pose_1.png ... pose_N.png."""
    return [(f"pose_{index + 1}.png", data) for index, data in enumerate(images)]


class ArchiveService:
    """Builds zip archives from image byte sources (bytes, data URLs, http URLs)."""
    
    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._http_client = http_client
        self.timeout = timeout or settings.ARCHIVE_FETCH_TIMEOUT
    
    async def build_archive(self, entries: Iterable[Tuple[str, ImageSource]]) -> bytes:
        """
        Fetch every source and write them into a single zip.
        
        Raises:
            PackagingFailure: any fetch, decode or zip error
        """
        entries = list(entries)
        try:
            resolved = [(name, await self._resolve(source)) for name, source in entries]
            
            buffer = io.BytesIO()
            with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for name, data in resolved:
                    zf.writestr(name, data)
            
            archive = buffer.getvalue()
            logger.info(f"[Archive] Packed {len(resolved)} images ({len(archive)} bytes)")
            return archive
            
        except PackagingFailure:
            raise
        except Exception as e:
            logger.error(f"[Archive] Error zipping files: {e}", exc_info=True)
            raise PackagingFailure(details={"entries": len(entries), "cause": repr(e)}) from e
    
    async def _resolve(self, source: ImageSource) -> bytes:
        """Load the bytes behind one source."""
        if isinstance(source, (bytes, bytearray)):
            return bytes(source)
        
        if source.startswith("data:"):
            header, _, payload = source.partition(",")
            if ";base64" not in header:
                raise ValueError("Only base64 data URLs are supported")
            return base64.b64decode(payload, validate=True)
        
        if source.startswith(("http://", "https://")):
            return await self._fetch(source)
        
        raise ValueError(f"Unsupported image source: {source[:40]}")
    
    async def _fetch(self, url: str) -> bytes:
        if self._http_client is not None:
            response = await self._http_client.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.content
        
        async with httpx.AsyncClient() as client:
            response = await client.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.content
