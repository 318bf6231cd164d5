"""
Logging Setup
"""

import logging
from typing import Optional

from posegen.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[str] = None):
    """Configure root logging once for the API and CLI."""
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    if settings.DEBUG:
        level_name = "DEBUG"
    
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
    # google-genai logs a warning for every mixed text/image response
    logging.getLogger("google_genai").setLevel(logging.ERROR)
    logging.getLogger("httpx").setLevel(logging.WARNING)
