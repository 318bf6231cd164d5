"""
AI Pose Generator API
FastAPI Backend Entry Point
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from posegen import __version__
from posegen.core.config import Settings, settings as default_settings
from posegen.core.logging import configure_logging
from posegen.api import generate, sessions
from posegen.services.archive import ArchiveService
from posegen.workers.orchestrator import GenerationOrchestrator
from posegen.workers.sessions import SessionManager

logger = logging.getLogger(__name__)


def create_app(
    orchestrator: Optional[GenerationOrchestrator] = None,
    settings: Optional[Settings] = None,
    archive: Optional[ArchiveService] = None,
) -> FastAPI:
    """Build the API. The orchestrator is created at startup unless one is given."""
    settings = settings or default_settings
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        logger.info("Starting AI Pose Generator API...")
        # Fails fast with ConfigurationError when GEMINI_API_KEY is missing
        app.state.orchestrator = orchestrator or GenerationOrchestrator(settings=settings)
        app.state.sessions = SessionManager(app.state.orchestrator, settings=settings)
        app.state.archive = archive or ArchiveService()
        yield
        logger.info("Shutting down AI Pose Generator API...")
    
    app = FastAPI(
        title=settings.APP_NAME,
        description="Upload a portrait, describe a theme, and get AI-generated pose variations",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    # Include routers
    app.include_router(generate.router, prefix="/api/v1", tags=["Pose Generation"])
    app.include_router(sessions.router, prefix="/api/v1/sessions", tags=["Sessions"])
    
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for monitoring."""
        active = len(app.state.sessions) if hasattr(app.state, "sessions") else 0
        return {
            "status": "healthy",
            "version": __version__,
            "models": {
                "ideas": settings.GEMINI_IDEA_MODEL,
                "images": settings.GEMINI_IMAGE_MODEL,
            },
            "sessions": active,
        }
    
    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint."""
        return {
            "message": "AI Pose Generator API",
            "docs": "/docs",
            "health": "/health",
        }
    
    return app


def run():
    """Serve the API with uvicorn."""
    import uvicorn
    
    configure_logging()
    uvicorn.run("posegen.main:app", host="0.0.0.0", port=8000)


configure_logging()
app = create_app()
