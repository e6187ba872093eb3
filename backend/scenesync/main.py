import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .api import api_router
from .services import FrameSourceRegistry, GeminiService


# Reuse uvicorn's logger so startup diagnostics are visible in normal dev logs.
logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report optional integrations on startup and close decoders on shutdown."""
    if GeminiService.is_configured():
        logger.info("Gemini configured: analysis=%s clean=%s", settings.gemini_model, settings.gemini_image_model)
    else:
        logger.info("Gemini not configured, scene analysis and frame cleaning disabled")
    logger.info("Projects stored in %s", settings.projects_dir)
    yield
    FrameSourceRegistry.release_all()


app = FastAPI(
    title="Scene-Sync Subtitles",
    description="Detect scene cuts in a video and re-time subtitles to them",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
