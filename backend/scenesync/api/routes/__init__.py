from fastapi import APIRouter

from .projects import router as projects_router
from .scenes import router as scenes_router
from .subtitles import router as subtitles_router
from .enrichment import router as enrichment_router

api_router = APIRouter(prefix="/api")
api_router.include_router(projects_router)
api_router.include_router(scenes_router)
api_router.include_router(subtitles_router)
api_router.include_router(enrichment_router)

__all__ = ["api_router"]
