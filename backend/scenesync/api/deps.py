"""Lookups and error translation shared by the route modules."""

from pathlib import Path

from fastapi import HTTPException

from ..errors import (
    DecodeError,
    RemoteServiceError,
    SceneChangedError,
    SceneNotFoundError,
    SceneSyncError,
)
from ..models import Project, SceneList
from ..services import FrameSource, FrameSourceRegistry, ProjectService


def http_error(exc: SceneSyncError) -> HTTPException:
    """Map a service error onto an HTTP error response."""
    if isinstance(exc, SceneNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, SceneChangedError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, DecodeError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, RemoteServiceError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def get_project_or_404(project_id: str) -> Project:
    try:
        project = ProjectService.load(project_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def get_scenes_or_404(project_id: str) -> SceneList:
    scenes = ProjectService.load_scenes(project_id)
    if not scenes or not scenes.scenes:
        raise HTTPException(status_code=404, detail="No scenes found")
    return scenes


def get_frame_source(project: Project) -> FrameSource:
    if not project.video_path:
        raise HTTPException(status_code=400, detail="No video available")

    video_path = Path(project.video_path)
    if not video_path.exists():
        raise HTTPException(status_code=404, detail="Video file not found")

    try:
        return FrameSourceRegistry.get(project.id, video_path)
    except SceneSyncError as exc:
        raise http_error(exc) from exc
