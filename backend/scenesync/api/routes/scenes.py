import asyncio
import json
import logging
from typing import Any, Callable

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from ...config import settings
from ...errors import SceneChangedError, SceneSyncError
from ...models import AdjustDirection, ProjectPhase, Scene, SceneEdge, SceneList
from ...services import (
    ProjectService,
    SceneDetectorService,
    SceneEditorService,
    SceneEnrichmentService,
    adapt_subtitles,
)
from ..deps import get_frame_source, get_project_or_404, get_scenes_or_404, http_error

router = APIRouter(prefix="/projects/{project_id}/scenes", tags=["scenes"])

logger = logging.getLogger("uvicorn.error")

MAX_EDIT_ATTEMPTS = 3


class ScenesResponse(BaseModel):
    scenes: list[Scene]


class DetectScenesRequest(BaseModel):
    cut_threshold: float = Field(
        default_factory=lambda: settings.cut_threshold,
        ge=settings.min_cut_threshold,
        le=settings.max_cut_threshold,
    )
    sample_rate_hz: float = Field(default_factory=lambda: settings.sample_rate_hz, gt=0)


class SetBoundaryRequest(BaseModel):
    edge: SceneEdge
    time: float


class AdjustFrameRequest(BaseModel):
    edge: SceneEdge
    direction: AdjustDirection
    frame_duration: float | None = Field(default=None, gt=0)


class SplitSceneRequest(BaseModel):
    timestamp: float


class CaptureFramesRequest(BaseModel):
    force: bool = False


def to_response(scenes: SceneList) -> ScenesResponse:
    return ScenesResponse(scenes=scenes.scenes)


async def edit_with_frames(
    project_id: str,
    scene_id: int,
    edit: Callable[[SceneList, int], SceneList],
) -> SceneList:
    """
    Run a frame-capturing edit in a worker thread and save its result.

    The list is only saved if it is unchanged since it was read; otherwise
    the target is found again by its time range (ids may have been
    renumbered) and the edit is repeated on the current list.
    """
    scenes = get_scenes_or_404(project_id)
    try:
        target = scenes.get(scene_id)
    except SceneSyncError as exc:
        raise http_error(exc) from exc

    for _ in range(MAX_EDIT_ATTEMPTS):
        try:
            updated = await asyncio.to_thread(edit, scenes, target.id)
        except SceneSyncError as exc:
            raise http_error(exc) from exc

        # No await between this read and the save below
        current = get_scenes_or_404(project_id)
        if current == scenes:
            ProjectService.save_scenes(project_id, updated)
            return updated

        target = current.find_by_bounds(target.start_time, target.end_time)
        if target is None:
            raise http_error(SceneChangedError(f"Scene {scene_id} was changed during the edit"))
        logger.info("Scenes of project %s changed during an edit, retrying", project_id)
        scenes = current

    raise http_error(SceneChangedError("Scenes kept changing during the edit"))


@router.get("", response_model=ScenesResponse)
async def get_scenes(project_id: str) -> ScenesResponse:
    """Get all scenes for a project."""
    get_project_or_404(project_id)

    scenes = ProjectService.load_scenes(project_id)
    if not scenes:
        return ScenesResponse(scenes=[])

    return to_response(scenes)


@router.get("/export")
async def export_scenes(project_id: str) -> JSONResponse:
    """Download the scene list without thumbnails."""
    get_project_or_404(project_id)
    scenes = get_scenes_or_404(project_id)

    return JSONResponse(
        SceneEditorService.export_scenes(scenes),
        headers={"Content-Disposition": 'attachment; filename="scenes.json"'},
    )


@router.post("/import", response_model=ScenesResponse)
async def import_scenes(project_id: str, payload: Any = Body(...)) -> ScenesResponse:
    """Replace the scene list with a previously exported one."""
    project = get_project_or_404(project_id)

    try:
        scenes = SceneEditorService.load_scenes(payload)
    except SceneSyncError as exc:
        raise http_error(exc) from exc

    ProjectService.save_scenes(project_id, scenes)
    SceneEnrichmentService.reset(project_id)
    project.phase = ProjectPhase.SCENE_VALIDATION
    ProjectService.save(project)
    return to_response(scenes)


@router.post("/detect")
async def detect_scenes(project_id: str, request: DetectScenesRequest | None = None):
    """Detect scene cuts and stream progress; scenes are only saved on completion."""
    project = get_project_or_404(project_id)
    source = get_frame_source(project)
    request = request or DetectScenesRequest()

    # Update phase
    project.phase = ProjectPhase.SCENE_DETECTION
    project.cut_threshold = request.cut_threshold
    project.sample_rate_hz = request.sample_rate_hz
    ProjectService.save(project)

    async def stream_progress():
        async for progress in SceneDetectorService.detect_scenes(
            source, request.cut_threshold, request.sample_rate_hz
        ):
            if progress.status == "complete" and progress.scenes:
                # Save detected scenes
                scene_list = SceneList(scenes=progress.scenes)
                ProjectService.save_scenes(project_id, scene_list)
                SceneEnrichmentService.reset(project_id)

                track = ProjectService.load_subtitles(project_id)
                if track and track.subtitles:
                    adapted = adapt_subtitles(track.subtitles, scene_list)
                    ProjectService.save_adapted_subtitles(project_id, adapted)

                # Reload: the project may have been updated while detecting
                ProjectService.update_phase(project_id, ProjectPhase.SCENE_VALIDATION)

            elif progress.status == "error":
                ProjectService.update_phase(project_id, ProjectPhase.SETUP)

            yield f"data: {json.dumps(progress.to_dict())}\n\n"

    return StreamingResponse(
        stream_progress(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@router.post("/{scene_id}/boundary", response_model=ScenesResponse)
async def set_boundary(project_id: str, scene_id: int, request: SetBoundaryRequest) -> ScenesResponse:
    """Move a scene's start or end; the touching neighbor follows."""
    get_project_or_404(project_id)
    scenes = get_scenes_or_404(project_id)

    try:
        scenes = SceneEditorService.set_boundary(scenes, scene_id, request.edge, request.time)
    except SceneSyncError as exc:
        raise http_error(exc) from exc

    ProjectService.save_scenes(project_id, scenes)
    return to_response(scenes)


@router.post("/{scene_id}/adjust", response_model=ScenesResponse)
async def adjust_frame(project_id: str, scene_id: int, request: AdjustFrameRequest) -> ScenesResponse:
    """Nudge a boundary by one frame and re-capture the edge thumbnails."""
    project = get_project_or_404(project_id)
    source = get_frame_source(project)

    frame_duration = request.frame_duration
    if frame_duration is None and project.video_fps:
        frame_duration = 1.0 / project.video_fps

    scenes = await edit_with_frames(
        project_id,
        scene_id,
        lambda current, target_id: SceneEditorService.adjust_frame(
            current, target_id, request.edge, request.direction, source, frame_duration
        ),
    )
    return to_response(scenes)


@router.post("/{scene_id}/lock", response_model=ScenesResponse)
async def toggle_lock(project_id: str, scene_id: int) -> ScenesResponse:
    """Lock or unlock a scene."""
    get_project_or_404(project_id)
    scenes = get_scenes_or_404(project_id)

    try:
        scenes = SceneEditorService.toggle_lock(scenes, scene_id)
    except SceneSyncError as exc:
        raise http_error(exc) from exc

    ProjectService.save_scenes(project_id, scenes)
    return to_response(scenes)


@router.post("/{scene_id}/split", response_model=ScenesResponse)
async def split_scene(project_id: str, scene_id: int, request: SplitSceneRequest) -> ScenesResponse:
    """Split a scene at the given timestamp."""
    project = get_project_or_404(project_id)
    source = get_frame_source(project)

    scenes = await edit_with_frames(
        project_id,
        scene_id,
        lambda current, target_id: SceneEditorService.split_scene(
            current, target_id, request.timestamp, source
        ),
    )
    SceneEnrichmentService.reset(project_id)
    return to_response(scenes)


@router.post("/{scene_id}/capture", response_model=ScenesResponse)
async def capture_frames(
    project_id: str,
    scene_id: int,
    request: CaptureFramesRequest | None = None,
) -> ScenesResponse:
    """Capture full-resolution start and end frames of a scene."""
    project = get_project_or_404(project_id)
    source = get_frame_source(project)
    force = request.force if request else False

    scenes = await edit_with_frames(
        project_id,
        scene_id,
        lambda current, target_id: SceneEditorService.capture_edge_thumbnails(
            current, target_id, source, force
        ),
    )
    return to_response(scenes)


@router.delete("/{scene_id}", response_model=ScenesResponse)
async def delete_scene(project_id: str, scene_id: int) -> ScenesResponse:
    """Delete a scene; its range merges into a neighbor and ids are renumbered."""
    get_project_or_404(project_id)
    scenes = get_scenes_or_404(project_id)

    try:
        scenes = SceneEditorService.delete_scene(scenes, scene_id)
    except SceneSyncError as exc:
        raise http_error(exc) from exc

    ProjectService.save_scenes(project_id, scenes)
    # Enrichment slots are keyed by id, which just changed
    SceneEnrichmentService.reset(project_id)
    return to_response(scenes)

