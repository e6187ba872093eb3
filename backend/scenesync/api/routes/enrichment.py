from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...errors import SceneSyncError
from ...models import EnrichmentKind, EnrichmentSlot, Scene, SceneEdge
from ...services import ProjectService, SceneEnrichmentService
from ..deps import get_project_or_404, get_scenes_or_404, http_error

router = APIRouter(prefix="/projects/{project_id}/scenes/{scene_id}", tags=["enrichment"])


class CleanFrameRequest(BaseModel):
    edge: SceneEdge = SceneEdge.START


def _pending_response(slot: EnrichmentSlot) -> JSONResponse:
    return JSONResponse(status_code=202, content=slot.model_dump(mode="json"))


def _store_result(
    project_id: str,
    target: Scene,
    kind: EnrichmentKind,
    edge: SceneEdge,
    value: str,
) -> None:
    # Re-read: the list may have been edited while the call was in flight
    scenes = get_scenes_or_404(project_id)
    try:
        scenes = SceneEnrichmentService.store_result(project_id, scenes, target, kind, edge, value)
    except SceneSyncError as exc:
        raise http_error(exc) from exc
    ProjectService.save_scenes(project_id, scenes)


@router.post("/analyze", response_model=EnrichmentSlot)
async def analyze_scene(project_id: str, scene_id: int):
    """Describe the scene's start frame with the cinematography guide."""
    get_project_or_404(project_id)
    scenes = get_scenes_or_404(project_id)

    try:
        scene = scenes.get(scene_id)
        value = await SceneEnrichmentService.analyze_scene(project_id, scene)
    except SceneSyncError as exc:
        raise http_error(exc) from exc

    slot = SceneEnrichmentService.get_state(
        project_id, scene_id, EnrichmentKind.ANALYSIS, SceneEdge.START
    )
    if value is None:
        return _pending_response(slot)

    _store_result(project_id, scene, EnrichmentKind.ANALYSIS, SceneEdge.START, value)
    return slot


@router.post("/clean", response_model=EnrichmentSlot)
async def clean_frame(project_id: str, scene_id: int, request: CleanFrameRequest | None = None):
    """Remove the main subjects from the scene's start or end frame."""
    get_project_or_404(project_id)
    scenes = get_scenes_or_404(project_id)
    edge = request.edge if request else SceneEdge.START

    try:
        scene = scenes.get(scene_id)
        value = await SceneEnrichmentService.clean_frame(project_id, scene, edge)
    except SceneSyncError as exc:
        raise http_error(exc) from exc

    slot = SceneEnrichmentService.get_state(project_id, scene_id, EnrichmentKind.CLEAN, edge)
    if value is None:
        return _pending_response(slot)

    _store_result(project_id, scene, EnrichmentKind.CLEAN, edge, value)
    return slot


@router.get("/enrichment", response_model=list[EnrichmentSlot])
async def get_enrichment(project_id: str, scene_id: int) -> list[EnrichmentSlot]:
    """State of every enrichment slot of a scene."""
    get_project_or_404(project_id)
    return SceneEnrichmentService.list_states(project_id, scene_id)
