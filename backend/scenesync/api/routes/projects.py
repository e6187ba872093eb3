from pathlib import Path

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...errors import SceneSyncError
from ...models import Project, ProjectPhase
from ...services import FrameSourceRegistry, ProjectService, SceneEnrichmentService
from ..deps import get_frame_source, get_project_or_404, http_error

router = APIRouter(prefix="/projects", tags=["projects"])


class CreateProjectRequest(BaseModel):
    video_path: str


class ProjectResponse(BaseModel):
    id: str
    phase: ProjectPhase
    created_at: str
    updated_at: str
    video_path: str | None
    video_duration: float | None
    video_fps: float | None
    video_width: int | None
    video_height: int | None
    cut_threshold: float | None
    sample_rate_hz: float | None
    subtitle_filename: str | None

    @classmethod
    def from_project(cls, project: Project) -> "ProjectResponse":
        return cls(
            id=project.id,
            phase=project.phase,
            created_at=project.created_at.isoformat(),
            updated_at=project.updated_at.isoformat(),
            video_path=project.video_path,
            video_duration=project.video_duration,
            video_fps=project.video_fps,
            video_width=project.video_width,
            video_height=project.video_height,
            cut_threshold=project.cut_threshold,
            sample_rate_hz=project.sample_rate_hz,
            subtitle_filename=project.subtitle_filename,
        )


@router.post("", response_model=ProjectResponse)
async def create_project(request: CreateProjectRequest) -> ProjectResponse:
    """Create a new project for a local video file."""
    video_path = Path(request.video_path)
    if not video_path.is_file():
        raise HTTPException(status_code=404, detail="Video file not found")

    project = ProjectService.create(video_path=str(video_path))
    try:
        source = get_frame_source(project)
        duration = source.duration
    except HTTPException:
        ProjectService.delete(project.id)
        raise
    except SceneSyncError as exc:
        ProjectService.delete(project.id)
        FrameSourceRegistry.release(project.id)
        raise http_error(exc) from exc

    if duration <= 0:
        ProjectService.delete(project.id)
        FrameSourceRegistry.release(project.id)
        raise HTTPException(status_code=400, detail="Video has no duration")

    project.video_duration = duration
    project.video_fps = getattr(source, "frame_rate", None)
    frame_size = getattr(source, "frame_size", None)
    if frame_size:
        project.video_width, project.video_height = frame_size

    ProjectService.save(project)
    return ProjectResponse.from_project(project)


@router.get("", response_model=list[ProjectResponse])
async def list_projects() -> list[ProjectResponse]:
    """List all projects."""
    projects = ProjectService.list_all()
    return [ProjectResponse.from_project(p) for p in projects]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str) -> ProjectResponse:
    """Get a project by ID."""
    project = get_project_or_404(project_id)
    return ProjectResponse.from_project(project)


@router.delete("/{project_id}")
async def delete_project(project_id: str) -> dict:
    """Delete a project."""
    get_project_or_404(project_id)
    FrameSourceRegistry.release(project_id)
    SceneEnrichmentService.reset(project_id)
    ProjectService.delete(project_id)
    return {"status": "deleted"}
