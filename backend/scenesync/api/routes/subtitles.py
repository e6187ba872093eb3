from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from ...models import ProjectPhase, Subtitle, SubtitleTrack
from ...services import ProjectService, adapt_subtitles, generate_srt, parse_srt
from ..deps import get_project_or_404, get_scenes_or_404

router = APIRouter(prefix="/projects/{project_id}/subtitles", tags=["subtitles"])


class UploadSubtitlesRequest(BaseModel):
    content: str
    filename: str | None = None


class SubtitlesResponse(BaseModel):
    filename: str | None = None
    subtitles: list[Subtitle]


@router.post("", response_model=SubtitlesResponse)
async def upload_subtitles(project_id: str, request: UploadSubtitlesRequest) -> SubtitlesResponse:
    """Parse an SRT track; malformed blocks are skipped."""
    project = get_project_or_404(project_id)

    subtitles = parse_srt(request.content)
    if not subtitles:
        raise HTTPException(status_code=400, detail="No valid subtitle blocks found")

    track = SubtitleTrack(filename=request.filename, subtitles=subtitles)
    ProjectService.save_subtitles(project_id, track)

    project.subtitle_filename = request.filename
    ProjectService.save(project)

    scenes = ProjectService.load_scenes(project_id)
    if scenes and scenes.scenes:
        ProjectService.save_adapted_subtitles(project_id, adapt_subtitles(subtitles, scenes))
    return SubtitlesResponse(filename=track.filename, subtitles=track.subtitles)


@router.get("", response_model=SubtitlesResponse)
async def get_subtitles(project_id: str) -> SubtitlesResponse:
    """Get the original subtitle track."""
    get_project_or_404(project_id)

    track = ProjectService.load_subtitles(project_id)
    if not track:
        return SubtitlesResponse(subtitles=[])
    return SubtitlesResponse(filename=track.filename, subtitles=track.subtitles)


@router.post("/adapt", response_model=SubtitlesResponse)
async def adapt(project_id: str) -> SubtitlesResponse:
    """Re-time the original subtitles against the current scene list."""
    project = get_project_or_404(project_id)
    scenes = get_scenes_or_404(project_id)

    track = ProjectService.load_subtitles(project_id)
    if not track or not track.subtitles:
        raise HTTPException(status_code=404, detail="No subtitles uploaded")

    adapted = adapt_subtitles(track.subtitles, scenes)
    ProjectService.save_adapted_subtitles(project_id, adapted)

    project.phase = ProjectPhase.COMPLETE
    ProjectService.save(project)
    return SubtitlesResponse(filename=track.filename, subtitles=adapted)


@router.get("/adapted", response_model=SubtitlesResponse)
async def get_adapted(project_id: str) -> SubtitlesResponse:
    """Get the adapted subtitles from the last detection or adapt call."""
    get_project_or_404(project_id)

    adapted = ProjectService.load_adapted_subtitles(project_id)
    return SubtitlesResponse(subtitles=adapted or [])


@router.get("/adapted.srt", response_class=PlainTextResponse)
async def download_adapted(project_id: str) -> PlainTextResponse:
    """Download the adapted subtitles as an SRT file."""
    project = get_project_or_404(project_id)

    adapted = ProjectService.load_adapted_subtitles(project_id)
    if not adapted:
        raise HTTPException(status_code=404, detail="No adapted subtitles")

    stem = (project.subtitle_filename or "subtitles").rsplit(".", 1)[0]
    return PlainTextResponse(
        generate_srt(adapted),
        media_type="application/x-subrip",
        headers={"Content-Disposition": f'attachment; filename="{stem}_adapted.srt"'},
    )
