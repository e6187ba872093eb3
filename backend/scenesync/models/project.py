from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field
import uuid


class ProjectPhase(str, Enum):
    """Current phase of the project pipeline."""

    SETUP = "setup"
    SCENE_DETECTION = "scene_detection"
    SCENE_VALIDATION = "scene_validation"
    COMPLETE = "complete"


class Project(BaseModel):
    """A scene-sync project: one video plus an optional subtitle track."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    phase: ProjectPhase = ProjectPhase.SETUP
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    # Video metadata (populated when the video is opened)
    video_path: str | None = None
    video_duration: float | None = None
    video_fps: float | None = None
    video_width: int | None = None
    video_height: int | None = None

    # Detection settings used for the last run
    cut_threshold: float | None = None
    sample_rate_hz: float | None = None

    subtitle_filename: str | None = None
