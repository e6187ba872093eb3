from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..errors import SceneNotFoundError


class SceneEdge(str, Enum):
    """Which boundary of a scene an operation targets."""

    START = "start"
    END = "end"


class AdjustDirection(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


class Scene(BaseModel):
    """A detected or manually refined scene of the video."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int  # 1-based, reassigned on structural change
    start_time: float  # seconds
    end_time: float  # seconds
    thumbnail_url: str = ""
    is_start_manually_set: bool = False
    is_end_manually_set: bool = False
    is_locked: bool = False
    start_frame_thumbnail: str | None = None
    end_frame_thumbnail: str | None = None
    analysis: str | None = None
    cleaned_start_frame_thumbnail: str | None = None
    cleaned_end_frame_thumbnail: str | None = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


# Image payloads never persisted in exported scene files.
IMAGE_FIELDS = frozenset({
    "thumbnail_url",
    "start_frame_thumbnail",
    "end_frame_thumbnail",
    "cleaned_start_frame_thumbnail",
    "cleaned_end_frame_thumbnail",
})


class SceneList(BaseModel):
    """Ordered, contiguous list of scenes for a project."""

    scenes: list[Scene] = Field(default_factory=list)

    CONTINUITY_EPSILON: ClassVar[float] = 1e-3  # seconds

    def renumber(self) -> None:
        """Renumber scenes 1..N after structural modifications."""
        for i, scene in enumerate(self.scenes):
            scene.id = i + 1

    def index_of(self, scene_id: int) -> int:
        for i, scene in enumerate(self.scenes):
            if scene.id == scene_id:
                return i
        raise SceneNotFoundError(f"Scene {scene_id} not found")

    def get(self, scene_id: int) -> Scene:
        return self.scenes[self.index_of(scene_id)]

    def find_by_bounds(self, start_time: float, end_time: float) -> Scene | None:
        """Find a scene by its time range, which survives renumbering."""
        eps = self.CONTINUITY_EPSILON
        for scene in self.scenes:
            if abs(scene.start_time - start_time) <= eps and abs(scene.end_time - end_time) <= eps:
                return scene
        return None

    def validate_continuity(self, duration: float | None = None) -> bool:
        """Check that scenes tile [0, duration) with no gaps or overlaps."""
        if not self.scenes:
            return True

        eps = self.CONTINUITY_EPSILON
        if abs(self.scenes[0].start_time) > eps:
            return False

        for i in range(1, len(self.scenes)):
            if abs(self.scenes[i].start_time - self.scenes[i - 1].end_time) > eps:
                return False

        if duration is not None and abs(self.scenes[-1].end_time - duration) > eps:
            return False
        return True
