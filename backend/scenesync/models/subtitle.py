from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Subtitle(BaseModel):
    """A single subtitle entry, either parsed from SRT or adapted to a scene."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    start_time: float  # seconds
    end_time: float  # seconds
    text: str

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class SubtitleTrack(BaseModel):
    """Subtitles stored for a project."""

    filename: str | None = None
    subtitles: list[Subtitle] = []
