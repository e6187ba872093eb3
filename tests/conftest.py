from pathlib import Path

import numpy as np
import pytest

from scenesync.config import settings
from scenesync.errors import DecodeError
from scenesync.models import Scene, SceneList
from scenesync.services import FrameSource, FrameSourceRegistry, SceneEnrichmentService

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)
RED = (220, 30, 30)
BLUE = (20, 40, 200)


class SyntheticFrameSource(FrameSource):
    """Solid-colour frames; ``segments`` is a list of (start_time, rgb)."""

    frame_rate = 25.0

    def __init__(self, duration: float, segments, size: tuple[int, int] = (64, 48)):
        super().__init__()
        self._duration = duration
        self.segments = sorted(segments)
        self.frame_size = size
        self.captured: list[float] = []
        self._cursor: float | None = None

    @property
    def duration(self) -> float:
        return self._duration

    def seek(self, timestamp: float) -> None:
        if not 0 <= timestamp < self._duration:
            raise DecodeError(f"Timestamp {timestamp} outside video")
        self._cursor = timestamp
        self.captured.append(timestamp)

    def current_frame(self) -> np.ndarray:
        colour = self.segments[0][1]
        for start, rgb in self.segments:
            if self._cursor >= start:
                colour = rgb
        width, height = self.frame_size
        frame = np.empty((height, width, 3), dtype=np.uint8)
        frame[:] = colour
        return frame


class FailingFrameSource(SyntheticFrameSource):
    def __init__(self, duration: float, fail_at: float):
        super().__init__(duration, [(0.0, BLACK)])
        self.fail_at = fail_at

    def seek(self, timestamp: float) -> None:
        if timestamp >= self.fail_at:
            raise DecodeError(f"Corrupt frame at {timestamp}")
        super().seek(timestamp)


def make_scenes(*bounds: float, **flags) -> SceneList:
    """Build a contiguous scene list from boundary times, e.g. (0, 5, 10)."""
    scenes = [
        Scene(id=i + 1, start_time=start, end_time=end)
        for i, (start, end) in enumerate(zip(bounds, bounds[1:]))
    ]
    for scene_id in flags.get("locked", ()):
        scenes[scene_id - 1].is_locked = True
    return SceneList(scenes=scenes)


@pytest.fixture
def three_scene_source() -> SyntheticFrameSource:
    """10 s video: black, white from 3 s, red from 7 s."""
    return SyntheticFrameSource(10.0, [(0.0, BLACK), (3.0, WHITE), (7.0, RED)])


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch):
    projects_dir = tmp_path / "projects"
    projects_dir.mkdir()
    monkeypatch.setattr(settings, "projects_dir", projects_dir)
    monkeypatch.setattr(settings, "gemini_api_key", None)

    SceneEnrichmentService._slots.clear()
    SceneEnrichmentService._generations.clear()
    yield
    FrameSourceRegistry.release_all()
    SceneEnrichmentService._slots.clear()
    SceneEnrichmentService._generations.clear()
