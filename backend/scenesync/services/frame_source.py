"""Seekable frame access to a video, plus thumbnail helpers."""

import base64
import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Lock
from typing import Callable

import cv2
import numpy as np
from PIL import Image
from scenedetect import open_video
from scenedetect.video_stream import SeekError, VideoOpenFailure

from ..errors import DecodeError, InvalidInputError

logger = logging.getLogger("uvicorn.error")


class FrameSource(ABC):
    """
    A single seekable decoder.

    ``seek`` moves the shared time cursor and ``current_frame`` reads the
    frame under it, so the pair must never interleave between callers.
    ``capture`` performs both under a non-reentrant lock and is the only
    entry point services use.
    """

    def __init__(self) -> None:
        self._lock = Lock()

    @property
    @abstractmethod
    def duration(self) -> float:
        """Video duration in seconds."""

    @abstractmethod
    def seek(self, timestamp: float) -> None:
        """Move the cursor to ``timestamp`` and decode the frame there."""

    @abstractmethod
    def current_frame(self) -> np.ndarray:
        """Return the decoded frame under the cursor as ``H x W x 3`` RGB."""

    def capture(self, timestamp: float) -> np.ndarray:
        """Seek and read as one atomic operation."""
        with self._lock:
            self.seek(timestamp)
            return self.current_frame()

    def close(self) -> None:
        pass


class VideoStreamFrameSource(FrameSource):
    """Frame source backed by PySceneDetect's OpenCV video stream."""

    def __init__(self, video_path: Path):
        super().__init__()
        self.video_path = Path(video_path)
        try:
            self._video = open_video(str(self.video_path))
        except (OSError, VideoOpenFailure) as exc:
            raise DecodeError(f"Cannot open video {self.video_path}: {exc}") from exc
        self._frame: np.ndarray | None = None

    @property
    def duration(self) -> float:
        return self._video.duration.seconds

    @property
    def frame_rate(self) -> float:
        return float(self._video.frame_rate)

    @property
    def frame_size(self) -> tuple[int, int]:
        """(width, height) in pixels."""
        width, height = self._video.frame_size
        return int(width), int(height)

    def seek(self, timestamp: float) -> None:
        if not 0 <= timestamp < self.duration:
            raise DecodeError(
                f"Timestamp {timestamp:.3f}s outside video range [0, {self.duration:.3f})"
            )
        try:
            self._video.seek(timestamp)
            frame = self._video.read()
        except (SeekError, ValueError) as exc:
            raise DecodeError(f"Cannot seek to {timestamp:.3f}s: {exc}") from exc

        if frame is False or frame is None:
            raise DecodeError(f"No frame decoded at {timestamp:.3f}s")

        # Convert BGR to RGB
        self._frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def current_frame(self) -> np.ndarray:
        if self._frame is None:
            raise DecodeError("No frame decoded yet")
        return self._frame

    def close(self) -> None:
        capture = getattr(self._video, "capture", None)
        if capture is not None:
            capture.release()


def downscale(frame: np.ndarray, width: int) -> np.ndarray:
    """Resize ``frame`` to ``width`` pixels wide, preserving aspect ratio."""
    src_height, src_width = frame.shape[:2]
    if src_width == 0 or src_height == 0:
        raise InvalidInputError("Cannot downscale an empty frame")
    if src_width == width:
        return frame

    height = max(1, round(width * src_height / src_width))
    return cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)


def encode_jpeg_data_url(frame: np.ndarray, quality: int) -> str:
    """Encode an RGB frame as a ``data:image/jpeg;base64`` thumbnail."""
    buffer = io.BytesIO()
    Image.fromarray(frame).save(buffer, format="JPEG", quality=quality)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


class FrameSourceRegistry:
    """Keeps one frame source per project so every capture shares its lock."""

    _lock = Lock()
    _sources: dict[str, FrameSource] = {}
    _factory: Callable[[Path], FrameSource] = VideoStreamFrameSource

    @classmethod
    def get(cls, project_id: str, video_path: Path) -> FrameSource:
        with cls._lock:
            source = cls._sources.get(project_id)
            if source is None:
                source = cls._factory(Path(video_path))
                cls._sources[project_id] = source
                logger.info("Opened frame source for project %s: %s", project_id, video_path)
            return source

    @classmethod
    def release(cls, project_id: str) -> None:
        with cls._lock:
            source = cls._sources.pop(project_id, None)
        if source is not None:
            source.close()

    @classmethod
    def release_all(cls) -> None:
        with cls._lock:
            sources = list(cls._sources.values())
            cls._sources.clear()
        for source in sources:
            source.close()
