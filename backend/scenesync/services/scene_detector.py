import asyncio
import logging
import math
from typing import AsyncIterator, Callable

import numpy as np

from ..config import settings
from ..errors import InvalidInputError, SceneSyncError
from ..models import Scene
from .frame_signature import FrameSignature, compute_signature, frame_distance
from .frame_source import FrameSource, downscale, encode_jpeg_data_url

logger = logging.getLogger("uvicorn.error")


class SceneDetectionProgress:
    """Progress information for scene detection."""

    def __init__(
        self,
        status: str,
        progress: float = 0,
        message: str = "",
        scenes: list[Scene] | None = None,
        error: str | None = None,
    ):
        self.status = status
        self.progress = progress
        self.message = message
        self.scenes = scenes
        self.error = error

    def to_dict(self) -> dict:
        result = {
            "status": self.status,
            "progress": self.progress,
            "message": self.message,
            "error": self.error,
        }
        if self.scenes is not None:
            result["scenes"] = [
                {
                    "id": s.id,
                    "startTime": s.start_time,
                    "endTime": s.end_time,
                    "duration": s.duration,
                    "thumbnailUrl": s.thumbnail_url,
                }
                for s in self.scenes
            ]
        return result


class SceneDetectorService:
    """Samples a video at a fixed rate and cuts where consecutive frames differ."""

    @classmethod
    async def detect_scenes(
        cls,
        source: FrameSource,
        threshold: float | None = None,
        sample_rate_hz: float | None = None,
    ) -> AsyncIterator[SceneDetectionProgress]:
        """
        Detect scenes in a video and yield progress updates.

        Args:
            source: Frame source for the video
            threshold: Cut threshold (lower = more sensitive)
            sample_rate_hz: Frames sampled per second of video
        """
        yield SceneDetectionProgress("starting", 0, "Opening video...")

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[int] = asyncio.Queue()

        def report(percent: int) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, percent)

        # Run detection in thread pool to avoid blocking
        task = loop.run_in_executor(
            None,
            lambda: cls.detect_sync(source, threshold, sample_rate_hz, on_progress=report),
        )

        last_reported = -1
        while not task.done():
            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter not in done:
                getter.cancel()
                continue
            percent = getter.result()
            if percent != last_reported:
                last_reported = percent
                yield SceneDetectionProgress("detecting", percent / 100, f"Analyzing frames... {percent}%")

        try:
            scenes = task.result()
        except SceneSyncError as e:
            logger.warning("Scene detection failed: %s", e)
            yield SceneDetectionProgress("error", 0, "", error=str(e))
            return
        except Exception as e:
            logger.exception("Unexpected scene detection failure")
            yield SceneDetectionProgress("error", 0, "", error=str(e))
            return

        yield SceneDetectionProgress(
            "complete",
            1.0,
            f"Detected {len(scenes)} scenes",
            scenes,
        )

    @staticmethod
    def detect_sync(
        source: FrameSource,
        threshold: float | None = None,
        sample_rate_hz: float | None = None,
        *,
        downscale_width: int | None = None,
        on_progress: Callable[[int], None] | None = None,
    ) -> list[Scene]:
        """
        Synchronous scene detection.

        Every sample is compared with the previous sample, never with the
        start of the current scene. Sample times are ``i * step`` so that a
        re-run over the same video yields an identical list.

        Raises:
            InvalidInputError: zero or non-finite duration, bad parameters
            DecodeError: the frame source failed at some sample time
        """
        threshold = settings.cut_threshold if threshold is None else threshold
        sample_rate_hz = settings.sample_rate_hz if sample_rate_hz is None else sample_rate_hz
        width = settings.downscale_width if downscale_width is None else downscale_width

        duration = source.duration
        if not math.isfinite(duration) or duration <= 0:
            raise InvalidInputError(f"Video duration must be positive, got {duration}")
        if sample_rate_hz <= 0:
            raise InvalidInputError(f"Sample rate must be positive, got {sample_rate_hz}")

        step = 1.0 / sample_rate_hz
        logger.info(
            "Detecting scenes: duration=%.2fs step=%.3fs threshold=%.1f",
            duration, step, threshold,
        )

        def sample(t: float) -> tuple[FrameSignature, np.ndarray]:
            frame = downscale(source.capture(t), width)
            return compute_signature(frame), frame

        def thumbnail(frame: np.ndarray) -> str:
            return encode_jpeg_data_url(frame, settings.thumbnail_jpeg_quality)

        previous, first_frame = sample(0.0)
        pending_thumbnail = thumbnail(first_frame)
        pending_start = 0.0
        scenes: list[Scene] = []

        i = 1
        t = step
        while t < duration:
            current, frame = sample(t)
            distance = frame_distance(current, previous)

            if distance > threshold:
                scenes.append(Scene(
                    id=len(scenes) + 1,
                    start_time=pending_start,
                    end_time=t,
                    thumbnail_url=pending_thumbnail,
                ))
                pending_start = t
                pending_thumbnail = thumbnail(frame)

            previous = current
            if on_progress is not None:
                on_progress(round(t / duration * 100))

            i += 1
            t = i * step

        if pending_start < duration:
            scenes.append(Scene(
                id=len(scenes) + 1,
                start_time=pending_start,
                end_time=duration,
                thumbnail_url=pending_thumbnail,
            ))

        logger.info("Detected %d scenes", len(scenes))
        return scenes

