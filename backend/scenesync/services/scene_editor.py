"""Manual refinement of a detected scene list.

Every operation takes a ``SceneList``, works on a deep copy and returns the
updated copy, so a rejected edit leaves the caller's list untouched and both
records touched by a boundary move change in one step.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from ..config import settings
from ..errors import FormatError, SceneValidationError
from ..models import AdjustDirection, IMAGE_FIELDS, Scene, SceneEdge, SceneList
from .frame_source import FrameSource, downscale, encode_jpeg_data_url

logger = logging.getLogger("uvicorn.error")

# Each required key may appear in its exported (camelCase) or field-name form.
_REQUIRED_SCENE_KEYS = (("id",), ("startTime", "start_time"), ("endTime", "end_time"))


class SceneEditorService:
    """Scene list edits that keep scenes contiguous and respect locks."""

    @staticmethod
    def _boundary(scene: Scene, edge: SceneEdge) -> float:
        return scene.start_time if edge == SceneEdge.START else scene.end_time

    @classmethod
    def _validate_move(
        cls,
        scenes: SceneList,
        index: int,
        edge: SceneEdge,
        new_time: float,
    ) -> int:
        """
        Check a boundary move and return the index of the neighbor sharing it.

        The first scene's start and the last scene's end are pinned to the
        video bounds. A locked neighbor pins the shared boundary: moving it
        would either shift the locked scene or open a gap/overlap next to it.
        """
        scene = scenes.scenes[index]
        if scene.is_locked:
            raise SceneValidationError(f"Scene {scene.id} is locked")

        if edge == SceneEdge.START:
            if index == 0:
                raise SceneValidationError("The first scene always starts at 0")
            neighbor_index = index - 1
            lower = scenes.scenes[neighbor_index].start_time
            upper = scene.end_time
        else:
            if index == len(scenes.scenes) - 1:
                raise SceneValidationError("The last scene always ends at the end of the video")
            neighbor_index = index + 1
            lower = scene.start_time
            upper = scenes.scenes[neighbor_index].end_time

        if not lower < new_time < upper:
            raise SceneValidationError(
                f"Invalid {edge.value} time {new_time:.3f}s for scene {scene.id}: "
                f"must be between {lower:.3f}s and {upper:.3f}s"
            )

        neighbor = scenes.scenes[neighbor_index]
        if neighbor.is_locked and new_time != cls._boundary(scene, edge):
            raise SceneValidationError(
                f"Cannot move the boundary shared with locked scene {neighbor.id}"
            )

        return neighbor_index

    @staticmethod
    def _apply_move(
        scenes: SceneList,
        index: int,
        neighbor_index: int,
        edge: SceneEdge,
        new_time: float,
        thumbnail: str | None = None,
    ) -> None:
        scene = scenes.scenes[index]
        neighbor = scenes.scenes[neighbor_index]

        if edge == SceneEdge.START:
            earlier, later = neighbor, scene
        else:
            earlier, later = scene, neighbor

        # A locked neighbor only gets here when new_time equals its boundary.
        if later is scene or not later.is_locked:
            later.start_time = new_time
            later.is_start_manually_set = True
            if thumbnail is not None:
                later.start_frame_thumbnail = thumbnail
        if earlier is scene or not earlier.is_locked:
            earlier.end_time = new_time
            earlier.is_end_manually_set = True
            if thumbnail is not None:
                earlier.end_frame_thumbnail = thumbnail

    @classmethod
    def set_boundary(
        cls,
        scenes: SceneList,
        scene_id: int,
        edge: SceneEdge,
        new_time: float,
    ) -> SceneList:
        """Move a scene's start or end to ``new_time``, dragging its neighbor along."""
        updated = scenes.model_copy(deep=True)
        index = updated.index_of(scene_id)
        neighbor_index = cls._validate_move(updated, index, edge, new_time)
        cls._apply_move(updated, index, neighbor_index, edge, new_time)
        return updated

    @classmethod
    def adjust_frame(
        cls,
        scenes: SceneList,
        scene_id: int,
        edge: SceneEdge,
        direction: AdjustDirection,
        frame_source: FrameSource | None = None,
        frame_duration: float | None = None,
    ) -> SceneList:
        """
        Nudge a boundary by one frame.

        When a frame source is given the frame at the new boundary is
        captured first and becomes the edge thumbnail of both touched
        scenes; a failed capture rejects the whole edit.
        """
        frame_duration = settings.default_frame_duration if frame_duration is None else frame_duration
        if frame_duration <= 0:
            raise SceneValidationError(f"Frame duration must be positive, got {frame_duration}")

        updated = scenes.model_copy(deep=True)
        index = updated.index_of(scene_id)
        delta = frame_duration if direction == AdjustDirection.FORWARD else -frame_duration
        new_time = cls._boundary(updated.scenes[index], edge) + delta

        neighbor_index = cls._validate_move(updated, index, edge, new_time)

        thumbnail = None
        if frame_source is not None:
            frame = frame_source.capture(new_time)
            thumbnail = encode_jpeg_data_url(frame, settings.edge_jpeg_quality)

        cls._apply_move(updated, index, neighbor_index, edge, new_time, thumbnail)
        return updated

    @staticmethod
    def toggle_lock(scenes: SceneList, scene_id: int) -> SceneList:
        updated = scenes.model_copy(deep=True)
        scene = updated.get(scene_id)
        scene.is_locked = not scene.is_locked
        return updated

    @staticmethod
    def delete_scene(scenes: SceneList, scene_id: int) -> SceneList:
        """
        Delete a scene, merging its time range into a neighbor.

        The previous scene absorbs the range when there is one, otherwise
        the next scene is pulled back to 0. A locked previous scene is
        skipped in favor of the next one. Ids are renumbered 1..N, so ids
        held by the caller before this call are stale afterwards.
        """
        updated = scenes.model_copy(deep=True)
        index = updated.index_of(scene_id)
        scene = updated.scenes[index]

        if scene.is_locked:
            raise SceneValidationError(f"Scene {scene.id} is locked")
        if len(updated.scenes) == 1:
            raise SceneValidationError("Cannot delete the only scene")

        previous = updated.scenes[index - 1] if index > 0 else None
        following = updated.scenes[index + 1] if index + 1 < len(updated.scenes) else None

        if previous is not None and not previous.is_locked:
            previous.end_time = scene.end_time
            previous.is_end_manually_set = scene.is_end_manually_set
        elif following is not None and not following.is_locked:
            following.start_time = scene.start_time
            # 0 is the video start, not a manually chosen point
            following.is_start_manually_set = previous is not None and scene.is_start_manually_set
        else:
            raise SceneValidationError(
                f"Cannot delete scene {scene.id}: its neighbors are locked"
            )

        del updated.scenes[index]
        updated.renumber()
        return updated

    @staticmethod
    def split_scene(
        scenes: SceneList,
        scene_id: int,
        timestamp: float,
        frame_source: FrameSource | None = None,
    ) -> SceneList:
        """Split a scene in two at ``timestamp``."""
        updated = scenes.model_copy(deep=True)
        index = updated.index_of(scene_id)
        scene = updated.scenes[index]

        if scene.is_locked:
            raise SceneValidationError(f"Scene {scene.id} is locked")
        if timestamp <= scene.start_time or timestamp >= scene.end_time:
            raise SceneValidationError("Split point must be within scene boundaries")

        thumbnail = ""
        if frame_source is not None:
            frame = downscale(frame_source.capture(timestamp), settings.downscale_width)
            thumbnail = encode_jpeg_data_url(frame, settings.thumbnail_jpeg_quality)

        new_scene = Scene(
            id=scene.id + 1,
            start_time=timestamp,
            end_time=scene.end_time,
            thumbnail_url=thumbnail,
            is_start_manually_set=True,
            is_end_manually_set=scene.is_end_manually_set,
            end_frame_thumbnail=scene.end_frame_thumbnail,
            cleaned_end_frame_thumbnail=scene.cleaned_end_frame_thumbnail,
        )
        scene.end_time = timestamp
        scene.is_end_manually_set = True
        scene.end_frame_thumbnail = None
        scene.cleaned_end_frame_thumbnail = None

        updated.scenes.insert(index + 1, new_scene)
        updated.renumber()
        return updated

    @staticmethod
    def capture_edge_thumbnails(
        scenes: SceneList,
        scene_id: int,
        frame_source: FrameSource,
        force: bool = False,
    ) -> SceneList:
        """
        Capture full-resolution start and end frames of a scene.

        The end frame of a scene reaching the end of the video is taken
        slightly earlier, since no frame exists at exactly ``duration``.
        Already captured scenes are left alone unless ``force`` is set.
        """
        updated = scenes.model_copy(deep=True)
        scene = updated.get(scene_id)
        if scene.start_frame_thumbnail and scene.end_frame_thumbnail and not force:
            return updated

        duration = frame_source.duration
        end_time_for_capture = scene.end_time
        if scene.end_time >= duration:
            end_time_for_capture = max(0.0, duration - settings.end_capture_offset)

        start_frame = frame_source.capture(scene.start_time)
        end_frame = frame_source.capture(end_time_for_capture)

        scene.start_frame_thumbnail = encode_jpeg_data_url(start_frame, settings.edge_jpeg_quality)
        scene.end_frame_thumbnail = encode_jpeg_data_url(end_frame, settings.edge_jpeg_quality)
        return updated

    @staticmethod
    def load_scenes(raw: str | bytes | list[Any]) -> SceneList:
        """
        Load a scene list from its exported JSON form.

        Only the presence of ``id``, ``startTime`` and ``endTime`` (and field
        types) is checked; contiguity is not enforced, a non-contiguous file
        is accepted and logged.

        Raises:
            FormatError: invalid JSON, not an array, or an invalid entry
        """
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise FormatError(f"Scene file is not valid JSON: {exc}") from exc

        if not isinstance(raw, list):
            raise FormatError("Scene file must contain a JSON array of scenes")

        scenes: list[Scene] = []
        for position, entry in enumerate(raw):
            if not isinstance(entry, dict) or not all(
                any(key in entry for key in keys) for keys in _REQUIRED_SCENE_KEYS
            ):
                raise FormatError(
                    f"Scene entry {position} is missing one of id, startTime, endTime"
                )
            entry = {key: value for key, value in entry.items() if key != "thumbnailUrl" or value}
            try:
                scene = Scene.model_validate(entry)
            except ValidationError as exc:
                raise FormatError(f"Scene entry {position} is invalid: {exc}") from exc
            scenes.append(scene)

        scene_list = SceneList(scenes=scenes)
        if not scene_list.validate_continuity():
            logger.warning("Loaded %d scenes that are not contiguous", len(scenes))
        return scene_list

    @staticmethod
    def export_scenes(scenes: SceneList) -> list[dict[str, Any]]:
        """Serialize scenes without image payloads, using exported field names."""
        return [
            scene.model_dump(by_alias=True, exclude=set(IMAGE_FIELDS))
            for scene in scenes.scenes
        ]
