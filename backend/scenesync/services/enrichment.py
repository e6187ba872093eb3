"""Tracks analysis/cleaning calls so each (scene, edge) has at most one in flight."""

import asyncio
import logging
from threading import Lock
from typing import Callable

from ..errors import RemoteServiceError, SceneChangedError, SceneValidationError
from ..models import (
    EnrichmentKind,
    EnrichmentSlot,
    EnrichmentStatus,
    Scene,
    SceneEdge,
    SceneList,
)
from .gemini_service import GeminiService

logger = logging.getLogger("uvicorn.error")

_SlotKey = tuple[str, int, EnrichmentKind, SceneEdge]

_RESULT_FIELDS: dict[tuple[EnrichmentKind, SceneEdge], str] = {
    (EnrichmentKind.ANALYSIS, SceneEdge.START): "analysis",
    (EnrichmentKind.CLEAN, SceneEdge.START): "cleaned_start_frame_thumbnail",
    (EnrichmentKind.CLEAN, SceneEdge.END): "cleaned_end_frame_thumbnail",
}


class SceneEnrichmentService:
    """Runs Gemini enrichment calls and keeps a tagged state per slot."""

    _lock = Lock()
    _slots: dict[_SlotKey, EnrichmentSlot] = {}
    # Bumped by reset(); results of calls started in an older generation are dropped
    _generations: dict[str, int] = {}

    @classmethod
    def get_state(
        cls,
        project_id: str,
        scene_id: int,
        kind: EnrichmentKind,
        edge: SceneEdge,
    ) -> EnrichmentSlot:
        with cls._lock:
            slot = cls._slots.get((project_id, scene_id, kind, edge))
            if slot is None:
                return EnrichmentSlot(scene_id=scene_id, kind=kind, edge=edge)
            return slot.model_copy()

    @classmethod
    def list_states(cls, project_id: str, scene_id: int) -> list[EnrichmentSlot]:
        return [
            cls.get_state(project_id, scene_id, kind, edge)
            for kind, edge in _RESULT_FIELDS
        ]

    @classmethod
    def reset(cls, project_id: str) -> None:
        """Forget all slots of a project (new video or re-run detection)."""
        with cls._lock:
            cls._generations[project_id] = cls._generations.get(project_id, 0) + 1
            for key in [k for k in cls._slots if k[0] == project_id]:
                del cls._slots[key]

    @classmethod
    def _generation(cls, project_id: str) -> int:
        with cls._lock:
            return cls._generations.get(project_id, 0)


    @classmethod
    def _begin(cls, key: _SlotKey) -> int | None:
        """Mark a slot pending and return the project generation, or None if already pending."""
        with cls._lock:
            slot = cls._slots.get(key)
            if slot is not None and slot.status == EnrichmentStatus.PENDING:
                return None
            project_id, scene_id, kind, edge = key
            cls._slots[key] = EnrichmentSlot(
                scene_id=scene_id,
                kind=kind,
                edge=edge,
                status=EnrichmentStatus.PENDING,
            )
            return cls._generations.get(project_id, 0)

    @classmethod
    def _finish(
        cls,
        key: _SlotKey,
        status: EnrichmentStatus,
        value: str | None = None,
        error: str | None = None,
        generation: int | None = None,
    ) -> bool:
        """Record the outcome of a call; False when the slot was reset meanwhile."""
        with cls._lock:
            project_id, scene_id, kind, edge = key
            if generation is not None and generation != cls._generations.get(project_id, 0):
                return False
            cls._slots[key] = EnrichmentSlot(
                scene_id=scene_id,
                kind=kind,
                edge=edge,
                status=status,
                value=value,
                error=error,
            )
            return True

    @classmethod
    async def _run(
        cls,
        key: _SlotKey,
        call: Callable[[str], str],
        frame: str,
    ) -> str | None:
        generation = cls._begin(key)
        if generation is None:
            logger.info("Enrichment %s already pending, request suppressed", key)
            return None

        try:
            value = await asyncio.to_thread(call, frame)
        except RemoteServiceError as exc:
            logger.warning("Enrichment %s failed: %s", key, exc)
            cls._finish(key, EnrichmentStatus.FAILED, error=str(exc), generation=generation)
            raise
        except asyncio.CancelledError:
            cls._finish(key, EnrichmentStatus.FAILED, error="cancelled", generation=generation)
            raise
        except Exception as exc:
            logger.exception("Enrichment %s failed unexpectedly", key)
            cls._finish(key, EnrichmentStatus.FAILED, error=str(exc), generation=generation)
            raise RemoteServiceError(str(exc)) from exc

        # Scene ids are reassigned by the edits that reset a project, so the key may now
        # name a different scene.
        if not cls._finish(key, EnrichmentStatus.AVAILABLE, value=value, generation=generation):
            logger.info("Enrichment %s finished after its scenes were reset, result dropped", key)
            raise SceneChangedError("Scenes were changed while the request was running")
        return value

    @classmethod
    async def analyze_scene(cls, project_id: str, scene: Scene) -> str | None:
        """
        Describe a scene's start frame.

        Returns the analysis text, or None when an analysis of this scene
        is already pending.

        Raises:
            SceneChangedError: the project's scenes were renumbered or
                replaced during the call; the result is dropped
        """
        if not scene.start_frame_thumbnail:
            raise SceneValidationError(f"Capture the frames of scene {scene.id} before analyzing it")

        key = (project_id, scene.id, EnrichmentKind.ANALYSIS, SceneEdge.START)
        return await cls._run(key, GeminiService.analyze_frame, scene.start_frame_thumbnail)

    @classmethod
    async def clean_frame(cls, project_id: str, scene: Scene, edge: SceneEdge) -> str | None:
        """Remove the main subjects of a scene's start or end frame."""
        frame = scene.start_frame_thumbnail if edge == SceneEdge.START else scene.end_frame_thumbnail
        if not frame:
            raise SceneValidationError(
                f"Capture the {edge.value} frame of scene {scene.id} before cleaning it"
            )

        key = (project_id, scene.id, EnrichmentKind.CLEAN, edge)
        return await cls._run(key, GeminiService.clean_frame, frame)

    @staticmethod
    def apply_result(
        scenes: SceneList,
        target: Scene,
        kind: EnrichmentKind,
        edge: SceneEdge,
        value: str,
    ) -> SceneList:
        """
        Store an enrichment result on a copy of the scene list.

        ``target`` is the scene as it was when the call started; it is looked
        up again by id and time range, since either may have changed since.
        """
        field = _RESULT_FIELDS.get((kind, edge))
        if field is None:
            raise SceneValidationError(f"No {kind.value} result exists for the {edge.value} edge")

        updated = scenes.model_copy(deep=True)
        scene = updated.find_by_bounds(target.start_time, target.end_time)
        if scene is None or scene.id != target.id:
            raise SceneChangedError(
                f"Scene {target.id} ({target.start_time:.3f}s-{target.end_time:.3f}s) changed "
                f"while its {kind.value} was running"
            )
        setattr(scene, field, value)
        return updated

    @classmethod
    def store_result(
        cls,
        project_id: str,
        scenes: SceneList,
        target: Scene,
        kind: EnrichmentKind,
        edge: SceneEdge,
        value: str,
    ) -> SceneList:
        """``apply_result``, marking the slot failed when the scene no longer exists."""
        try:
            return cls.apply_result(scenes, target, kind, edge, value)
        except SceneChangedError as exc:
            cls._finish((project_id, target.id, kind, edge), EnrichmentStatus.FAILED, error=str(exc))
            raise
