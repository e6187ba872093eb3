from enum import Enum

from pydantic import BaseModel

from .scene import SceneEdge


class EnrichmentKind(str, Enum):
    """External enrichment applied to a scene edge frame."""

    ANALYSIS = "analysis"
    CLEAN = "clean"


class EnrichmentStatus(str, Enum):
    NOT_REQUESTED = "not_requested"
    PENDING = "pending"
    AVAILABLE = "available"
    FAILED = "failed"


class EnrichmentSlot(BaseModel):
    """State of one enrichment call for a (scene, kind, edge) triple."""

    scene_id: int
    kind: EnrichmentKind
    edge: SceneEdge
    status: EnrichmentStatus = EnrichmentStatus.NOT_REQUESTED
    value: str | None = None  # text for analysis, image data URL for cleaning
    error: str | None = None
