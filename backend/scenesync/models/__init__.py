from .project import Project, ProjectPhase
from .scene import AdjustDirection, IMAGE_FIELDS, Scene, SceneEdge, SceneList
from .subtitle import Subtitle, SubtitleTrack
from .enrichment import EnrichmentKind, EnrichmentSlot, EnrichmentStatus

__all__ = [
    "Project", "ProjectPhase",
    "AdjustDirection", "IMAGE_FIELDS", "Scene", "SceneEdge", "SceneList",
    "Subtitle", "SubtitleTrack",
    "EnrichmentKind", "EnrichmentSlot", "EnrichmentStatus",
]
