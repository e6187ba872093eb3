from .project_service import ProjectService
from .frame_signature import FrameSignature, compute_signature, frame_distance
from .frame_source import (
    FrameSource,
    FrameSourceRegistry,
    VideoStreamFrameSource,
    downscale,
    encode_jpeg_data_url,
)
from .scene_detector import SceneDetectionProgress, SceneDetectorService
from .scene_editor import SceneEditorService
from .subtitle_parser import generate_srt, parse_srt
from .subtitle_retimer import adapt_subtitles
from .gemini_service import GeminiService
from .enrichment import SceneEnrichmentService

__all__ = [
    "ProjectService",
    "FrameSignature", "compute_signature", "frame_distance",
    "FrameSource", "FrameSourceRegistry", "VideoStreamFrameSource",
    "downscale", "encode_jpeg_data_url",
    "SceneDetectionProgress", "SceneDetectorService",
    "SceneEditorService",
    "generate_srt", "parse_srt",
    "adapt_subtitles",
    "GeminiService",
    "SceneEnrichmentService",
]
