from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SSS_",
        env_file=(PROJECT_ROOT / ".env", BACKEND_ROOT / ".env"),
        env_file_encoding="utf-8",
    )

    # Paths
    data_dir: Path = Path(__file__).parent.parent / "data"
    projects_dir: Path = Path(__file__).parent.parent / "data" / "projects"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Scene detection
    sample_rate_hz: float = 2.0
    cut_threshold: float = 10.0
    min_cut_threshold: float = 1.0
    max_cut_threshold: float = 30.0
    downscale_width: int = 128  # px, aspect ratio preserved

    # Frame distance weights
    luminance_weight: float = 0.7
    histogram_weight: float = 0.3
    histogram_scale: float = 100.0  # brings L1 histogram distance ([0, 2]) near luminance range

    # Scene editing
    assumed_frame_rate: float = 30.0
    end_capture_offset: float = 0.1  # seconds before video end for last-frame captures

    # Subtitle re-timing
    min_subtitle_overlap: float = 0.1  # seconds

    # Thumbnails
    thumbnail_jpeg_quality: int = 80
    edge_jpeg_quality: int = 85

    # Scene analysis / frame cleaning (Gemini)
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "gemini-2.5-flash-image"
    gemini_timeout: int = 120  # seconds (read timeout for Gemini API; connect=10)

    @property
    def default_frame_duration(self) -> float:
        return 1.0 / self.assumed_frame_rate


settings = Settings()

# Ensure directories exist
settings.projects_dir.mkdir(parents=True, exist_ok=True)
