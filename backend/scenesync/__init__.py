"""Scene-cut detection and scene-aligned subtitle re-timing backend."""

__version__ = "0.1.0"
