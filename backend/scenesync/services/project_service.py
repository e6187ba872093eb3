import json
import re
import shutil
from pathlib import Path
from datetime import datetime

from ..config import settings
from ..models import Project, ProjectPhase, SceneList, Subtitle, SubtitleTrack

_PROJECT_ID_RE = re.compile(r"[a-zA-Z0-9_-]+$")


def _validate_project_id(project_id: str) -> None:
    """Reject project IDs that could escape the projects directory."""
    if not project_id or not _PROJECT_ID_RE.fullmatch(project_id):
        raise ValueError(
            f"Invalid project id: must be non-empty alphanumeric/hyphen/underscore, got {project_id!r}"
        )


class ProjectService:
    """Service for managing projects."""

    @staticmethod
    def get_project_dir(project_id: str) -> Path:
        """Get the directory for a project."""
        _validate_project_id(project_id)
        return settings.projects_dir / project_id

    @staticmethod
    def get_project_file(project_id: str) -> Path:
        """Get the project.json file path."""
        return ProjectService.get_project_dir(project_id) / "project.json"

    @staticmethod
    def get_scenes_file(project_id: str) -> Path:
        """Get the scenes.json file path."""
        return ProjectService.get_project_dir(project_id) / "scenes.json"

    @staticmethod
    def get_subtitles_file(project_id: str) -> Path:
        """Get the subtitles.json file path (parsed original track)."""
        return ProjectService.get_project_dir(project_id) / "subtitles.json"

    @staticmethod
    def get_adapted_subtitles_file(project_id: str) -> Path:
        """Get the adapted_subtitles.json file path."""
        return ProjectService.get_project_dir(project_id) / "adapted_subtitles.json"

    @classmethod
    def create(cls, video_path: str | None = None) -> Project:
        """Create a new project."""
        project = Project(video_path=video_path)
        project_dir = cls.get_project_dir(project.id)
        project_dir.mkdir(parents=True, exist_ok=True)

        cls.save(project)
        return project

    @classmethod
    def save(cls, project: Project) -> None:
        """Save a project to disk."""
        project.updated_at = datetime.now()
        project_file = cls.get_project_file(project.id)
        project_file.write_text(project.model_dump_json(indent=2))

    @classmethod
    def load(cls, project_id: str) -> Project | None:
        """Load a project from disk."""
        project_file = cls.get_project_file(project_id)
        if not project_file.exists():
            return None
        return Project.model_validate_json(project_file.read_text())

    @classmethod
    def delete(cls, project_id: str) -> bool:
        """Delete a project and all its data."""
        project_dir = cls.get_project_dir(project_id)
        if not project_dir.exists():
            return False

        shutil.rmtree(project_dir)
        return True

    @classmethod
    def list_all(cls) -> list[Project]:
        """List all projects."""
        projects = []
        for project_dir in settings.projects_dir.iterdir():
            if project_dir.is_dir():
                project = cls.load(project_dir.name)
                if project:
                    projects.append(project)
        return sorted(projects, key=lambda p: p.created_at, reverse=True)

    @classmethod
    def update_phase(cls, project_id: str, phase: ProjectPhase) -> Project | None:
        """Update the phase of the stored project."""
        project = cls.load(project_id)
        if not project:
            return None
        project.phase = phase
        cls.save(project)
        return project

    @classmethod
    def save_scenes(cls, project_id: str, scenes: SceneList) -> None:
        """Save scenes for a project."""
        scenes_file = cls.get_scenes_file(project_id)
        scenes_file.write_text(scenes.model_dump_json(indent=2))

    @classmethod
    def load_scenes(cls, project_id: str) -> SceneList | None:
        """Load scenes for a project."""
        scenes_file = cls.get_scenes_file(project_id)
        if not scenes_file.exists():
            return None
        return SceneList.model_validate_json(scenes_file.read_text())

    @classmethod
    def save_subtitles(cls, project_id: str, track: SubtitleTrack) -> None:
        """Save the original subtitle track for a project."""
        subtitles_file = cls.get_subtitles_file(project_id)
        subtitles_file.write_text(track.model_dump_json(indent=2))

    @classmethod
    def load_subtitles(cls, project_id: str) -> SubtitleTrack | None:
        """Load the original subtitle track for a project."""
        subtitles_file = cls.get_subtitles_file(project_id)
        if not subtitles_file.exists():
            return None
        return SubtitleTrack.model_validate_json(subtitles_file.read_text())

    @classmethod
    def save_adapted_subtitles(cls, project_id: str, subtitles: list[Subtitle]) -> None:
        """Save adapted subtitles for a project."""
        adapted_file = cls.get_adapted_subtitles_file(project_id)
        adapted_file.write_text(json.dumps(
            [s.model_dump() for s in subtitles],
            indent=2,
        ))

    @classmethod
    def load_adapted_subtitles(cls, project_id: str) -> list[Subtitle] | None:
        """Load adapted subtitles for a project."""
        adapted_file = cls.get_adapted_subtitles_file(project_id)
        if not adapted_file.exists():
            return None
        return [Subtitle.model_validate(item) for item in json.loads(adapted_file.read_text())]
