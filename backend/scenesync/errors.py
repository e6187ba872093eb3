"""Error taxonomy shared by services and routes."""


class SceneSyncError(Exception):
    """Base class for all scene-sync errors."""


class InvalidInputError(SceneSyncError, ValueError):
    """Raised for empty/malformed pixel buffers or zero-duration videos."""


class DecodeError(SceneSyncError, RuntimeError):
    """Raised when the frame source cannot produce a frame at a timestamp."""


class SceneValidationError(SceneSyncError, ValueError):
    """Raised when a scene edit would break ordering, lock or contiguity rules."""


class SceneNotFoundError(SceneValidationError, LookupError):
    """Raised when a scene id does not exist in the current list."""


class FormatError(SceneSyncError, ValueError):
    """Raised for malformed SRT blocks or imported scene files."""


class RemoteServiceError(SceneSyncError, RuntimeError):
    """Raised when the analysis/cleaning collaborator fails."""


class SceneChangedError(SceneSyncError):
    """Raised when the scene list changed while a long-running edit was in flight."""
