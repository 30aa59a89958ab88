"""Exceptions raised by DashNotes components."""


class CaptureError(Exception):
    """Base class for failures that end a capture attempt.

    ``status`` is the short human-readable string shown to the user.
    """
    status = "capture failed"

    def __init__(self, message: str = ""):
        super().__init__(message or self.status)
        self.message = message or self.status


class AuthorizationError(CaptureError):
    """Speech recognition was denied, restricted, or never granted."""
    status = "authorization denied"


class AvailabilityError(CaptureError):
    """The recognizer is temporarily unavailable."""
    status = "recognizer unavailable"


class FormatError(CaptureError):
    """The audio input negotiated an unusable format."""
    status = "invalid audio format"


class EngineStartError(CaptureError):
    """The audio engine could not be started."""
    status = "engine start failed"


class RecognitionError(CaptureError):
    """The recognizer reported a failure mid-session."""
    status = "recognition error"


class PersistenceError(Exception):
    """Writing the project list to storage failed."""


class ProjectNotFoundError(KeyError):
    """No project with the given id exists."""


class EditorClosedError(RuntimeError):
    """The project editor was already saved or discarded."""
