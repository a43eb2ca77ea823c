"""Session engine exceptions."""


class SessionError(Exception):
    """Base class for errors surfaced by a test session."""


class SessionNotFoundError(SessionError):
    """No attempt to resume, or the test has no questions. Retry with ``load``."""


class SessionLoadError(SessionError):
    """Loading failed for any other reason (content or store unreachable)."""


class InvalidTransitionError(SessionError):
    """An action was called in a state that does not accept it."""


class SyncError(Exception):
    """A progress synchronizer call failed in transport or on the remote side."""
