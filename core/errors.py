# core/errors.py
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MISSING_PRECONDITION = "missing_precondition"
    PARTIAL_RESOLUTION = "partial_resolution"
    UPSTREAM_FAILURE = "upstream_failure"
    UNIMPLEMENTED_COMMAND = "unimplemented_command"
    CANCELLED = "cancelled"


# --- Custom Exceptions ---
class DispatchError(RuntimeError):
    """Base class for every failure the dispatcher turns into a response."""
    kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE


class MissingPreconditionError(DispatchError):
    """Raised when a required case, document or conversation is absent"""
    kind = ErrorKind.MISSING_PRECONDITION


class PartialResolutionError(DispatchError):
    """Raised when too few context documents resolved for an operation"""
    kind = ErrorKind.PARTIAL_RESOLUTION

    def __init__(self, message: str, failed_ids=None):
        super().__init__(message)
        self.failed_ids = list(failed_ids or [])


class UpstreamServiceError(DispatchError):
    """Raised for completion-service or persistence failures"""
    kind = ErrorKind.UPSTREAM_FAILURE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class CompletionServiceError(UpstreamServiceError):
    """Raised when the completion service fails or its stream breaks"""


class PersistenceError(UpstreamServiceError):
    """Raised by the persistence client for any store failure"""


class UnimplementedCommandError(DispatchError):
    """Raised for a recognized command shape that has no handler"""
    kind = ErrorKind.UNIMPLEMENTED_COMMAND


class TurnCancelledError(DispatchError):
    """Raised by a handler that was stopped through its cancellation token"""
    kind = ErrorKind.CANCELLED


class DuplicateTaskError(ValueError):
    """Raised when a background task id is registered twice"""


class ConfigError(ValueError):
    """Raised for invalid configuration values"""


class MissingAPIKeyError(ConfigError):
    """Raised when required API keys are missing"""
