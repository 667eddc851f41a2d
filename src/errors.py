"""Error taxonomy for the session engine.

No error here is fatal to the process.  Validation, transition and
collaborator errors are surfaced to the caller, who may fix the input or
retry.  Persistence errors are absorbed: a corrupt snapshot falls back to
defaults and unavailable storage degrades the session to in-memory only.
"""

from __future__ import annotations


class SessionError(Exception):
    """Base class for session engine errors.

    Attributes:
        code: Machine-readable error code (e.g. "VALIDATION_ERROR").
        message: Human-readable error message.
    """

    code = "SESSION_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(SessionError):
    """Local input check failed; never reaches a collaborator."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        self.missing = missing or []
        super().__init__(message)


class InvalidTransitionError(SessionError):
    code = "INVALID_TRANSITION"


class OperationInProgressError(SessionError):
    """A collaborator call of the same kind is still in flight."""

    code = "OPERATION_IN_PROGRESS"


class CollaboratorError(SessionError):
    code = "COLLABORATOR_ERROR"


class ContentGenerationError(CollaboratorError):
    code = "CONTENT_GENERATION_FAILED"


class EvaluationError(CollaboratorError):
    code = "EVALUATION_FAILED"


class PersistenceError(SessionError):
    code = "PERSISTENCE_ERROR"


class PersistenceCorruptError(PersistenceError):
    """Stored snapshot could not be decoded."""

    code = "PERSISTENCE_CORRUPT"


class PersistenceUnavailableError(PersistenceError):
    """Storage could not be read or written."""

    code = "PERSISTENCE_UNAVAILABLE"
