"""
Error taxonomy shared by the submission pipeline and the moderation engine.

Each error maps to an HTTP-equivalent status code so an outer surface can
translate it without knowing the details of the operation that raised it.
"""

from typing import Any, Dict, Optional


class ReloopError(Exception):
    """Base class for every error surfaced to a caller."""

    status_code = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = {key: value for key, value in details.items() if value is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.details}


class ValidationError(ReloopError):
    """Malformed input or a required field is missing."""

    status_code = 400


class NotFoundError(ReloopError):
    status_code = 404


class PermissionDeniedError(ReloopError):
    status_code = 403


class ConflictError(ReloopError):
    """The operation collides with an existing entity."""

    status_code = 409

    def __init__(self, message: str, conflict_id: Optional[str] = None, **details: Any):
        super().__init__(message, conflict_id=conflict_id, **details)
        self.conflict_id = conflict_id


class SubmissionInProgressError(ConflictError):
    """The owner already has a submission being processed."""

    status_code = 429


class DuplicateSubmissionError(ConflictError):
    """An identical submission has already completed for this owner."""


class PreconditionError(ReloopError):
    """The entity is not in the state the transition requires."""

    status_code = 400

    def __init__(self, message: str, required: Any = None, actual: Any = None, **details: Any):
        super().__init__(
            message,
            required=_state_name(required),
            actual=_state_name(actual),
            **details
        )
        self.required = required
        self.actual = actual


class ExternalServiceError(ReloopError):
    """Idea or image generation failed. Never leaves the background job."""

    status_code = 502


class DuplicateDocumentError(Exception):
    """A store-level unique constraint rejected a write."""


def _state_name(state: Any) -> Any:
    if state is None:
        return None
    if isinstance(state, (list, tuple, set, frozenset)):
        return sorted(_state_name(item) for item in state)
    return getattr(state, "value", state)
