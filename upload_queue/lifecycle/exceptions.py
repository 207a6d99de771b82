class UploadQueueError(Exception):
    """Base exception for all record lifecycle errors."""


class RecordNotFoundError(UploadQueueError):
    """Raised when a record or its metadata does not exist."""


class InvalidTransitionError(UploadQueueError):
    """Raised when a requested status cannot be reached through this operation."""


class RevisionConflictError(UploadQueueError):
    """Raised when the presented revision is stale or the stored state moved on.

    Callers should reload the record and decide whether to retry.
    """


class StatusConflictError(RevisionConflictError):
    """Raised when the stored status is not the required predecessor."""


class RecordValidationError(UploadQueueError):
    """Raised for malformed filter, pagination or request input."""
