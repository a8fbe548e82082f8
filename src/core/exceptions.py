"""
Dataset recorder exception hierarchy.

All application-specific exceptions inherit from DatasetRecorderError,
enabling centralized error handling in the API middleware layer and a
single ``except`` clause at the device UI boundary.
"""

from datetime import UTC, datetime


class DatasetRecorderError(Exception):
    """Base exception for all dataset recorder errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "DATASET_RECORDER_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class CaptureError(DatasetRecorderError):
    """Raised when the capture device cannot start, stop, or produce a clip."""

    def __init__(self, detail: str = "Capture failed") -> None:
        super().__init__(detail=detail, code="CAPTURE_ERROR", status_code=500)


class StorageError(DatasetRecorderError):
    """Raised when a media resource or the persisted queue cannot be written or read."""

    def __init__(self, detail: str = "Storage operation failed") -> None:
        super().__init__(detail=detail, code="STORAGE_ERROR", status_code=500)


class IngestionError(DatasetRecorderError):
    """Raised when a request to the ingestion server fails.

    Categories: "connection", "timeout", "http", "network".
    """

    def __init__(
        self,
        detail: str = "Ingestion request failed",
        category: str = "unknown",
        code: str = "INGESTION_ERROR",
        status_code: int = 502,
    ) -> None:
        self.category = category
        super().__init__(detail=detail, code=code, status_code=status_code)


class UploadError(IngestionError):
    """Raised when a single queue item could not be uploaded."""

    def __init__(self, item_id: str, detail: str = "Upload failed", category: str = "unknown"):
        self.item_id = item_id
        super().__init__(
            detail=f"Upload of {item_id} failed: {detail}",
            category=category,
            code="UPLOAD_ERROR",
        )


class SentencesUnavailableError(IngestionError):
    """Raised when no prompts could be fetched, so a session cannot start."""

    def __init__(self, detail: str = "No sentences available", category: str = "unknown"):
        super().__init__(
            detail=detail,
            category=category,
            code="SENTENCES_UNAVAILABLE",
            status_code=503,
        )


class PreconditionError(DatasetRecorderError):
    """Raised when an operation is requested in a state that forbids it."""

    def __init__(self, detail: str = "Precondition violated", code: str = "PRECONDITION_FAILED"):
        super().__init__(detail=detail, code=code, status_code=409)


class SessionAlreadyActiveError(PreconditionError):
    """Raised when trying to open a recording session while one is already active."""

    def __init__(self) -> None:
        super().__init__(
            detail="A recording session is already active",
            code="SESSION_ALREADY_ACTIVE",
        )


class ReconciliationInProgressError(PreconditionError):
    """Raised when the queue is touched while an upload pass is running."""

    def __init__(self) -> None:
        super().__init__(
            detail="An upload pass is already in progress",
            code="RECONCILIATION_IN_PROGRESS",
        )


class ProfileIncompleteError(DatasetRecorderError):
    """Raised when saving a respondent profile without a name or age."""

    def __init__(self, detail: str = "Name and age are required") -> None:
        super().__init__(detail=detail, code="PROFILE_INCOMPLETE", status_code=422)


class UploadRejectedError(DatasetRecorderError):
    """Raised by the ingestion server when an upload carries no video part."""

    def __init__(self, detail: str = "No video file was uploaded") -> None:
        super().__init__(detail=detail, code="UPLOAD_REJECTED", status_code=400)
