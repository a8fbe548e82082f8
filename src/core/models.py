"""
Pydantic v2 models shared by the device and the ingestion server.

Device side: UserProfile, Sentence, QueueItem, session state, results
Server side: sentence import, upload response, health
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Respondent profile
# ---------------------------------------------------------------------------


class Gender(StrEnum):
    """Respondent gender as sent in the ``userGender`` upload field."""

    male = "male"
    female = "female"


class UserProfile(BaseModel):
    """Respondent metadata embedded into every captured clip.

    Frozen so that the snapshot held by a queue item can never be edited
    after capture.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    age: str = ""
    gender: Gender = Gender.male


# ---------------------------------------------------------------------------
# Sentences
# ---------------------------------------------------------------------------


class Sentence(BaseModel):
    """A prompt the respondent reads aloud."""

    model_config = ConfigDict(frozen=True)

    id: int
    text: str
    category: str | None = "General"


class SentenceImport(BaseModel):
    """One entry of the POST /api/import-sentences body."""

    text: str = Field(min_length=1)
    category: str | None = None


class ImportResponse(BaseModel):
    """POST /api/import-sentences response."""

    message: str
    imported: int


# ---------------------------------------------------------------------------
# Offline queue
# ---------------------------------------------------------------------------


class QueueItem(BaseModel):
    """A captured clip waiting on the device for upload.

    ``resource_handle`` is owned exclusively by this item: a filesystem path
    for the native backend or a ``blob:`` reference for the browser backend.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    resource_handle: str
    sentence_id: int
    text: str
    metadata_snapshot: UserProfile
    uploaded: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class DeleteResult(StrEnum):
    """Outcome of deleting a queue item."""

    ok = "ok"
    not_found = "not-found"


class ReconcileResult(BaseModel):
    """Aggregate outcome of one upload pass."""

    attempted: int = 0
    succeeded: int = 0
    failed_ids: list[str] = Field(default_factory=list)

    @property
    def nothing_to_do(self) -> bool:
        return self.attempted == 0


# ---------------------------------------------------------------------------
# Recording session
# ---------------------------------------------------------------------------


class RecordingPhase(StrEnum):
    """Phases of one capture attempt within a session."""

    idle = "idle"
    arming = "arming"
    recording = "recording"
    stopping = "stopping"
    processing = "processing"
    completed = "completed"
    error = "error"


class SessionState(BaseModel):
    """Snapshot of a session's progress for the UI."""

    prompt_index: int = Field(default=0, ge=0)
    phase: RecordingPhase = RecordingPhase.idle
    elapsed_seconds: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class UploadResponse(BaseModel):
    """POST /api/upload response."""

    status: str = "ok"
    path: str
