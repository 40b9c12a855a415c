"""
Pydantic v2 models shared across the recording, transcription and storage
layers.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class RecorderState(StrEnum):
    """States of the recording lifecycle controller."""

    idle = "idle"
    recording = "recording"
    paused = "paused"
    stopped = "stopped"


class CaptureState(StrEnum):
    """Sub-states of the microphone stream (device adapter)."""

    inactive = "inactive"
    recording = "recording"
    paused = "paused"


class RecordedArtifact(BaseModel):
    """Finalized, immutable audio blob produced by one stopped recording."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str
    sample_rate: int = 16000
    channels: int = 1
    duration_seconds: float = 0.0

    @property
    def size(self) -> int:
        """Size of the encoded audio in bytes."""
        return len(self.data)


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------


class WordTiming(BaseModel):
    """A single recognized word with its offsets in seconds."""

    model_config = ConfigDict(frozen=True)

    word: str
    start_offset: float = 0.0
    end_offset: float = 0.0
    confidence: float = 0.0


class TranscriptionResult(BaseModel):
    """Normalized result of one speech-to-text call. No field is ever None."""

    model_config = ConfigDict(frozen=True)

    transcript: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    words: tuple[WordTiming, ...] = ()


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class StorageEntry(BaseModel):
    """One object returned by a storage listing."""

    name: str
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    size: int = 0
    mime_type: str | None = None


class RenameResult(BaseModel):
    """Outcome of a copy-then-remove rename.

    ``source_removed`` is False when the copy succeeded but the original
    could not be deleted; ``warning`` then describes the leftover object.
    """

    source: str
    destination: str
    source_removed: bool = True
    warning: str | None = None
