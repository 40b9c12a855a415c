"""
Abstract base class for Speech-to-Text providers.

All STT implementations must implement this interface, enabling
provider-agnostic transcription in the dictation session.
"""

import mimetypes
from abc import ABC, abstractmethod
from pathlib import Path

import soundfile as sf

from medscribe.core.models import RecordedArtifact, TranscriptionResult


class BaseTranscriber(ABC):
    """Interface that every STT provider must implement."""

    @abstractmethod
    async def transcribe(self, artifact: RecordedArtifact) -> TranscriptionResult:
        """Transcribe a finished recording.

        Exactly one request is issued per call; there are no retries.

        Args:
            artifact: The recorded audio and its MIME type.

        Returns:
            Normalized TranscriptionResult.
        """

    async def aclose(self) -> None:
        """Release network resources held by the provider."""


def prepare_audio_file(path: str | Path) -> RecordedArtifact:
    """Load an existing audio file from disk as a RecordedArtifact.

    Args:
        path: Audio file readable by libsndfile (WAV, FLAC, OGG, ...).

    Returns:
        RecordedArtifact with the file's raw bytes and guessed MIME type.
    """
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    info = sf.info(str(path))
    return RecordedArtifact(
        data=path.read_bytes(),
        mime_type=mime_type or "application/octet-stream",
        sample_rate=info.samplerate,
        channels=info.channels,
        duration_seconds=info.duration,
    )
