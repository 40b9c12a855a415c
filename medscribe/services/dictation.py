"""Dictation session: the component boundary of the recording pipeline.

Composes one recording controller, one playback manager, a transcriber and
a document generator. Device, configuration, service and playback errors
are caught here and reported through a ``Notifier``; they never escape as
unhandled faults. After ``close()`` the results of calls that were still in
flight are ignored.

Usage::

    async with DictationSession(settings) as session:
        await session.start_recording()
        ...
        await session.stop_recording()
        result = await session.transcribe()
        notes = await session.generate_document()
"""

import logging
from collections.abc import Callable
from typing import Protocol

from medscribe.core.config import Settings, get_settings
from medscribe.core.exceptions import (
    InvalidTransitionError,
    MedScribeError,
    NoArtifactError,
    RecordingAlreadyActiveError,
)
from medscribe.core.models import RecordedArtifact, RecorderState, TranscriptionResult
from medscribe.core.utils import format_elapsed
from medscribe.services.audio.playback import PlaybackManager
from medscribe.services.audio.recorder import RecordingController
from medscribe.services.generation import BaseDocumentGenerator, create_generator
from medscribe.services.transcription import BaseTranscriber, create_transcriber

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Sink for user-visible notifications."""

    def success(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    """Notifier that writes user-visible messages to a logger."""

    def __init__(self, name: str = "medscribe.notifications") -> None:
        self._logger = logging.getLogger(name)

    def success(self, message: str) -> None:
        self._logger.info(message)

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warning(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self._logger.error(message)


class DictationSession:
    """Record, play back, transcribe and turn dictation into clinical notes.

    Args:
        settings: Settings instance (defaults to ``get_settings()``).
        controller: Recording controller (built from settings if omitted).
        playback: Playback manager (default sink if omitted).
        transcriber_factory: Builds the transcriber on first use.
        generator_factory: Builds the document generator on first use.
        notifier: Destination of user-visible messages.
        on_transcription_complete: Receives the transcript text on success.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        controller: RecordingController | None = None,
        playback: PlaybackManager | None = None,
        transcriber_factory: Callable[[], BaseTranscriber] | None = None,
        generator_factory: Callable[[], BaseDocumentGenerator] | None = None,
        notifier: Notifier | None = None,
        on_transcription_complete: Callable[[str], None] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.controller = controller or RecordingController(settings=self._settings)
        self.playback = playback or PlaybackManager()
        self._transcriber_factory = transcriber_factory or (
            lambda: create_transcriber("deepgram", settings=self._settings)
        )
        self._generator_factory = generator_factory or (
            lambda: create_generator("gemini", settings=self._settings)
        )
        self._notifier = notifier or LogNotifier()
        self._on_transcription_complete = on_transcription_complete
        self._transcriber: BaseTranscriber | None = None
        self._generator: BaseDocumentGenerator | None = None
        self.is_transcribing = False
        self.is_generating = False
        self.last_transcript: str | None = None
        self._closed = False

    @property
    def artifact(self) -> RecordedArtifact | None:
        return self.controller.artifact

    @property
    def elapsed_display(self) -> str:
        """Elapsed recording time as ``mm:ss``."""
        return format_elapsed(self.controller.elapsed_seconds)

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def start_recording(self) -> bool:
        if self._closed:
            return False
        if self.is_transcribing or self.is_generating:
            self._notifier.warning("Wait for processing to finish before recording")
            return False
        try:
            await self.controller.start()
        except RecordingAlreadyActiveError as exc:
            self._notifier.warning(exc.detail)
            return False
        except MedScribeError as exc:
            logger.error("Error accessing microphone: %s", exc.detail)
            self._notifier.error("Could not access microphone. Please check permissions.")
            return False
        if self._closed or self.controller.state is not RecorderState.recording:
            return False
        self._notifier.success("Recording started")
        return True

    def pause_recording(self) -> bool:
        try:
            self.controller.pause()
        except InvalidTransitionError as exc:
            self._notifier.warning(exc.detail)
            return False
        self._notifier.info("Recording paused")
        return True

    def resume_recording(self) -> bool:
        try:
            self.controller.resume()
        except InvalidTransitionError as exc:
            self._notifier.warning(exc.detail)
            return False
        self._notifier.info("Recording resumed")
        return True

    async def stop_recording(self) -> RecordedArtifact | None:
        try:
            artifact = await self.controller.stop()
        except InvalidTransitionError as exc:
            self._notifier.warning(exc.detail)
            return None
        except MedScribeError as exc:
            logger.error("Failed to finalize recording: %s", exc.detail)
            self._notifier.error(f"Failed to finalize recording: {exc.detail}")
            return None
        if artifact is None or self._closed:
            return None
        self._notifier.success("Recording stopped")
        return artifact

    def play_recording(self) -> bool:
        try:
            self.playback.play(self.controller.artifact)
        except NoArtifactError:
            self._notifier.error("No recording to play")
            return False
        except MedScribeError as exc:
            self._notifier.error(exc.detail)
            return False
        self._notifier.info("Playing recorded audio")
        return True

    # ------------------------------------------------------------------
    # Remote services
    # ------------------------------------------------------------------

    def _get_transcriber(self) -> BaseTranscriber:
        if self._transcriber is None:
            self._transcriber = self._transcriber_factory()
        return self._transcriber

    def _get_generator(self) -> BaseDocumentGenerator:
        if self._generator is None:
            self._generator = self._generator_factory()
        return self._generator

    async def transcribe(self) -> TranscriptionResult | None:
        """Send the finished recording for transcription.

        Only one call may be in flight. On success the recording is
        discarded; on failure it is kept so the user can retry.
        """
        if self._closed:
            return None
        artifact = self.controller.artifact
        if artifact is None:
            self._notifier.error("No audio recorded")
            return None
        if self.is_transcribing:
            self._notifier.warning("Transcription already in progress")
            return None

        self.is_transcribing = True
        try:
            result = await self._get_transcriber().transcribe(artifact)
        except MedScribeError as exc:
            if not self._closed:
                logger.error("Transcription error: %s", exc.detail)
                self._notifier.error(f"Failed to transcribe audio: {exc.detail}")
            return None
        finally:
            self.is_transcribing = False

        if self._closed:
            return None
        if self.controller.artifact is artifact:
            self.controller.discard_artifact()
        self.last_transcript = result.transcript
        if self._on_transcription_complete is not None:
            self._on_transcription_complete(result.transcript)
        self._notifier.success("Transcription complete")
        return result

    async def generate_document(self, transcript: str | None = None) -> str | None:
        """Generate clinical notes from ``transcript`` (default: last transcript)."""
        if self._closed:
            return None
        transcript = transcript if transcript is not None else self.last_transcript
        if not transcript or not transcript.strip():
            self._notifier.error("No transcript to generate documentation from")
            return None
        if self.is_generating:
            self._notifier.warning("Documentation generation already in progress")
            return None

        self.is_generating = True
        try:
            text = await self._get_generator().generate(transcript)
        except MedScribeError as exc:
            if not self._closed:
                logger.error("Generation error: %s", exc.detail)
                self._notifier.error(f"Failed to generate documentation: {exc.detail}")
            return None
        finally:
            self.is_generating = False

        if self._closed:
            return None
        self._notifier.success("Documentation generated")
        return text

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release device, timers, playback handle and HTTP clients. Idempotent."""
        if self._closed:
            return
        self._closed = True
        await self.controller.teardown()
        await self.playback.close()
        for client in (self._transcriber, self._generator):
            if client is not None:
                await client.aclose()
        self._transcriber = None
        self._generator = None

    async def __aenter__(self) -> "DictationSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
