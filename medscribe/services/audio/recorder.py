"""Recording lifecycle controller.

States: idle -> recording <-> paused -> stopped -> recording ...

The controller owns exactly one microphone stream, one elapsed-time counter
and one ``RecordingSession`` at a time. ``teardown()`` is safe from any
state, may be called repeatedly, and makes the results of coroutines that
were suspended across it inert.

Usage::

    async with RecordingController(settings) as recorder:
        await recorder.start()
        ...
        artifact = await recorder.stop()
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from medscribe.core.config import Settings, get_settings
from medscribe.core.exceptions import (
    EncodingError,
    InvalidTransitionError,
    RecordingAlreadyActiveError,
    ResourceLeakError,
)
from medscribe.core.models import CaptureState, RecordedArtifact, RecorderState
from medscribe.services.audio.device import CaptureBackend, MicrophoneStream, acquire
from medscribe.services.audio.formats import encode_artifact
from medscribe.services.audio.timer import ElapsedTimer, TickListener

logger = logging.getLogger(__name__)


@dataclass
class RecordingSession:
    """Chunks captured since the last ``start``."""

    mime_type: str
    chunks: list[bytes] = field(default_factory=list)

    def append(self, data: bytes) -> None:
        if data:
            self.chunks.append(data)

    @property
    def size(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)


class RecordingController:
    """Finite-state machine coordinating capture, timing and finalization.

    Args:
        settings: Capture configuration (defaults to ``get_settings()``).
        backend: Capture backend passed to ``acquire()``.
        clock: Monotonic time source for the elapsed counter.
        tick_interval: Seconds per counter increment.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        backend: CaptureBackend | None = None,
        clock: Callable[[], float] = time.monotonic,
        tick_interval: float = 1.0,
    ) -> None:
        self._settings = settings or get_settings()
        self._backend = backend
        self._timer = ElapsedTimer(interval=tick_interval, clock=clock)
        self._state = RecorderState.idle
        self._stream: MicrophoneStream | None = None
        self._session: RecordingSession | None = None
        self._artifact: RecordedArtifact | None = None
        self._consumer: asyncio.Task | None = None
        self._starting = False
        self._stopping = False
        # Bumped by teardown; coroutines compare it after each await
        self._epoch = 0

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def elapsed_seconds(self) -> int:
        return self._timer.seconds

    @property
    def session(self) -> RecordingSession | None:
        return self._session

    @property
    def artifact(self) -> RecordedArtifact | None:
        return self._artifact

    @property
    def capture_state(self) -> CaptureState:
        """Sub-state of the underlying microphone stream."""
        if self._stream is None:
            return CaptureState.inactive
        return self._stream.state

    @property
    def device_held(self) -> bool:
        return self._stream is not None and not self._stream.released

    def add_tick_listener(self, listener: TickListener) -> None:
        """Register a callback receiving the counter once per elapsed second."""
        self._timer.add_listener(listener)

    def discard_artifact(self) -> None:
        """Drop the finished recording (e.g. after a successful transcription)."""
        self._artifact = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Acquire the microphone and begin a fresh recording session.

        Raises:
            RecordingAlreadyActiveError: If a session is recording or paused.
            PermissionDeniedError: If microphone access was refused.
            DeviceUnavailableError: If no microphone could be opened.
        """
        if self._starting or self._state in (RecorderState.recording, RecorderState.paused):
            raise RecordingAlreadyActiveError()
        if self._stream is not None:
            raise ResourceLeakError("Previous microphone stream was never released")

        epoch = self._epoch
        self._starting = True
        try:
            stream = await acquire(self._settings, self._backend)
        except Exception:
            if epoch == self._epoch:
                self._state = RecorderState.idle
            raise
        finally:
            self._starting = False

        if epoch != self._epoch:
            # Torn down while the device was being opened
            stream.release()
            return

        session = RecordingSession(mime_type=stream.mime_type)
        try:
            stream.start()
        except Exception:
            self._state = RecorderState.idle
            raise

        self._stream = stream
        self._session = session
        self._artifact = None
        self._timer.reset()
        self._timer.start()
        self._consumer = asyncio.create_task(self._consume(stream, session))
        self._state = RecorderState.recording
        logger.info("Recording started (mimeType=%s)", stream.mime_type)

    def pause(self) -> None:
        """Suspend capture and the elapsed counter; captured chunks remain."""
        if self._state is not RecorderState.recording or self.capture_state is not CaptureState.recording:
            raise InvalidTransitionError("pause", self._state)
        self._stream.pause()
        self._timer.pause()
        self._state = RecorderState.paused
        logger.info("Recording paused at %ss", self.elapsed_seconds)

    def resume(self) -> None:
        """Continue a paused recording."""
        if self._state is not RecorderState.paused or self.capture_state is not CaptureState.paused:
            raise InvalidTransitionError("resume", self._state)
        self._stream.resume()
        self._timer.start()
        self._state = RecorderState.recording
        logger.info("Recording resumed")

    async def stop(self) -> RecordedArtifact | None:
        """Finalize capture, release the microphone and assemble the artifact.

        Returns:
            The new RecordedArtifact, or None if the controller was torn
            down while finalizing.

        Raises:
            InvalidTransitionError: If not recording/paused, or already stopping.
            EncodingError: If the captured audio could not be encoded. The
                controller still ends up ``stopped`` with no artifact.
        """
        if self._stopping:
            raise InvalidTransitionError("stop", "stopping")
        if self._state not in (RecorderState.recording, RecorderState.paused):
            raise InvalidTransitionError("stop", self._state)

        epoch = self._epoch
        stream, session, consumer = self._stream, self._session, self._consumer
        self._stopping = True
        try:
            self._timer.pause()
            stream.stop()
            self._stream = None
            self._consumer = None

            if consumer is not None:
                await asyncio.wait([consumer])
            if epoch != self._epoch:
                return None

            try:
                artifact = await asyncio.to_thread(
                    encode_artifact,
                    list(session.chunks),
                    session.mime_type,
                    stream.sample_rate,
                    stream.channels,
                )
            except EncodingError:
                if epoch == self._epoch:
                    self._timer.reset()
                    self._artifact = None
                    self._state = RecorderState.stopped
                raise
        finally:
            if epoch == self._epoch:
                self._stopping = False
        if epoch != self._epoch:
            return None

        self._timer.reset()
        self._artifact = artifact
        self._state = RecorderState.stopped
        logger.info(
            "Recording stopped: %d chunks, %d bytes encoded as %s",
            len(session.chunks),
            artifact.size,
            artifact.mime_type,
        )
        return artifact

    async def teardown(self) -> None:
        """Release every held resource and return to idle. Idempotent."""
        self._epoch += 1
        self._stopping = False
        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            consumer.cancel()
        if self._stream is not None:
            self._stream.release()
            self._stream = None
        self._timer.reset()
        self._session = None
        self._artifact = None
        self._state = RecorderState.idle
        if consumer is not None:
            await asyncio.gather(consumer, return_exceptions=True)

    async def __aenter__(self) -> "RecordingController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.teardown()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    async def _consume(stream: MicrophoneStream, session: RecordingSession) -> None:
        """Append chunk events to the session in emission order."""
        async for event in stream.events():
            session.append(event.data)
