"""Microphone capture with chunked output.

``acquire()`` opens the input device and returns a ``MicrophoneStream`` that
accumulates int16 PCM frames and emits them as discrete chunks every
``chunk_interval`` seconds. Consumers read ``stream.events()``: an async
iterator of ``ChunkEvent`` items terminated by a single ``EndOfCapture``.

The PortAudio callback runs on a foreign thread; frames are handed to the
event loop with ``loop.call_soon_threadsafe`` and all other state is only
touched from the loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Protocol

from medscribe.core.config import Settings, get_settings
from medscribe.core.exceptions import (
    DeviceUnavailableError,
    InvalidTransitionError,
    PermissionDeniedError,
)
from medscribe.core.models import CaptureState
from medscribe.services.audio.formats import negotiate_mime_type

logger = logging.getLogger(__name__)

FrameCallback = Callable[[bytes], None]


@dataclass(frozen=True)
class ChunkEvent:
    """One non-empty fragment of captured audio."""

    data: bytes


@dataclass(frozen=True)
class EndOfCapture:
    """Emitted exactly once, after the last chunk of a stopped stream."""


CaptureEvent = ChunkEvent | EndOfCapture


class CaptureHandle(Protocol):
    """An opened hardware input stream."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


class CaptureBackend(Protocol):
    """Opens the platform input device, delivering raw frames to a callback."""

    def open(self, sample_rate: int, channels: int, callback: FrameCallback) -> CaptureHandle: ...


def _map_device_error(exc: Exception) -> Exception:
    """Translate a PortAudio / OS failure into the device error taxonomy."""
    message = str(exc)
    lowered = message.lower()
    if isinstance(exc, PermissionError) or any(
        marker in lowered for marker in ("permission", "access denied", "not authorized")
    ):
        return PermissionDeniedError(f"Microphone access was denied: {message}")
    return DeviceUnavailableError(f"Could not open microphone: {message}")


class SoundDeviceBackend:
    """Capture backend using ``sounddevice.RawInputStream`` (int16 PCM)."""

    def __init__(self, device: int | str | None = None, blocksize: int = 0) -> None:
        self._device = device
        self._blocksize = blocksize

    def open(self, sample_rate: int, channels: int, callback: FrameCallback) -> CaptureHandle:
        try:
            import sounddevice as sd
        except OSError as exc:  # PortAudio shared library missing
            raise DeviceUnavailableError(f"PortAudio is not available: {exc}") from exc

        def _callback(indata, frames, time_info, status) -> None:  # noqa: ANN001
            if status:
                logger.debug("Audio callback status: %s", status)
            callback(bytes(indata))

        try:
            return sd.RawInputStream(
                samplerate=sample_rate,
                channels=channels,
                dtype="int16",
                device=self._device,
                blocksize=self._blocksize,
                callback=_callback,
            )
        except (sd.PortAudioError, ValueError, OSError) as exc:
            raise _map_device_error(exc) from exc


class MicrophoneStream:
    """Holds the microphone for its lifetime and emits ordered audio chunks.

    Sub-states: ``inactive`` -> ``recording`` <-> ``paused`` -> ``inactive``.
    Frames delivered while paused are dropped; the device stays engaged
    until ``stop()`` or ``release()``.

    Args:
        mime_type: Negotiated encoding for the recording.
        sample_rate: Capture sample rate in Hz.
        channels: Number of input channels.
        chunk_interval: Seconds between emitted chunks.
    """

    def __init__(
        self,
        mime_type: str,
        sample_rate: int,
        channels: int,
        chunk_interval: float = 1.0,
    ) -> None:
        self.mime_type = mime_type
        self.sample_rate = sample_rate
        self.channels = channels
        self._chunk_interval = chunk_interval
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[CaptureEvent] = asyncio.Queue()
        self._pending = bytearray()
        self._state = CaptureState.inactive
        self._handle: CaptureHandle | None = None
        self._flusher: asyncio.Task | None = None
        self._released = False
        self._ended = False

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def released(self) -> bool:
        """True once the hardware stream has been stopped and closed."""
        return self._released

    def attach(self, handle: CaptureHandle) -> None:
        """Bind the opened hardware stream (done once by ``acquire``)."""
        self._handle = handle

    def on_frames(self, data: bytes) -> None:
        """Frame callback; safe to call from the PortAudio thread."""
        try:
            self._loop.call_soon_threadsafe(self._append_frames, data)
        except RuntimeError:
            # Event loop already closed during interpreter shutdown
            pass

    def _append_frames(self, data: bytes) -> None:
        if self._state is CaptureState.recording:
            self._pending.extend(data)

    def _flush(self) -> None:
        """Emit buffered frames as one chunk; zero-length chunks are discarded."""
        if not self._pending:
            return
        self._queue.put_nowait(ChunkEvent(bytes(self._pending)))
        self._pending.clear()

    async def _flush_loop(self) -> None:
        while True:
            await asyncio.sleep(self._chunk_interval)
            self._flush()

    def start(self) -> None:
        if self._state is not CaptureState.inactive or self._released:
            raise InvalidTransitionError("start capture", self._state)
        if self._handle is None:
            raise DeviceUnavailableError("Microphone stream was not opened")
        try:
            self._handle.start()
        except Exception as exc:
            self.release()
            raise _map_device_error(exc) from exc
        self._state = CaptureState.recording
        self._flusher = asyncio.create_task(self._flush_loop())

    def pause(self) -> None:
        if self._state is not CaptureState.recording:
            raise InvalidTransitionError("pause capture", self._state)
        self._flush()
        self._state = CaptureState.paused

    def resume(self) -> None:
        if self._state is not CaptureState.paused:
            raise InvalidTransitionError("resume capture", self._state)
        self._state = CaptureState.recording

    def stop(self) -> None:
        """Finalize capture: emit the last chunk, end the event stream, release."""
        if self._state is not CaptureState.inactive:
            self._flush()
            self._state = CaptureState.inactive
        self._end_events()
        self.release()

    def release(self) -> None:
        """Stop and close the hardware stream. Idempotent."""
        self._state = CaptureState.inactive
        if self._flusher is not None:
            self._flusher.cancel()
            self._flusher = None
        if self._released:
            return
        self._released = True
        if self._handle is None:
            return
        try:
            self._handle.stop()
        finally:
            self._handle.close()
        logger.debug("Microphone released")

    def _end_events(self) -> None:
        if not self._ended:
            self._ended = True
            self._queue.put_nowait(EndOfCapture())

    async def events(self) -> AsyncIterator[ChunkEvent]:
        """Yield chunk events in emission order until end of capture."""
        while True:
            event = await self._queue.get()
            if isinstance(event, EndOfCapture):
                return
            yield event


async def acquire(
    settings: Settings | None = None,
    backend: CaptureBackend | None = None,
) -> MicrophoneStream:
    """Open the microphone and return an unstarted ``MicrophoneStream``.

    Args:
        settings: Capture configuration (defaults to ``get_settings()``).
        backend: Capture backend (defaults to ``SoundDeviceBackend``).

    Returns:
        MicrophoneStream bound to the opened device.

    Raises:
        PermissionDeniedError: If the OS refused microphone access.
        DeviceUnavailableError: If no input device could be opened.
    """
    settings = settings or get_settings()
    backend = backend or SoundDeviceBackend()
    mime_type = negotiate_mime_type(settings.mime_type_candidates, settings.sample_rate)

    stream = MicrophoneStream(
        mime_type=mime_type,
        sample_rate=settings.sample_rate,
        channels=settings.channels,
        chunk_interval=settings.chunk_interval,
    )
    try:
        handle = await asyncio.to_thread(
            backend.open, settings.sample_rate, settings.channels, stream.on_frames
        )
    except (PermissionDeniedError, DeviceUnavailableError):
        raise
    except Exception as exc:
        raise _map_device_error(exc) from exc
    stream.attach(handle)
    return stream
