"""Single-slot playback of recorded artifacts.

Each ``play()`` writes the artifact to a temporary file and hands the
resulting ``PlaybackHandle`` to an audio sink. At most one handle is live:
the previous one is revoked before a new one is created, on natural end of
playback, on playback failure and on ``close()``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from medscribe.core.exceptions import NoArtifactError, PlaybackError
from medscribe.core.models import RecordedArtifact

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "audio/ogg": ".ogg",
    "audio/flac": ".flac",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
}


def _extension_for(mime_type: str) -> str:
    return _EXTENSIONS.get(mime_type.split(";", 1)[0].strip().lower(), ".bin")


class PlaybackHandle:
    """Revocable reference (a ``file://`` URL) to a recorded artifact."""

    def __init__(self, path: Path, mime_type: str) -> None:
        self._path = path
        self.mime_type = mime_type
        self._revoked = False

    @classmethod
    def create(cls, artifact: RecordedArtifact, directory: str | None = None) -> PlaybackHandle:
        fd, name = tempfile.mkstemp(
            prefix="medscribe_playback_", suffix=_extension_for(artifact.mime_type), dir=directory
        )
        with os.fdopen(fd, "wb") as fh:
            fh.write(artifact.data)
        return cls(Path(name), artifact.mime_type)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def url(self) -> str:
        return self._path.as_uri()

    @property
    def revoked(self) -> bool:
        return self._revoked

    def revoke(self) -> None:
        """Delete the backing file. Idempotent."""
        if self._revoked:
            return
        self._revoked = True
        self._path.unlink(missing_ok=True)


class AudioSink(Protocol):
    """Output device able to play one handle at a time."""

    def start(self, handle: PlaybackHandle) -> None: ...

    async def wait(self) -> None: ...

    def stop(self) -> None: ...


class SoundDeviceSink:
    """Plays handles on the default output device via sounddevice."""

    def start(self, handle: PlaybackHandle) -> None:
        import sounddevice as sd
        import soundfile as sf

        data, sample_rate = sf.read(str(handle.path), dtype="float32")
        sd.play(data, sample_rate)

    async def wait(self) -> None:
        import sounddevice as sd

        # Cancellation leaves the device alone; a replay may already own it
        await asyncio.to_thread(sd.wait)

    def stop(self) -> None:
        import sounddevice as sd

        sd.stop()


class PlaybackManager:
    """Owns the single live playback handle.

    Args:
        sink: Output device (defaults to ``SoundDeviceSink``).
        temp_dir: Directory for handle files (defaults to the system temp dir).
    """

    def __init__(self, sink: AudioSink | None = None, temp_dir: str | None = None) -> None:
        self._sink = sink or SoundDeviceSink()
        self._temp_dir = temp_dir
        self._handle: PlaybackHandle | None = None
        self._task: asyncio.Task | None = None

    @property
    def handle(self) -> PlaybackHandle | None:
        """The live handle, if playback is in progress."""
        return self._handle

    @property
    def is_playing(self) -> bool:
        return self._task is not None and not self._task.done()

    def play(self, artifact: RecordedArtifact | None) -> PlaybackHandle:
        """Start linear playback of ``artifact``; the last call wins.

        Must be called from within the running event loop.

        Raises:
            NoArtifactError: If no artifact was supplied.
            PlaybackError: If the sink could not start playback.
        """
        if artifact is None:
            raise NoArtifactError("No recording to play")

        self._release()
        handle = PlaybackHandle.create(artifact, self._temp_dir)
        self._handle = handle
        try:
            self._sink.start(handle)
        except Exception as exc:
            handle.revoke()
            self._handle = None
            raise PlaybackError(f"Playback error: {exc}") from exc

        self._task = asyncio.create_task(self._watch(handle))
        logger.info("Playing recorded audio (%d bytes)", artifact.size)
        return handle

    async def close(self) -> None:
        """Stop playback and revoke the live handle. Idempotent."""
        task = self._task
        self._release()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _release(self) -> None:
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                self._sink.stop()
            self._task = None
        if self._handle is not None:
            self._handle.revoke()
            self._handle = None

    async def _watch(self, handle: PlaybackHandle) -> None:
        """Revoke the handle once playback ends, however it ends."""
        try:
            await self._sink.wait()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Playback failed")
        finally:
            handle.revoke()
            if self._handle is handle:
                self._handle = None
