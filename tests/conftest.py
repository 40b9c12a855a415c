"""Shared pytest fixtures for the MedScribe test suite.

Provides settings with test credentials, a controllable monotonic clock,
fake capture backends and audio sinks, and sample PCM audio so that no test
touches real hardware or the network.
"""

import asyncio
import math
import struct

import pytest

from medscribe.core.config import Settings
from medscribe.services.audio.formats import encode_artifact

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def make_settings(**overrides) -> Settings:
    """Build Settings isolated from any local .env file."""
    values = {
        "deepgram_api_key": "dg-test-key",
        "gemini_api_key": "gm-test-key",
        "supabase_url": "https://project.supabase.co",
        "supabase_key": "sb-test-key",
        "mime_type_candidates": ["audio/wav"],
        "chunk_interval": 60.0,  # chunks are flushed explicitly by pause/stop
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock advanced manually by the test."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


# ---------------------------------------------------------------------------
# Capture devices
# ---------------------------------------------------------------------------


class FakeCaptureHandle:
    """Stands in for an opened PortAudio input stream."""

    def __init__(self, callback, fail_on_start: Exception | None = None) -> None:
        self.callback = callback
        self.fail_on_start = fail_on_start
        self.started = False
        self.stop_calls = 0
        self.close_calls = 0

    def start(self) -> None:
        if self.fail_on_start is not None:
            raise self.fail_on_start
        self.started = True

    def stop(self) -> None:
        self.stop_calls += 1

    def close(self) -> None:
        self.close_calls += 1

    async def feed(self, data: bytes) -> None:
        """Deliver frames as the audio thread would, then let the loop run."""
        self.callback(data)
        await asyncio.sleep(0)


class FakeCaptureBackend:
    """Capture backend recording every opened handle."""

    def __init__(self, error: Exception | None = None, fail_on_start: Exception | None = None) -> None:
        self.error = error
        self.fail_on_start = fail_on_start
        self.handles: list[FakeCaptureHandle] = []
        self.open_args: list[tuple[int, int]] = []

    def open(self, sample_rate, channels, callback):
        self.open_args.append((sample_rate, channels))
        if self.error is not None:
            raise self.error
        handle = FakeCaptureHandle(callback, fail_on_start=self.fail_on_start)
        self.handles.append(handle)
        return handle

    @property
    def last(self) -> FakeCaptureHandle:
        return self.handles[-1]


@pytest.fixture
def capture_backend():
    return FakeCaptureBackend()


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------


class FakeSink:
    """Audio sink whose playback ends when the test calls ``finish()``."""

    def __init__(self, fail_on_start: Exception | None = None) -> None:
        self.fail_on_start = fail_on_start
        self.started = []
        self.stop_calls = 0
        self._finished: asyncio.Event | None = None

    def start(self, handle) -> None:
        if self.fail_on_start is not None:
            raise self.fail_on_start
        self.started.append(handle)
        self._finished = asyncio.Event()

    async def wait(self) -> None:
        await self._finished.wait()

    def stop(self) -> None:
        self.stop_calls += 1

    def finish(self) -> None:
        self._finished.set()


@pytest.fixture
def fake_sink():
    return FakeSink()


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_pcm_bytes():
    """Generate 1 second of 440Hz sine-wave PCM audio (16kHz, 16-bit, mono).

    Returns:
        bytes: Raw PCM audio data.
    """
    sample_rate = 16000
    frequency = 440.0
    amplitude = 16000  # ~50% of max int16

    samples = []
    for i in range(sample_rate):
        value = int(amplitude * math.sin(2 * math.pi * frequency * i / sample_rate))
        samples.append(struct.pack("<h", value))
    return b"".join(samples)


@pytest.fixture
def wav_artifact(sample_pcm_bytes):
    """A one-second WAV RecordedArtifact."""
    return encode_artifact([sample_pcm_bytes], "audio/wav", 16000, 1)


# ---------------------------------------------------------------------------
# Factories (for tests that need non-default fakes)
# ---------------------------------------------------------------------------


@pytest.fixture
def settings_factory():
    """Return ``make_settings`` so tests can override individual fields."""
    return make_settings


@pytest.fixture
def backend_factory():
    """Return the FakeCaptureBackend class (e.g. to inject open errors)."""
    return FakeCaptureBackend


@pytest.fixture
def sink_factory():
    """Return the FakeSink class (e.g. to inject start failures)."""
    return FakeSink
