"""Tests for PlaybackManager and PlaybackHandle.

The fake sink plays until the test calls ``finish()``, which lets the tests
observe handle revocation on natural end, on replacement and on close.
"""

import asyncio
import sys
import threading
import types

import pytest

from medscribe.core.exceptions import NoArtifactError, PlaybackError
from medscribe.services.audio.playback import PlaybackHandle, PlaybackManager, SoundDeviceSink


class FakeSoundDevice(types.ModuleType):
    """Stand-in for the sounddevice module: play() runs until stop()."""

    def __init__(self) -> None:
        super().__init__("sounddevice")
        self.calls: list[str] = []
        self.playing = False
        self._done = threading.Event()

    def play(self, data, samplerate):
        self.calls.append("play")
        self._done = threading.Event()
        self.playing = True

    def wait(self):
        self._done.wait(5)

    def stop(self):
        self.calls.append("stop")
        self.playing = False
        self._done.set()


@pytest.fixture
def manager(fake_sink, tmp_path):
    return PlaybackManager(sink=fake_sink, temp_dir=str(tmp_path))


class TestPlaybackHandle:
    """Temporary-file backed handle."""

    def test_create_writes_artifact(self, wav_artifact, tmp_path):
        handle = PlaybackHandle.create(wav_artifact, str(tmp_path))

        assert handle.path.read_bytes() == wav_artifact.data
        assert handle.path.suffix == ".wav"
        assert handle.url.startswith("file://")
        handle.revoke()

    def test_revoke_is_idempotent(self, wav_artifact, tmp_path):
        handle = PlaybackHandle.create(wav_artifact, str(tmp_path))
        handle.revoke()
        handle.revoke()

        assert handle.revoked
        assert not handle.path.exists()


class TestPlay:
    """Single live handle semantics."""

    async def test_play_without_artifact(self, manager, fake_sink):
        with pytest.raises(NoArtifactError):
            manager.play(None)
        assert fake_sink.started == []

    async def test_play_starts_sink(self, manager, fake_sink, wav_artifact):
        handle = manager.play(wav_artifact)

        assert fake_sink.started == [handle]
        assert manager.handle is handle
        assert manager.is_playing
        await manager.close()

    async def test_natural_end_revokes_handle(self, manager, fake_sink, wav_artifact):
        handle = manager.play(wav_artifact)
        fake_sink.finish()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert handle.revoked
        assert not handle.path.exists()
        assert manager.handle is None
        assert not manager.is_playing

    async def test_replay_revokes_previous_handle(self, manager, fake_sink, wav_artifact):
        first = manager.play(wav_artifact)
        second = manager.play(wav_artifact)

        assert first.revoked
        assert not second.revoked
        assert fake_sink.stop_calls == 1
        await manager.close()

    async def test_at_most_one_live_handle(self, manager, fake_sink, wav_artifact, tmp_path):
        for _ in range(5):
            manager.play(wav_artifact)
            live = [h for h in fake_sink.started if not h.revoked]
            assert len(live) == 1
            assert len(list(tmp_path.iterdir())) == 1
        await manager.close()
        assert list(tmp_path.iterdir()) == []

    async def test_sink_failure_revokes_handle(self, sink_factory, wav_artifact, tmp_path):
        manager = PlaybackManager(sink=sink_factory(fail_on_start=RuntimeError("device busy")), temp_dir=str(tmp_path))

        with pytest.raises(PlaybackError, match="device busy"):
            manager.play(wav_artifact)

        assert manager.handle is None
        assert list(tmp_path.iterdir()) == []


class TestClose:
    """Teardown of the playback slot."""

    async def test_close_stops_and_revokes(self, manager, fake_sink, wav_artifact):
        handle = manager.play(wav_artifact)
        await manager.close()

        assert handle.revoked
        assert fake_sink.stop_calls == 1
        assert not manager.is_playing

    async def test_close_is_idempotent(self, manager, fake_sink, wav_artifact):
        manager.play(wav_artifact)
        await manager.close()
        await manager.close()

        assert fake_sink.stop_calls == 1

    async def test_close_without_playback(self, manager):
        await manager.close()
        assert manager.handle is None


class TestSoundDeviceSink:
    """The real sink driven against a fake output device."""

    @pytest.fixture
    def device(self, monkeypatch):
        fake = FakeSoundDevice()
        monkeypatch.setitem(sys.modules, "sounddevice", fake)
        return fake

    async def test_replay_keeps_new_playback_running(self, device, wav_artifact, tmp_path):
        manager = PlaybackManager(sink=SoundDeviceSink(), temp_dir=str(tmp_path))
        first = manager.play(wav_artifact)
        await asyncio.sleep(0.05)

        second = manager.play(wav_artifact)
        await asyncio.sleep(0.05)

        assert device.calls == ["play", "stop", "play"]
        assert device.playing
        assert manager.is_playing
        assert first.revoked
        assert not second.revoked

        await manager.close()
        assert device.calls[-1] == "stop"
        assert not device.playing
