"""
Audio module - Microphone capture, recording lifecycle and playback.
"""

from .device import MicrophoneStream, SoundDeviceBackend, acquire
from .playback import PlaybackHandle, PlaybackManager
from .recorder import RecordingController, RecordingSession

__all__ = [
    "MicrophoneStream",
    "PlaybackHandle",
    "PlaybackManager",
    "RecordingController",
    "RecordingSession",
    "SoundDeviceBackend",
    "acquire",
]
