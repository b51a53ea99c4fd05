"""Audio engine interface consumed by the Player.

The Player never talks to an audio library directly. It drives an
``AudioEngine`` that hands out opaque stream handles, one per loaded
track. ``netplayer.gst_engine`` provides the GStreamer implementation;
tests drive the Player with an in-memory double.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Optional

# Opaque per-track resource returned by ``AudioEngine.load_track``.
StreamHandle = Any


class ChannelState(IntEnum):
    """Activity of a loaded stream as reported by the engine."""
    STOPPED = 0
    PLAYING = 1
    STALLED = 2
    PAUSED = 3


class AudioEngine(ABC):
    """Narrow playback capability: load, transport, position and volume."""

    @abstractmethod
    def init(self) -> bool:
        """Open the output device. Returns False if no device is usable."""

    @abstractmethod
    def load_track(self, path: str) -> Optional[StreamHandle]:
        """Create a stream for ``path``; None if the file cannot be decoded."""

    @abstractmethod
    def start(self, handle: StreamHandle) -> bool:
        """Start or resume playback of ``handle``."""

    @abstractmethod
    def pause(self, handle: StreamHandle) -> None:
        ...

    @abstractmethod
    def stop(self, handle: StreamHandle) -> None:
        ...

    @abstractmethod
    def is_active(self, handle: StreamHandle) -> ChannelState:
        ...

    @abstractmethod
    def release(self, handle: StreamHandle) -> None:
        """Free every resource held by ``handle``. The handle is dead afterwards."""

    @abstractmethod
    def position_seconds(self, handle: StreamHandle) -> float:
        ...

    @abstractmethod
    def seek_seconds(self, handle: StreamHandle, seconds: float) -> bool:
        ...

    @abstractmethod
    def length_seconds(self, handle: StreamHandle) -> float:
        ...

    @abstractmethod
    def get_volume(self, handle: StreamHandle) -> float:
        ...

    @abstractmethod
    def set_volume(self, handle: StreamHandle, volume: float) -> None:
        ...

    def shutdown(self) -> None:
        """Release the output device. Called once, after the last handle is released."""
