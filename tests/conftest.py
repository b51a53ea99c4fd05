"""Pytest configuration and fixtures."""

import pytest
import tempfile
import shutil
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Mock GStreamer before imports
sys.modules['gi'] = MagicMock()
sys.modules['gi.repository'] = MagicMock()
sys.modules['gi.repository.Gst'] = MagicMock()

from netplayer.engine import AudioEngine, ChannelState
from netplayer.player import Player


class FakeStream:
    """Stream handle of FakeEngine; tests poke its fields directly."""

    def __init__(self, path):
        self.path = path
        self.state = ChannelState.STOPPED
        self.position = 0.0
        self.length = 180.0
        self.volume = 1.0
        self.released = False


class FakeEngine(AudioEngine):
    """In-memory engine with scripted load and start failures."""

    def __init__(self, failing_loads=(), failing_starts=(), init_ok=True):
        self.failing_loads = set(failing_loads)
        self.failing_starts = set(failing_starts)
        self.init_ok = init_ok
        self.load_requests = []
        self.streams = []
        self.start_hook = None
        self.is_shut_down = False
        # method name -> exception raised by its next call
        self.faults = {}

    @property
    def live_streams(self):
        return [s for s in self.streams if not s.released]

    @property
    def current(self):
        live = self.live_streams
        return live[-1] if live else None

    def init(self):
        return self.init_ok

    def load_track(self, path):
        self.load_requests.append(path)
        if path in self.failing_loads:
            return None
        stream = FakeStream(path)
        self.streams.append(stream)
        return stream

    def start(self, handle):
        if self.start_hook is not None:
            self.start_hook(handle)
        if handle.path in self.failing_starts:
            return False
        handle.state = ChannelState.PLAYING
        return True

    def pause(self, handle):
        handle.state = ChannelState.PAUSED

    def stop(self, handle):
        handle.state = ChannelState.STOPPED

    def _raise_fault(self, name):
        fault = self.faults.pop(name, None)
        if fault is not None:
            raise fault

    def is_active(self, handle):
        self._raise_fault('is_active')
        return handle.state

    def release(self, handle):
        handle.released = True
        handle.state = ChannelState.STOPPED

    def position_seconds(self, handle):
        return handle.position

    def seek_seconds(self, handle, seconds):
        seconds = max(0.0, seconds)
        if seconds > handle.length:
            return False
        handle.position = seconds
        return True

    def length_seconds(self, handle):
        return handle.length

    def get_volume(self, handle):
        self._raise_fault('get_volume')
        return handle.volume

    def set_volume(self, handle, volume):
        handle.volume = volume

    def shutdown(self):
        self.is_shut_down = True


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def mock_config(monkeypatch, temp_dir):
    """Configuration rooted in temporary XDG directories."""
    from netplayer.config import Config

    monkeypatch.setenv('XDG_CONFIG_HOME', str(temp_dir / 'config'))
    monkeypatch.setenv('XDG_DATA_HOME', str(temp_dir / 'data'))
    Config.reset()
    yield Config.get_instance()
    Config.reset()


@pytest.fixture
def sample_audio_file(temp_dir):
    """Create a sample audio file path for testing."""
    audio_file = temp_dir / 'test.mp3'
    audio_file.touch()
    return str(audio_file)


@pytest.fixture
def fake_engine_cls():
    """The FakeEngine class, for tests that need a variant."""
    return FakeEngine


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def tracks():
    return ['/music/a.mp3', '/music/b.mp3', '/music/c.mp3']


@pytest.fixture
def player(engine, tracks):
    """Unshuffled player over three tracks."""
    player = Player(engine)
    player.add_tracks(tracks)
    return player
