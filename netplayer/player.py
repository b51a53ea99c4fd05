"""Playlist-driven player on top of an AudioEngine.

The Player owns the playlist and the single live engine handle. All
state changes go through ``Player.lock`` (re-entrant, since ``next``
and ``prev`` call ``play``), so the command handler and the idle-poll
loop of the server can share one instance across threads.
"""

import threading
from typing import Callable, Iterable, Optional

from netplayer.engine import AudioEngine, ChannelState, StreamHandle
from netplayer.exceptions import (
    LoadError,
    NoActiveSessionError,
    NoCurrentTrackError,
    StartError,
)
from netplayer.logging import get_logger
from netplayer.playlist import Playlist

logger = get_logger(__name__)


MIN_VOLUME = 0.0
MAX_VOLUME = 1.5
# Tolerance for float drift in relative steps such as 1.45 + 0.05
VOLUME_TOLERANCE = 1e-9


class Player:
    """
    Transport controls, navigation and playback queries for one playlist.

    Volume set through ``set_volume`` is remembered and re-applied to every
    newly loaded track. Reaching the end of the playlist is reported through
    a single ``on_playlist_finished`` listener.
    """

    def __init__(
        self,
        engine: AudioEngine,
        playlist: Optional[Playlist] = None,
        initial_volume: float = 1.0,
        on_playlist_finished: Optional[Callable[[], None]] = None,
    ):
        self._engine = engine
        self.playlist = playlist if playlist is not None else Playlist()
        self.lock = threading.RLock()

        self._handle: Optional[StreamHandle] = None
        self._last_volume: float = 1.0
        self._loading: bool = False
        self._on_playlist_finished: Callable[[], None] = on_playlist_finished or (lambda: None)

        self.set_volume(initial_volume)

    # ------------------------------------------------------------------
    # Playlist
    # ------------------------------------------------------------------
    def add_track(self, track: str) -> None:
        with self.lock:
            self.playlist.add_track(track)

    def add_tracks(self, tracks: Iterable[str]) -> None:
        with self.lock:
            self.playlist.add_tracks(tracks)

    def shuffle(self) -> None:
        with self.lock:
            self.playlist.shuffle()

    def current_track_name(self) -> str:
        """
        Get the file name of the track at the current index.

        Raises:
            NoCurrentTrackError: If the playlist is empty
        """
        with self.lock:
            return self.playlist.current_name()

    @property
    def playlist_index(self) -> int:
        """1-based position of the current track."""
        return self.playlist.index + 1

    @property
    def playlist_length(self) -> int:
        return len(self.playlist)

    def set_playlist_finished_listener(self, listener: Optional[Callable[[], None]]) -> None:
        """Replace the end-of-playlist listener (None restores the no-op)."""
        self._on_playlist_finished = listener or (lambda: None)

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------
    @property
    def loading(self) -> bool:
        """True between a load request and its outcome."""
        return self._loading

    @property
    def has_session(self) -> bool:
        return self._handle is not None

    @property
    def last_volume(self) -> float:
        return self._last_volume

    def is_playing(self) -> bool:
        with self.lock:
            return self._channel_state() == ChannelState.PLAYING

    def is_paused(self) -> bool:
        with self.lock:
            return self._channel_state() == ChannelState.PAUSED

    def _channel_state(self) -> ChannelState:
        if self._handle is None:
            return ChannelState.STOPPED
        return self._engine.is_active(self._handle)

    def _require_session(self) -> StreamHandle:
        if self._handle is None:
            raise NoActiveSessionError("No track is loaded")
        return self._handle

    def _release_session(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            self._engine.release(handle)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def play(self) -> bool:
        """
        Load the current track and start it, replacing any live session.

        Returns:
            True if the track is playing, False if the engine rejected the
            load or the start (or the playlist is empty)
        """
        with self.lock:
            self._loading = True
            try:
                self._load_session()
            except (LoadError, StartError, NoCurrentTrackError) as e:
                logger.warning("Play failed: %s", e)
                return False
            finally:
                self._loading = False

            self.set_volume(self._last_volume)
            return True

    def _load_session(self) -> None:
        path = self.playlist.current_track()
        self._release_session()

        handle = self._engine.load_track(path)
        if handle is None:
            raise LoadError(f"Could not load {path}")
        if not self._engine.start(handle):
            self._engine.release(handle)
            raise StartError(f"Could not start {path}")

        self._handle = handle
        logger.info("Playing %s (%d/%d)", path, self.playlist_index, self.playlist_length)

    def stop(self) -> None:
        with self.lock:
            if self._handle is not None:
                self._engine.stop(self._handle)

    def pause(self) -> None:
        with self.lock:
            if self.is_playing():
                self._engine.pause(self._handle)

    def resume(self) -> None:
        with self.lock:
            if self.is_paused():
                self._engine.start(self._handle)

    def next(self) -> bool:
        """
        Advance to the next playable track.

        At the last track this only notifies the playlist-finished listener.
        Unplayable tracks are skipped up to the end of the playlist.

        Returns:
            True if a new track started, False if the playlist is exhausted

        Raises:
            LoadError: If no track up to the end of the playlist could be played
        """
        with self.lock:
            if not self.playlist.has_next():
                self._notify_playlist_finished()
                return False
            self.stop()
            return self._step(1)

    def prev(self) -> bool:
        """
        Go back to the previous playable track.

        A no-op at the first track. Unplayable tracks are skipped down to
        the start of the playlist.

        Raises:
            LoadError: If no track down to the start of the playlist could be played
        """
        with self.lock:
            if not self.playlist.has_previous():
                return False
            self.stop()
            return self._step(-1)

    def _step(self, direction: int) -> bool:
        while True:
            self.playlist.index += direction
            if self.play():
                return True
            if not self.playlist.is_valid_index(self.playlist.index + direction):
                raise LoadError(
                    f"No playable track {'after' if direction > 0 else 'before'} "
                    f"position {self.playlist_index}"
                )

    def _notify_playlist_finished(self) -> None:
        logger.debug("Playlist finished at position %d", self.playlist_index)
        try:
            self._on_playlist_finished()
        except Exception as e:
            logger.error("Error in playlist-finished listener: %s", e, exc_info=True)

    # ------------------------------------------------------------------
    # Position and volume
    # ------------------------------------------------------------------
    def seek_to(self, seconds: float) -> bool:
        """Seek the live session; bounds are left to the engine."""
        with self.lock:
            return self._engine.seek_seconds(self._require_session(), seconds)

    def current_position_seconds(self) -> float:
        with self.lock:
            return self._engine.position_seconds(self._require_session())

    def total_length_seconds(self) -> float:
        with self.lock:
            return self._engine.length_seconds(self._require_session())

    def set_volume(self, volume: float) -> None:
        """
        Set the volume of the live session and remember it for later tracks.

        Values outside [0.0, 1.5] are ignored and leave the current volume
        unchanged; accepted values are rounded to 3 decimals.
        """
        with self.lock:
            if volume < MIN_VOLUME - VOLUME_TOLERANCE or volume > MAX_VOLUME + VOLUME_TOLERANCE:
                logger.debug("Ignoring out-of-range volume %s", volume)
                return
            # + 0.0 turns a rounded -0.0 into 0.0
            volume = round(volume, 3) + 0.0
            self._last_volume = volume
            if self._handle is not None:
                self._engine.set_volume(self._handle, volume)

    def get_volume(self) -> float:
        """Volume as reported by the engine for the live session."""
        with self.lock:
            return self._engine.get_volume(self._require_session())

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------
    def close(self) -> None:
        """Stop playback and release the engine."""
        with self.lock:
            if self._handle is not None:
                self._engine.stop(self._handle)
            self._release_session()
            self._engine.shutdown()
