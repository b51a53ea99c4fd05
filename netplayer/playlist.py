"""Playlist of track locators with a movable current index."""

import random
from typing import Iterable, List, Optional

from netplayer.exceptions import NoCurrentTrackError
from netplayer.metadata import display_name


class Playlist:
    """Ordered track locators. Only the index moves once playback starts."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        """
        Initialize an empty playlist.

        Args:
            rng: Random source for shuffling (None uses a fresh ``random.Random``)
        """
        self._rng = rng or random.Random()
        self.tracks: List[str] = []
        self.index: int = 0

    def __len__(self) -> int:
        return len(self.tracks)

    def add_track(self, track: str) -> None:
        """
        Append a track to the playlist.

        Existence is not checked here; unreadable tracks fail at load time.

        Args:
            track: Track locator (usually a file path)
        """
        self.tracks.append(track)

    def add_tracks(self, tracks: Iterable[str]) -> None:
        """
        Append multiple tracks to the playlist.

        Args:
            tracks: Track locators in playback order
        """
        self.tracks.extend(tracks)

    def shuffle(self) -> None:
        """
        Reorder the tracks by drawing uniformly without replacement.

        A drawn candidate already present in the output is discarded, so the
        result never holds a duplicate. Every draw removes one candidate from
        the pool, which bounds the loop by the playlist length.
        """
        pool = list(self.tracks)
        shuffled: List[str] = []
        seen = set()
        while pool:
            candidate = pool.pop(self._rng.randrange(len(pool)))
            if candidate in seen:
                continue
            seen.add(candidate)
            shuffled.append(candidate)
        self.tracks = shuffled
        self.index = 0

    def is_valid_index(self, index: int) -> bool:
        return 0 <= index < len(self.tracks)

    def has_next(self) -> bool:
        return self.is_valid_index(self.index + 1)

    def has_previous(self) -> bool:
        return self.is_valid_index(self.index - 1)

    def current_track(self) -> str:
        """
        Get the track at the current index.

        Raises:
            NoCurrentTrackError: If the playlist is empty
        """
        if not self.is_valid_index(self.index):
            raise NoCurrentTrackError("Playlist is empty")
        return self.tracks[self.index]

    def current_name(self) -> str:
        """Get the last path segment of the current track."""
        return display_name(self.current_track())
