"""Text command vocabulary of the control channel.

Each command maps to one Player operation or query. Anything outside the
vocabulary, and any command the Player cannot answer, yields ``"null"``.
"""

from typing import Callable, Dict, Optional

from netplayer.exceptions import NetPlayerError
from netplayer.logging import get_logger
from netplayer.player import Player

logger = get_logger(__name__)


NULL_RESPONSE = "null"

VOLUME_STEP = 0.05
SHORT_SEEK = 5.0
LONG_SEEK = 30.0


class CommandDispatcher:
    """Maps command strings to Player calls and results to response strings."""

    def __init__(self, player: Player):
        self._player = player
        self._handlers: Dict[str, Callable[[], Optional[str]]] = {
            "play": player.play,
            "stop": player.stop,
            "pause": player.pause,
            "resume": player.resume,
            "get_player_state": self._player_state,
            "volume_up": lambda: self._adjust_volume(VOLUME_STEP),
            "volume_down": lambda: self._adjust_volume(-VOLUME_STEP),
            "forward": lambda: self._seek_relative(SHORT_SEEK),
            "backward": lambda: self._seek_relative(-SHORT_SEEK),
            "long_forward": lambda: self._seek_relative(LONG_SEEK),
            "long_backward": lambda: self._seek_relative(-LONG_SEEK),
            "get_current_song": player.current_track_name,
            "get_position": lambda: str(player.current_position_seconds()),
            "get_length": lambda: str(player.total_length_seconds()),
            "get_pl_index": lambda: str(player.playlist_index),
            "get_pl_length": lambda: str(player.playlist_length),
            "get_volume": lambda: str(player.get_volume()),
            "next": player.next,
            "prev": player.prev,
        }

    @property
    def commands(self) -> frozenset:
        return frozenset(self._handlers)

    def dispatch(self, command: str) -> str:
        """
        Execute one command and build its response.

        Args:
            command: Command text, already stripped of padding and whitespace

        Returns:
            The query result, or ``"null"`` for actions, unknown commands and
            commands that failed
        """
        handler = self._handlers.get(command)
        if handler is None:
            logger.debug("Ignoring unknown command: %r", command)
            return NULL_RESPONSE

        with self._player.lock:
            try:
                result = handler()
            except NetPlayerError as e:
                logger.warning("Command %s failed: %s", command, e)
                return NULL_RESPONSE

        # Actions return bool/None; only queries produce text
        if isinstance(result, str):
            return result
        return NULL_RESPONSE

    def _player_state(self) -> str:
        if self._player.is_playing():
            return "playing"
        if self._player.is_paused():
            return "paused"
        return "unknown"

    def _adjust_volume(self, delta: float) -> None:
        # Relative to the engine's current volume, not the remembered one
        self._player.set_volume(self._player.get_volume() + delta)

    def _seek_relative(self, delta: float) -> None:
        self._player.seek_to(self._player.current_position_seconds() + delta)
