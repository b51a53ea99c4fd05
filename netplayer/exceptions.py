"""Custom exception hierarchy for the network music player.

This module provides a structured exception hierarchy for consistent
error handling across the player, dispatcher and server.
"""


class NetPlayerError(Exception):
    """Base exception for all network player errors."""

    pass


class ConfigurationError(NetPlayerError):
    """Errors related to configuration."""

    pass


class PlayerError(NetPlayerError):
    """Errors related to audio playback."""

    pass


class EngineInitError(PlayerError):
    """The audio engine could not open an output device."""

    pass


class LoadError(PlayerError):
    """A track could not be loaded by the audio engine."""

    pass


class StartError(PlayerError):
    """A loaded track was rejected when starting playback."""

    pass


class NoActiveSessionError(PlayerError):
    """A session query was made before any track was loaded."""

    pass


class PlaylistError(NetPlayerError):
    """Errors related to playlist operations."""

    pass


class NoCurrentTrackError(PlaylistError):
    """The playlist is empty, so there is no current track."""

    pass


class ConnectionLostError(NetPlayerError):
    """The client connection failed or was closed by the peer."""

    pass
