"""Remote-controllable music player with a TCP command channel."""

__version__ = "0.1.0"
