#!/usr/bin/env python3
"""Network Music Player - Main entry point."""

import signal
import sys

from netplayer.config import get_config
from netplayer.exceptions import ConfigurationError, EngineInitError
from netplayer.logging import get_logger

logger = get_logger(__name__)


def build_server(config, engine):
    """Create the player with its initial playlist and the server around it."""
    from netplayer.library import scan_directories
    from netplayer.player import Player
    from netplayer.server import SessionServer

    if not engine.init():
        raise EngineInitError("Failed to initialize device")

    player = Player(engine, initial_volume=config.initial_volume)
    player.add_tracks(
        scan_directories(config.music_directories, config.extensions, config.recursive)
    )
    if config.shuffle:
        player.shuffle()
    logger.info("Playlist loaded: %d tracks", player.playlist_length)

    return SessionServer(
        player,
        host=config.host,
        port=config.port,
        poll_interval=config.poll_interval,
        max_frame_size=config.max_frame_size,
        read_timeout=config.read_timeout,
        autoplay=config.autoplay,
    )


def main():
    """Main entry point."""
    # Initialize config (creates directories, loads settings)
    config = get_config()

    # Initialize logging (uses config for log directory)
    from netplayer.logging import LinuxLogger
    LinuxLogger(log_dir=config.log_dir, console_level=config.console_level)

    from netplayer.gst_engine import GstEngine

    try:
        server = build_server(config, GstEngine())
        server.start()
    except (ConfigurationError, EngineInitError, OSError) as e:
        logger.critical("Startup failed: %s", e)
        return 1

    def on_signal(signum, frame):
        server.shutdown()

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)

    server.serve_forever()
    return 0


if __name__ == '__main__':
    sys.exit(main())
