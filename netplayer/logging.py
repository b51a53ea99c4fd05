"""Linux-native logging for the player daemon.

Log records go to stderr and to a rotating file under the XDG data
directory. ``NETPLAYER_DEBUG`` in the environment switches the
application logger to DEBUG.
"""

# ============================================================================
# Standard Library Imports (alphabetical)
# ============================================================================
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional, Union

# ============================================================================
# Third-Party Imports (alphabetical, with version requirements)
# ============================================================================
# None

# ============================================================================
# Local Imports (grouped by package, alphabetical)
# ============================================================================
# None

LOGGER_NAME = "netplayer"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LinuxLogger:
    """
    Linux-native logger with file and console output.

    Supports:
    - File logging to XDG data directory
    - Console output at a configurable level
    - Environment variable control (NETPLAYER_DEBUG)
    """

    _initialized: bool = False

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        console_level: Union[int, str] = logging.INFO,
    ):
        """
        Initialize the logger.

        Args:
            log_dir: Directory for log files (defaults to XDG data dir)
            console_level: Minimum level written to stderr
        """
        self.logger = logging.getLogger(LOGGER_NAME)
        if LinuxLogger._initialized:
            return

        self.logger.setLevel(
            logging.DEBUG if os.getenv("NETPLAYER_DEBUG") else logging.INFO
        )

        # Prevent duplicate handlers
        if self.logger.handlers:
            return

        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        # Console handler (stderr)
        if isinstance(console_level, str):
            console_level = logging.getLevelName(console_level.upper())
            if not isinstance(console_level, int):
                console_level = logging.INFO
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(console_level)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        # File handler
        if log_dir is None:
            xdg_data = os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share")
            log_dir = Path(xdg_data) / "netplayer" / "logs"

        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "netplayer.log"

        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        self.logger.addHandler(file_handler)

        LinuxLogger._initialized = True

    @classmethod
    def get_logger(cls, name: str = LOGGER_NAME) -> logging.Logger:
        """
        Get a logger instance.

        Handlers are only attached once ``LinuxLogger`` has been constructed
        with a log directory; until then records propagate to the root logger.

        Args:
            name: Logger name (creates child logger)

        Returns:
            Logger instance
        """
        base = logging.getLogger(LOGGER_NAME)
        if name == LOGGER_NAME:
            return base
        if name.startswith(LOGGER_NAME + "."):
            name = name[len(LOGGER_NAME) + 1:]
        return base.getChild(name)


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get a logger instance."""
    return LinuxLogger.get_logger(name)
