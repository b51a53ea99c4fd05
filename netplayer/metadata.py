"""Tag-based track information using mutagen."""

from typing import Optional

from mutagen import File, MutagenError

from netplayer.logging import get_logger

logger = get_logger(__name__)


def read_duration(file_path: str) -> Optional[float]:
    """
    Read a track's duration from its tags and stream headers.

    Args:
        file_path: Path to the audio file

    Returns:
        Duration in seconds, or None if the file is not recognized
    """
    try:
        audio_file = File(file_path)
    except (MutagenError, OSError) as e:
        logger.debug("Could not read tags from %s: %s", file_path, e)
        return None

    if audio_file is None or getattr(audio_file, 'info', None) is None:
        return None

    length = getattr(audio_file.info, 'length', None)
    if not length or length <= 0:
        return None
    return float(length)


def display_name(file_path: str) -> str:
    """Return the last path segment of a track locator."""
    return file_path[file_path.rfind('/') + 1:]
