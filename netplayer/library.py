"""Music directory scanning for the initial playlist."""

import os
from pathlib import Path
from typing import Iterable, List

from netplayer.logging import get_logger

logger = get_logger(__name__)


# Supported audio file extensions
AUDIO_EXTENSIONS = {'.mp3'}


def scan_directories(
    directories: Iterable[Path],
    extensions: Iterable[str] = AUDIO_EXTENSIONS,
    recursive: bool = True,
) -> List[str]:
    """
    Collect audio files below the given directories.

    Args:
        directories: Roots to scan; missing roots are skipped with a warning
        extensions: Accepted file suffixes (compared case-insensitively)
        recursive: Descend into subdirectories

    Returns:
        File paths in directory-walk order, each listed once
    """
    extensions = {ext.lower() for ext in extensions}
    tracks: List[str] = []
    seen = set()

    for directory in directories:
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning("Music directory not found: %s", directory)
            continue

        found = 0
        for file_path in _walk(directory, recursive):
            if file_path.suffix.lower() not in extensions:
                continue
            path = str(file_path)
            if path in seen:
                continue
            seen.add(path)
            tracks.append(path)
            found += 1
        logger.info("Found %d tracks in %s", found, directory)

    return tracks


def _walk(directory: Path, recursive: bool) -> Iterable[Path]:
    def on_error(error: OSError) -> None:
        logger.warning("Error scanning directory %s: %s", error.filename, error.strerror)

    for root, dirs, files in os.walk(directory, onerror=on_error):
        dirs.sort()
        root_path = Path(root)
        for name in sorted(files):
            yield root_path / name
        if not recursive:
            break
