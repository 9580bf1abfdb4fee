"""
File processing utilities for paperless-site-uploader.

This module contains the watch folder scanner, the lock probe used to
detect files that are still being written, and collision-safe file moves.
"""

import os
import fnmatch
import shutil
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple
from datetime import datetime

if os.name == 'nt':
    import msvcrt
else:
    import fcntl


logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Outcome of one scan of the watch folder."""

    files: List[Path] = field(default_factory=list)
    errors: List[Tuple[str, OSError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every pattern could be listed."""
        return not self.errors


def scan_watch_folder(watch_folder, extensions: Iterable[str]) -> ScanResult:
    """
    List the files in the watch folder that match the allowed extensions.

    Only the folder itself is listed, subfolders are ignored. Matching is
    case insensitive. A listing error for one pattern is recorded in the
    result and the remaining patterns are still scanned.

    Args:
        watch_folder: Folder to scan
        extensions: Allowed extensions without the leading dot

    Returns:
        ScanResult with the matching files in discovery order
    """
    result = ScanResult()
    seen = set()
    folder = Path(watch_folder)

    for ext in extensions:
        pattern = f"*.{ext.lower()}"
        try:
            with os.scandir(folder) as entries:
                matches = [
                    Path(entry.path)
                    for entry in entries
                    if entry.is_file() and fnmatch.fnmatch(entry.name.lower(), pattern)
                ]
        except OSError as e:
            logger.debug(f"Could not list {folder} for pattern '{pattern}': {e}")
            result.errors.append((pattern, e))
            continue

        for path in matches:
            if path not in seen:
                seen.add(path)
                result.files.append(path)

    return result


def _lock_exclusive(handle) -> None:
    if os.name == 'nt':
        msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def is_file_locked(file_path: Path) -> bool:
    """
    Check whether another process still holds the file.

    Opens the file and tries to take an exclusive, non-blocking lock.
    A scanner that is still writing the file makes either step fail.

    Args:
        file_path: Path to the file to check

    Returns:
        True if the file could not be opened and locked, False otherwise
    """
    try:
        with open(file_path, 'rb') as f:
            _lock_exclusive(f)
        return False
    except OSError as e:
        logger.debug(f"File not yet accessible: {file_path} - {e}")
        return True


def move_without_overwrite(
    file_path: Path,
    destination_folder,
    timestamp_format: str = '%Y%m%d_%H%M%S',
    now: Optional[Callable[[], datetime]] = None
) -> Path:
    """
    Move a file into a folder, never replacing an existing file.

    If the name is taken, ``_<timestamp>`` is added before the extension.

    Args:
        file_path: File to move
        destination_folder: Target folder, created if missing
        timestamp_format: strftime format of the collision suffix
        now: Clock used for the suffix, defaults to datetime.now

    Returns:
        Final path of the moved file

    Raises:
        OSError: The move itself failed
    """
    now = now or datetime.now
    destination_folder = Path(destination_folder)
    destination_folder.mkdir(parents=True, exist_ok=True)

    target = destination_folder / file_path.name
    if target.exists():
        timestamp = now().strftime(timestamp_format)
        target = destination_folder / f"{file_path.stem}_{timestamp}{file_path.suffix}"
        counter = 1
        while target.exists():
            target = destination_folder / f"{file_path.stem}_{timestamp}_{counter}{file_path.suffix}"
            counter += 1
        logger.debug(f"Destination name taken, using {target.name}")

    shutil.move(str(file_path), str(target))
    return target
