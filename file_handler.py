"""
Per-file handling for paperless-site-uploader.

This module decides what happens to one candidate file found by a scan:
skip it while it is still being written, otherwise hand it to the
upload engine.
"""

import time
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from config import Config
from file_processing import is_file_locked
from uploader import DocumentUploader


class FileOutcome(Enum):
    LOCKED = 'locked'
    MISSING = 'missing'
    IGNORED = 'ignored'
    UNREADABLE = 'unreadable'
    ARCHIVED = 'archived'
    FAILED = 'failed'


class ScanFileHandler:
    """Handler for candidate files in the monitored folder."""

    def __init__(
        self,
        config: Config,
        uploader: DocumentUploader,
        tag_id: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        """Initialize the handler."""
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.uploader = uploader
        self.tag_id = tag_id
        self.sleep = sleep
        self.watch_folder_path = Path(config.watch_folder).resolve()

    def process(self, file_path: Path) -> FileOutcome:
        """
        Process a detected scan file.

        Waits the grace delay, probes the file lock and uploads the file
        if nobody is writing it anymore.

        Args:
            file_path: Path to the file to process

        Returns:
            What happened to the file in this cycle
        """
        if not self._is_file_in_watch_folder(file_path):
            self.logger.warning(f"File outside watch folder ignored: {file_path}")
            return FileOutcome.IGNORED

        if self.config.lock_grace_delay > 0:
            self.sleep(self.config.lock_grace_delay)

        if not file_path.exists():
            self.logger.debug(f"File no longer exists: {file_path}")
            return FileOutcome.MISSING

        if is_file_locked(file_path):
            self.logger.warning(f"File '{file_path.name}' is still in use, skipping until next poll")
            return FileOutcome.LOCKED

        if self.uploader.upload(file_path, self.tag_id):
            return FileOutcome.ARCHIVED
        if file_path.exists():
            # Read failed before any request was made
            return FileOutcome.UNREADABLE
        return FileOutcome.FAILED

    def _is_file_in_watch_folder(self, file_path: Path) -> bool:
        """
        Check if file sits directly in the watch folder.

        Args:
            file_path: Path to check

        Returns:
            True if the file's parent is the watch folder, False otherwise
        """
        try:
            return file_path.resolve().parent == self.watch_folder_path
        except OSError as e:
            self.logger.debug(f"Error checking file path: {e}")
            return False
