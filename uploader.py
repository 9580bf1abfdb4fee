"""
Upload engine for paperless-site-uploader.

Sends one file to Paperless-ngx with a bounded number of attempts and
moves it to the archive or failure folder once the outcome is final.
"""

import time
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import requests

from config import Config
from file_processing import move_without_overwrite
from paperless_client import PaperlessClient, PaperlessError


logger = logging.getLogger(__name__)


class AttemptOutcome(Enum):
    SUCCESS = 'success'
    FAILED = 'failed'


@dataclass
class UploadAttempt:
    """Result of a single upload request."""

    number: int
    outcome: AttemptOutcome
    task_id: Optional[str] = None
    error: Optional[str] = None


class DocumentUploader:
    """
    Upload files with retries, then archive or quarantine them.

    Each attempt moves the upload from ``Attempting(n)`` to success,
    ``Attempting(n + 1)`` after the retry delay, or exhaustion once
    ``upload_retry_attempts`` requests have failed.
    """

    def __init__(
        self,
        config: Config,
        client: PaperlessClient,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self.config = config
        self.client = client
        self.sleep = sleep
        self.clock = clock
        self.logger = logging.getLogger(__name__)
        self.attempts: List[UploadAttempt] = []

    def upload(self, file_path: Path, tag_id: Optional[int] = None) -> bool:
        """
        Upload a file and move it out of the watch folder.

        Args:
            file_path: Path to the file to upload
            tag_id: Site tag identifier, or None for an untagged upload

        Returns:
            True if the file was uploaded and archived, False otherwise
        """
        self.attempts = []
        try:
            content = file_path.read_bytes()
        except OSError as e:
            self.logger.error(f"Could not read '{file_path.name}': {e}")
            return False

        max_attempts = self.config.upload_retry_attempts
        attempt_number = 1
        while True:
            attempt = self._attempt(file_path.name, content, tag_id, attempt_number, max_attempts)
            self.attempts.append(attempt)

            if attempt.outcome is AttemptOutcome.SUCCESS:
                self.logger.info(f"Successfully uploaded '{file_path.name}' (Task: {attempt.task_id})")
                try:
                    archived = move_without_overwrite(
                        file_path, self.config.archive_folder, self.config.timestamp_format, self.clock
                    )
                except OSError as e:
                    self.logger.error(
                        f"Uploaded '{file_path.name}' but could not archive it: {e}. "
                        f"It stays in the watch folder and will be uploaded again next cycle"
                    )
                    raise
                self.logger.info(f"Archived '{file_path.name}' to {archived}")
                return True

            if attempt_number >= max_attempts:
                break

            self.logger.info(f"Retrying upload in {self.config.upload_retry_delay:.1f} seconds...")
            self.sleep(self.config.upload_retry_delay)
            attempt_number += 1

        self.logger.error(f"All {max_attempts} upload attempts failed for '{file_path.name}'")
        failed = move_without_overwrite(
            file_path, self.config.failed_folder, self.config.timestamp_format, self.clock
        )
        self.logger.error(f"Moved '{file_path.name}' to failure folder: {failed}")
        return False

    def _attempt(self, file_name: str, content: bytes, tag_id: Optional[int],
                 number: int, max_attempts: int) -> UploadAttempt:
        self.logger.info(f"Uploading '{file_name}' (attempt {number}/{max_attempts})...")
        try:
            task_id = self.client.post_document(file_name, content, tag_id)
        except PaperlessError as e:
            self.logger.warning(f"Upload attempt {number} failed for '{file_name}': {e}")
            return UploadAttempt(number, AttemptOutcome.FAILED, error=str(e))
        except requests.exceptions.RequestException as e:
            self.logger.warning(f"Network error on upload attempt {number} for '{file_name}': {e}")
            return UploadAttempt(number, AttemptOutcome.FAILED, error=str(e))
        return UploadAttempt(number, AttemptOutcome.SUCCESS, task_id=task_id)
