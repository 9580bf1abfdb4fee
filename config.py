"""Configuration module for paperless-site-uploader application."""

import os
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Constants
DEFAULT_UPLOAD_TIMEOUT = 120  # seconds
DEFAULT_API_TEST_TIMEOUT = 10  # seconds
DEFAULT_LOCK_GRACE_DELAY = 2.0  # seconds
DEFAULT_FILE_EXTENSIONS = 'pdf,png,jpg,jpeg,tiff,tif'


class Config:
    """
    Application settings, read once from the environment.

    Instances are immutable once constructed; pass them explicitly to the
    components that need them.
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        errors = []

        # Paperless-ngx settings
        self.paperless_url = os.getenv('PAPERLESS_URL', '')
        self.paperless_token = os.getenv('PAPERLESS_TOKEN')
        self.site_name = os.getenv('SITE_NAME', '').strip()

        # Folder settings
        watch_folder_raw = os.getenv('WATCH_FOLDER')
        self.watch_folder = os.path.normpath(watch_folder_raw) if watch_folder_raw else None
        self.archive_folder = self._folder_setting('ARCHIVE_FOLDER', 'archive')
        self.failed_folder = self._folder_setting('FAILED_FOLDER', 'failed')
        self.allowed_extensions = self._parse_extensions(
            os.getenv('FILE_EXTENSIONS', DEFAULT_FILE_EXTENSIONS)
        )

        # Logging settings
        self.log_file = os.getenv('LOG_FILE', 'app.log')
        self.log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

        # File naming settings
        self.timestamp_format = os.getenv('TIMESTAMP_FORMAT', '%Y%m%d_%H%M%S')

        # Upload settings
        self.upload_timeout = self._number('UPLOAD_TIMEOUT', DEFAULT_UPLOAD_TIMEOUT, float, errors)
        self.api_test_timeout = self._number('API_TEST_TIMEOUT', DEFAULT_API_TEST_TIMEOUT, float, errors)
        self.upload_retry_attempts = self._number('UPLOAD_RETRY_ATTEMPTS', 3, int, errors)
        self.upload_retry_delay = self._number('UPLOAD_RETRY_DELAY', 10.0, float, errors)  # seconds

        # Polling settings
        self.poll_interval = self._number('POLL_INTERVAL', 30.0, float, errors)  # seconds between scans
        self.lock_grace_delay = self._number('LOCK_GRACE_DELAY', DEFAULT_LOCK_GRACE_DELAY, float, errors)

        # Validate required settings
        self._validate_config(errors)

        self._frozen = True

    def __setattr__(self, name, value):
        if getattr(self, '_frozen', False):
            raise AttributeError(f"Config is read-only, cannot set '{name}'")
        super().__setattr__(name, value)

    def _folder_setting(self, env_name: str, default_subfolder: str) -> Optional[str]:
        """Read a folder path, defaulting to a subfolder of the watch folder."""
        raw = os.getenv(env_name)
        if raw:
            return os.path.normpath(raw)
        if self.watch_folder:
            return os.path.join(self.watch_folder, default_subfolder)
        return None

    @staticmethod
    def _parse_extensions(raw: str) -> tuple:
        extensions = []
        for item in raw.split(','):
            ext = item.strip().lstrip('*').lstrip('.').lower()
            if ext and ext not in extensions:
                extensions.append(ext)
        return tuple(extensions)

    @staticmethod
    def _number(env_name: str, default, cast, errors: list):
        raw = os.getenv(env_name)
        if raw is None or raw.strip() == '':
            return default
        try:
            return cast(raw)
        except ValueError:
            errors.append(f"{env_name} must be a number: {raw}")
            return default

    def _validate_config(self, errors: list) -> None:
        """Validate that required configuration is present."""
        # Validate Paperless URL
        if not self.paperless_url:
            errors.append("PAPERLESS_URL is required")
        else:
            parsed = urlparse(self.paperless_url)
            if not parsed.scheme or not parsed.netloc:
                errors.append(f"PAPERLESS_URL is not a valid URL: {self.paperless_url}")

        if not self.paperless_token:
            errors.append("PAPERLESS_TOKEN is required")

        if not self.watch_folder:
            errors.append("WATCH_FOLDER is required")
        else:
            watch_path = Path(self.watch_folder).resolve()
            if not watch_path.exists():
                errors.append(f"WATCH_FOLDER does not exist: {self.watch_folder}")
            elif not watch_path.is_dir():
                errors.append(f"WATCH_FOLDER is not a directory: {self.watch_folder}")

            # Files moved back into the watch folder would be uploaded again every cycle
            for env_name, folder in (('ARCHIVE_FOLDER', self.archive_folder),
                                     ('FAILED_FOLDER', self.failed_folder)):
                if folder and Path(folder).resolve() == watch_path:
                    errors.append(f"{env_name} must not be the watch folder: {folder}")

        if not self.allowed_extensions:
            errors.append("FILE_EXTENSIONS must list at least one extension")

        if self.upload_retry_attempts < 1:
            errors.append("UPLOAD_RETRY_ATTEMPTS must be at least 1")
        if self.upload_retry_delay < 0:
            errors.append("UPLOAD_RETRY_DELAY must not be negative")
        if self.poll_interval <= 0:
            errors.append("POLL_INTERVAL must be greater than 0")
        if self.lock_grace_delay < 0:
            errors.append("LOCK_GRACE_DELAY must not be negative")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"- {error}" for error in errors))

    def setup_logging(self) -> None:
        """Setup logging to the configured log file and the console."""
        log_levels = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL
        }

        log_level = log_levels.get(self.log_level, logging.INFO)

        # Configure logging format
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        # Configure root logger
        logging.basicConfig(
            level=log_level,
            format=log_format,
            handlers=[
                logging.FileHandler(self.log_file, encoding='utf-8'),
                logging.StreamHandler()
            ]
        )

        logger = logging.getLogger(__name__)
        logger.info(f"Logging configured with level: {self.log_level}")

    def ensure_directories(self) -> None:
        """Create the archive and failure folders if they are missing."""
        for folder in (self.archive_folder, self.failed_folder):
            Path(folder).mkdir(parents=True, exist_ok=True)

    @property
    def paperless_api_url(self) -> str:
        """Get the full API URL for Paperless-ngx."""
        return f"{self.paperless_url.rstrip('/')}/api"

    @property
    def paperless_tags_url(self) -> str:
        """Get the tag lookup URL for Paperless-ngx."""
        return f"{self.paperless_api_url}/tags/"

    @property
    def paperless_upload_url(self) -> str:
        """Get the document upload URL for Paperless-ngx."""
        return f"{self.paperless_api_url}/documents/post_document/"

    def get_headers(self) -> dict:
        """Get HTTP headers for API requests."""
        return {
            'Authorization': f'Token {self.paperless_token}'
        }
