"""
Folder polling and application lifecycle management for paperless-site-uploader.

This module runs the scan, probe and upload cycle on a fixed interval
until it is asked to stop.
"""

import time
import signal
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from config import Config
from file_handler import FileOutcome, ScanFileHandler
from file_processing import scan_watch_folder
from paperless_client import PaperlessClient
from uploader import DocumentUploader


logger = logging.getLogger(__name__)


class FolderMonitor:
    """Main class for polling the folder and managing the application."""

    def __init__(
        self,
        config: Config,
        paperless_client: Optional[PaperlessClient] = None,
        uploader: Optional[DocumentUploader] = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        """Initialize the folder monitor."""
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.paperless_client = paperless_client or PaperlessClient(config)
        self.uploader = uploader or DocumentUploader(config, self.paperless_client, sleep=sleep)
        self.event_handler = ScanFileHandler(config, self.uploader, sleep=sleep)
        self.site_tag: Optional[int] = None
        self._shutdown = threading.Event()

    def start(self) -> None:
        """Prepare the folders and remote service, then poll until stopped."""
        try:
            self.logger.info(f"Starting folder monitor for: {self.config.watch_folder}")
            self.logger.info(f"File extensions: {', '.join(self.config.allowed_extensions)}")
            self.logger.info(f"Archive folder: {self.config.archive_folder}")
            self.logger.info(f"Failure folder: {self.config.failed_folder}")
            self.logger.info(f"Paperless-ngx URL: {self.config.paperless_url}")

            self.prepare()
            self._install_signal_handlers()

            self.logger.info(f"Polling every {self.config.poll_interval:g} seconds. Press Ctrl+C to stop.")
            try:
                self.run()
            except KeyboardInterrupt:
                self.logger.info("Received interrupt signal. Stopping...")
                self.stop()

        except Exception as e:
            self.logger.error(f"Error starting folder monitor: {e}")
            raise

    def prepare(self) -> None:
        """Create folders, check the connection and resolve the site tag once."""
        self.config.ensure_directories()

        # Advisory only, uploads retry on their own if the service is down
        self.paperless_client.test_connection()

        self.site_tag = self.paperless_client.resolve_tag(self.config.site_name)
        self.event_handler.tag_id = self.site_tag

    def run(self, shutdown: Optional[threading.Event] = None, max_cycles: Optional[int] = None) -> None:
        """
        Poll the watch folder until shutdown is set.

        Args:
            shutdown: Event that ends the loop when set; defaults to the
                monitor's own event, which stop() sets
            max_cycles: Stop after this many cycles instead of running forever
        """
        if shutdown is not None:
            self._shutdown = shutdown

        cycles = 0
        while not self._shutdown.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                self.logger.error(f"Error during poll cycle: {e}", exc_info=True)

            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self._shutdown.wait(self.config.poll_interval)

        self.logger.info("Folder monitoring stopped.")

    def run_cycle(self) -> List[Tuple[Path, FileOutcome]]:
        """
        Scan the watch folder once and process every candidate in order.

        Returns:
            The outcome of each processed file
        """
        scan = scan_watch_folder(self.config.watch_folder, self.config.allowed_extensions)
        for pattern, error in scan.errors:
            self.logger.error(f"Could not list '{pattern}' files in {self.config.watch_folder}: {error}")

        if not scan.files:
            self.logger.debug("No new files found")
            return []

        self.logger.info(f"Found {len(scan.files)} file(s) to process")
        outcomes = []
        for file_path in scan.files:
            if self._shutdown.is_set():
                break
            try:
                outcome = self.event_handler.process(file_path)
            except Exception as e:
                self.logger.error(f"Error processing file {file_path}: {e}", exc_info=True)
                continue
            outcomes.append((file_path, outcome))
        return outcomes

    def stop(self) -> None:
        """Ask the poll loop to stop after the current file."""
        self._shutdown.set()

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def _handle(signum, frame):
            self.logger.info(f"Received signal {signum}. Stopping...")
            self.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, _handle)
