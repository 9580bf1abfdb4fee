"""
Main application for paperless-site-uploader.

This application polls a scanner output folder for new documents,
uploads each one to Paperless-ngx tagged with the site it came from,
and moves it to an archive or failure folder afterwards.
"""

import logging

from config import Config
from folder_monitor import FolderMonitor


def main() -> int:
    """Main entry point of the application."""
    try:
        config = Config()
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logging.getLogger(__name__).error(str(e))
        return 1

    config.setup_logging()

    try:
        monitor = FolderMonitor(config)
        monitor.start()

    except KeyboardInterrupt:
        logger = logging.getLogger(__name__)
        logger.info("\nApplication interrupted by user.")
        return 0
    except Exception as e:
        logger = logging.getLogger(__name__)
        logger.error(f"Application error: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
