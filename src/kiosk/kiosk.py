"""
Kiosk Content Service Runner.

This module provides the process entry point that keeps the display's
configuration current:
1. Configures logging from config.yml
2. Creates the ContentService from the ``content`` section
3. Loads the JSON Schemas
4. Loads every configured content file once (falling back to last-known-good
   or schema defaults when a file is broken)
5. Watches those files and logs every change notification
6. Blocks until SIGINT/SIGTERM, then releases all watchers

Display modules in the same process subscribe to the service's events; the
runner itself only logs them.

Example:
    $ poetry run kiosk-content
    2025-01-15 10:00:00,000 - content.schema_registry - INFO - Loaded 3 schemas from ...
    2025-01-15 10:00:00,010 - content.watcher - INFO - Started watching file: /srv/kiosk/data/branding.json

Environment:
    KIOSK_DEBUG: Set to true/1/yes for DEBUG logging (same as --debug)
"""
import logging
import os
import signal
import sys
import threading
from typing import Any, Dict, List

from config import configure_logging, get_content_settings, load_config
from content import ContentService, canonical_path
from content.events import (
    CONTENT_ERROR,
    CONTENT_LOADED,
    CONTENT_UPDATED,
    FILE_CHANGED,
    FILE_DELETED,
    VALIDATION_ERROR,
    WATCH_ERROR,
)

logger = logging.getLogger(__name__)


def _subscribe_event_logging(service: ContentService) -> None:
    """Log every service event so operators can follow reloads in the log."""
    service.on(CONTENT_LOADED, lambda e: logger.info(f"Loaded {e['filePath']} ({e['schemaKey']})"))
    service.on(CONTENT_UPDATED, lambda e: logger.info(f"Updated {e['filePath']} ({e['schemaKey']})"))
    service.on(FILE_CHANGED, lambda e: logger.info(f"Changed {e['filePath']}"))
    service.on(FILE_DELETED, lambda e: logger.warning(f"Deleted {e['filePath']}"))
    service.on(VALIDATION_ERROR, lambda e: logger.error(f"Invalid {e['filePath']}: {e['error']}"))
    service.on(CONTENT_ERROR, lambda e: logger.error(f"Reload failed for {e['filePath']}: {e['error']}"))
    service.on(WATCH_ERROR, lambda e: logger.error(f"Watch failed for {e['filePath']}: {e['error']}"))


def run_service(
    service: ContentService,
    watch_entries: List[Dict[str, Any]],
    stop_event: threading.Event,
) -> Dict[str, Any]:
    """Initialize the service, load and watch files, and block until stopped.

    Args:
        service: Uninitialized ContentService
        watch_entries: List of {"path", "schema_key"} dicts
        stop_event: Set to make the function clean up and return

    Returns:
        Mapping of canonical path to the content that was loaded at startup
        (entries without a schema key are watched but not loaded)
    """
    service.initialize()
    _subscribe_event_logging(service)

    initial = {}
    try:
        for entry in watch_entries:
            path = entry["path"]
            schema_key = entry.get("schema_key")
            if schema_key:
                initial[canonical_path(path)] = service.load_configuration_or_default(path, schema_key)
            service.watch_files(path, schema_key=schema_key)

        logger.info(f"Watching {len(service.get_watched_files())} configuration file(s)")
        stop_event.wait()
    finally:
        service.cleanup()

    return initial


def main(debug: bool = False) -> None:
    """Main entry point for the kiosk-content console command.

    Args:
        debug: Enable DEBUG logging. Can also be set via --debug or the
               KIOSK_DEBUG environment variable.
    """
    if not debug:
        debug = os.environ.get("KIOSK_DEBUG", "").lower() in ("true", "1", "yes")
        if "--debug" in sys.argv[1:]:
            debug = True

    config = load_config()
    configure_logging(config, debug=debug)
    if debug:
        logger.info("Debug mode enabled")

    settings = get_content_settings(config)
    service = ContentService.from_config(config)

    stop_event = threading.Event()

    def _request_stop(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop_event.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    run_service(service, settings["watch"], stop_event)


# Allow running as a script for development/testing
if __name__ == "__main__":
    main()
