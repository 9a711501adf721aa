"""Content Package - Configuration Loading, Validation and Hot Reload.

This package loads configuration files for the kiosk display, validates them
against JSON Schemas, caches the validated content and watches the files so
that consumers are notified when they change.

Modules:
    content_service: ContentService facade used by the display modules
    schema_registry: Named JSON Schemas loaded from a directory
    validator: Non-raising validation with flat error messages
    cache: Path-keyed cache of last-known-good content
    loader: Read + parse + retry + validate pipeline
    watcher: Per-path watches with debounced reloads
    events: Publish/subscribe event bus and event names
    errors: Error taxonomy

Usage:
    >>> from content import ContentService
    >>> service = ContentService()
    >>> service.initialize()
    >>> sponsors = service.load_configuration("data/sponsors.json", "sponsors-config")
"""
from .errors import (
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
    ContentServiceError,
    InitializationError,
    SchemaLoadError,
    UnsupportedFormatError,
)
from .events import EventEmitter
from .cache import ConfigurationCache, canonical_path
from .schema_registry import SchemaRegistry
from .validator import ValidationResult, validate_content
from .loader import ConfigurationLoader
from .watcher import FileWatcher, WatchHandle, WatchdogFileWatcher, WatchManager
from .content_service import ContentService

__all__ = [
    "ConfigurationCache",
    "ConfigurationFileNotFoundError",
    "ConfigurationLoader",
    "ConfigurationValidationError",
    "ContentService",
    "ContentServiceError",
    "EventEmitter",
    "FileWatcher",
    "InitializationError",
    "SchemaLoadError",
    "SchemaRegistry",
    "UnsupportedFormatError",
    "ValidationResult",
    "WatchHandle",
    "WatchManager",
    "WatchdogFileWatcher",
    "canonical_path",
    "validate_content",
]
