"""
Content Service - Configuration Loading and Hot Reload.

This module provides the single entry point used by the display modules
(branding, sponsor carousel, layout manager) to obtain validated
configuration and to be told when it changes. The service never renders
anything; it only manages the configuration data lifecycle.

Architecture:
    ContentService is an EventEmitter that wires together:
    - SchemaRegistry: JSON Schemas loaded at initialize()
    - ConfigurationCache: last validated content per canonical path
    - ConfigurationLoader: read + parse + retry + validate + cache
    - WatchManager: per-path watches with debounced reloads

Events:
    content-loaded    {filePath, schemaKey, content}
    content-updated   {filePath, schemaKey, content}
    validation-error  {filePath, schemaKey, error}
    content-error     {filePath, schemaKey, error}
    file-deleted      {filePath}
    file-changed      {filePath}   (watched without a schema key)
    watch-error       {filePath, error}

Usage:
    >>> from config import load_config
    >>> service = ContentService.from_config(load_config())
    >>> service.initialize()
    >>> service.on("content-updated", lambda event: print(event["filePath"]))
    >>> branding = service.load_configuration("data/branding.json", "branding-config")
    >>> service.watch_files("data/branding.json", schema_key="branding-config")
    ...
    >>> service.cleanup()

Error Handling:
    A direct load_configuration() call raises (see content.errors). Failures
    of watch-triggered reloads are reported through events and never raised.
    Neither path evicts the last-known-good cached value.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from config import get_content_settings
from content.cache import ConfigurationCache, canonical_path
from content.errors import ConfigurationValidationError, ContentServiceError
from content.events import CONTENT_UPDATED, EventEmitter
from content.loader import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY, ConfigurationLoader, get_parser
from content.schema_registry import SchemaRegistry
from content.validator import ValidationResult, validate_content
from content.watcher import DEFAULT_WATCH_DELAY, FileWatcher, WatchdogFileWatcher, WatchManager

logger = logging.getLogger(__name__)


class ContentService(EventEmitter):
    """Configuration and hot-reload service.

    Attributes:
        schemas_path: Schema directory used by initialize() (None means the
            bundled schemas)
        enable_caching: Default for load_configuration(use_cache=...)
        registry: Schema registry
        cache: Validated content cache
        loader: Configuration loader
        watch_manager: File watch manager

    Example:
        >>> service = ContentService(watch_delay=0.5, max_retries=2)
        >>> service.initialize()
        >>> service.get_available_schemas()
        ['branding-config', 'sponsors-config', 'system-config']
    """

    def __init__(
        self,
        schemas_path: Optional[Union[str, Path]] = None,
        watch_delay: float = DEFAULT_WATCH_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        enable_caching: bool = True,
        file_watcher: Optional[FileWatcher] = None,
        **watch_options: Any,
    ):
        """Create a content service.

        Args:
            schemas_path: Schema directory (defaults to the bundled schemas)
            watch_delay: Debounce window for file changes, in seconds
            max_retries: Additional attempts after a transient read failure
            retry_delay: Seconds between read attempts
            enable_caching: Whether loads return cached content by default
            file_watcher: OS watcher capability (defaults to watchdog)
            **watch_options: Passed to WatchManager (e.g. timer_factory)
        """
        super().__init__()
        self.schemas_path = schemas_path
        self.enable_caching = enable_caching
        self.registry = SchemaRegistry()
        self.cache = ConfigurationCache()
        self.loader = ConfigurationLoader(
            self.registry,
            self.cache,
            self,
            max_retries=max_retries,
            retry_delay=retry_delay,
        )
        self.watch_manager = WatchManager(
            self.loader,
            self.cache,
            self,
            file_watcher=file_watcher,
            watch_delay=watch_delay,
            **watch_options,
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ContentService":
        """Create a ContentService from the configuration dictionary.

        Reads the ``content`` section of config.yml (see
        config.get_content_settings for the accepted keys).

        Args:
            config: Configuration dictionary from config.yml

        Returns:
            Uninitialized ContentService

        Example:
            >>> from config import load_config
            >>> service = ContentService.from_config(load_config())
        """
        settings = get_content_settings(config)
        return cls(
            schemas_path=settings["schemas_directory"],
            watch_delay=settings["watch_delay"],
            max_retries=settings["max_retries"],
            retry_delay=settings["retry_delay"],
            enable_caching=settings["enable_caching"],
            file_watcher=WatchdogFileWatcher(use_polling=settings["use_polling"]),
        )

    def initialize(self, schemas_path: Optional[Union[str, Path]] = None) -> None:
        """Load the JSON Schemas.

        Raises:
            InitializationError: If the schema directory cannot be listed
            SchemaLoadError: If a schema file is malformed
        """
        directory = schemas_path if schemas_path is not None else self.schemas_path
        try:
            self.registry.initialize(directory)
        except ContentServiceError as e:
            logger.error(f"Failed to initialize ContentService: {e}")
            raise
        logger.info("ContentService initialized successfully")

    def get_available_schemas(self) -> List[str]:
        return self.registry.get_available_schemas()

    def validate_content(self, content: Any, schema_key: str) -> ValidationResult:
        """Validate content against a registered schema without raising."""
        return validate_content(self.registry, content, schema_key)

    def load_configuration(
        self,
        file_path: Union[str, Path],
        schema_key: Optional[str],
        use_cache: Optional[bool] = None,
    ) -> Any:
        """Load, validate and cache a configuration file.

        Args:
            file_path: Path to the configuration file
            schema_key: Schema to validate against
            use_cache: Return cached content when available (defaults to
                enable_caching)

        Returns:
            Validated configuration content

        Raises:
            ConfigurationFileNotFoundError, UnsupportedFormatError,
            ConfigurationValidationError, or the final transient read error
        """
        if use_cache is None:
            use_cache = self.enable_caching
        return self.loader.load(str(file_path), schema_key, use_cache=use_cache)

    def load_configuration_or_default(self, file_path: Union[str, Path], schema_key: str) -> Any:
        """Load a configuration file, degrading gracefully on failure.

        When loading fails for any reason, the last-known-good cached value
        is returned if one exists for the same schema key; otherwise the
        schema's default document.

        Args:
            file_path: Path to the configuration file
            schema_key: Schema to validate against

        Returns:
            Loaded, cached or default configuration content
        """
        try:
            return self.load_configuration(file_path, schema_key)
        except Exception as e:
            path = canonical_path(file_path)
            entry = self.cache.get_entry(path)
            if entry is not None and entry.schema_key == schema_key:
                logger.warning(f"Using last known good configuration for {path}: {e}")
                return entry.content
            logger.warning(f"Using default configuration for {path} ({schema_key}): {e}")
            return self.get_default_configuration(schema_key)

    def get_default_configuration(self, schema_key: str) -> Any:
        return self.registry.get_default_configuration(schema_key)

    def save_configuration(self, file_path: Union[str, Path], content: Any, schema_key: str) -> str:
        """Validate and write configuration content to disk.

        The format follows the file extension. Parent directories are
        created as needed and the cache is refreshed with the saved content.

        Args:
            file_path: Destination path
            content: Configuration content
            schema_key: Schema to validate against before writing

        Returns:
            Canonical path that was written

        Raises:
            ConfigurationValidationError: If the content is invalid (nothing
                is written)
            UnsupportedFormatError: If the extension has no serializer
        """
        path = canonical_path(file_path)
        get_parser(path)

        result = self.validate_content(content, schema_key)
        if not result.valid:
            raise ConfigurationValidationError(result.errors, schema_key)

        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            if path.lower().endswith((".yaml", ".yml")):
                yaml.safe_dump(content, f, sort_keys=False, allow_unicode=True)
            else:
                json.dump(content, f, indent=2, ensure_ascii=False)

        self.cache.set(path, content, schema_key)
        logger.info(f"Saved configuration: {path}")
        return path

    def watch_files(
        self,
        paths: Union[str, Path, Iterable[Union[str, Path]]],
        schema_key: Optional[str] = None,
    ) -> List[str]:
        """Watch files and reload them on change. See WatchManager.watch_files."""
        return self.watch_manager.watch_files(paths, schema_key=schema_key)

    def stop_watching(self, file_path: Optional[Union[str, Path]] = None) -> int:
        """Stop watching one file or, with no argument, every file."""
        return self.watch_manager.stop_watching(str(file_path) if file_path is not None else None)

    def get_watched_files(self) -> List[str]:
        return self.watch_manager.get_watched_files()

    def notify_change(self, file_path: Union[str, Path], content: Any, schema_key: Optional[str]) -> None:
        """Publish already-validated content as an update.

        Refreshes the cache for the path and emits "content-updated". The
        content is not re-validated and nothing is read from disk.
        """
        path = canonical_path(file_path)
        self.cache.set(path, content, schema_key)
        self.emit(CONTENT_UPDATED, {"filePath": path, "schemaKey": schema_key, "content": content})

    def get_cached_configuration(self, file_path: Union[str, Path]) -> Optional[Any]:
        return self.cache.get(canonical_path(file_path))

    def file_exists(self, file_path: Union[str, Path]) -> bool:
        """Return True if the path is an existing, readable file. Never raises."""
        try:
            path = canonical_path(file_path)
            return os.path.isfile(path) and os.access(path, os.R_OK)
        except (OSError, TypeError, ValueError):
            return False

    def clear_cache_for_file(self, file_path: Optional[Union[str, Path]] = None) -> None:
        """Drop the cache entry for a file, or the whole cache with no argument."""
        if file_path is None:
            self.cache.clear()
        else:
            self.cache.invalidate(canonical_path(file_path))

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def cleanup(self) -> None:
        """Release every resource held by the service.

        Cancels pending debounce timers, closes every watcher, empties the
        cache and removes all listeners. Safe to call more than once.
        """
        self.watch_manager.stop_watching()
        self.cache.clear()
        self.remove_all_listeners()
        logger.info("ContentService cleanup completed")
