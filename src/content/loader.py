"""
Configuration Loader.

Reads a configuration file from disk, parses it according to its extension,
validates it against a registered schema and stores the result in the cache.

Loading Pipeline:
    1. Cache lookup (same path and same schema key) -> return without I/O
    2. Existence check -> ConfigurationFileNotFoundError (terminal)
    3. Parser selection by extension -> UnsupportedFormatError (terminal)
    4. Read + parse, retrying transient failures (OSError, JSON/YAML syntax
       errors) up to max_retries more times with a fixed retry_delay
    5. Schema validation -> ConfigurationValidationError (terminal); the
       cache is left untouched so the last-known-good value survives
    6. Cache store + "content-loaded" event

Retry Policy:
    Only failures that might resolve on their own are retried: a file caught
    mid-write by an editor parses as truncated JSON, and SD-card backed
    filesystems on small display hardware occasionally return EIO. A missing
    file, an unknown extension or a schema violation will fail identically
    on every attempt, so they are surfaced immediately.

    Total attempts = 1 + max_retries. The exception from the final attempt
    is re-raised unchanged.
"""
import json
import logging
import os
import time
from typing import Any, Callable, Dict, Optional

import yaml

from content.cache import ConfigurationCache, canonical_path
from content.errors import (
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
    UnsupportedFormatError,
)
from content.events import CONTENT_LOADED, VALIDATION_ERROR, EventEmitter
from content.schema_registry import SchemaRegistry
from content.validator import validate_content

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds

# Failures worth another attempt
TRANSIENT_ERRORS = (OSError, json.JSONDecodeError, UnicodeDecodeError, yaml.YAMLError)


def _parse_json(text: str) -> Any:
    return json.loads(text)


def _parse_yaml(text: str) -> Any:
    return yaml.safe_load(text)


PARSERS: Dict[str, Callable[[str], Any]] = {
    ".json": _parse_json,
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
}


def get_parser(file_path: str) -> Callable[[str], Any]:
    """Return the parser for a file's extension.

    Raises:
        UnsupportedFormatError: If no parser handles the extension
    """
    extension = os.path.splitext(file_path)[1].lower()
    parser = PARSERS.get(extension)
    if parser is None:
        raise UnsupportedFormatError(extension)
    return parser


def is_readable_file(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.R_OK)


class ConfigurationLoader:
    """Loads, validates and caches configuration files.

    Attributes:
        registry: Schema registry used for validation
        cache: Cache that receives validated content
        events: Event bus for "content-loaded" and "validation-error"
        max_retries: Additional attempts after a transient failure
        retry_delay: Seconds to wait between attempts
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        cache: ConfigurationCache,
        events: EventEmitter,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.registry = registry
        self.cache = cache
        self.events = events
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    def load(self, file_path: str, schema_key: Optional[str], use_cache: bool = True) -> Any:
        """Load a configuration file.

        Args:
            file_path: Path to the file (any spelling; canonicalized here)
            schema_key: Schema to validate against
            use_cache: Return a cached value without I/O when one exists

        Returns:
            Parsed and validated content

        Raises:
            ConfigurationFileNotFoundError: File is missing or unreadable
            UnsupportedFormatError: Extension has no parser
            ConfigurationValidationError: Content violates the schema
            OSError, json.JSONDecodeError, yaml.YAMLError: Final transient
                failure after the retry budget is exhausted
        """
        path = canonical_path(file_path)

        if use_cache:
            entry = self.cache.get_entry(path)
            if entry is not None and entry.schema_key == schema_key:
                logger.debug(f"Returning cached configuration: {path}")
                return entry.content

        if not is_readable_file(path):
            logger.error(f"Configuration file not found: {path}")
            raise ConfigurationFileNotFoundError(path)

        parser = get_parser(path)
        content = self._read_with_retry(path, parser)

        result = validate_content(self.registry, content, schema_key)
        if not result.valid:
            error = ConfigurationValidationError(result.errors, schema_key)
            logger.error(f"Validation failed for {path} against '{schema_key}': {result.errors}")
            self.events.emit(
                VALIDATION_ERROR,
                {"filePath": path, "schemaKey": schema_key, "error": error},
            )
            raise error

        self.cache.set(path, content, schema_key)
        logger.info(f"Successfully loaded configuration: {path}")
        self.events.emit(
            CONTENT_LOADED,
            {"filePath": path, "schemaKey": schema_key, "content": content},
        )
        return content

    def _read_file(self, path: str) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def _read_with_retry(self, path: str, parser: Callable[[str], Any]) -> Any:
        attempt = 0
        while True:
            try:
                return parser(self._read_file(path))
            except FileNotFoundError as e:
                # Removed between the existence check and the read
                raise ConfigurationFileNotFoundError(path) from e
            except TRANSIENT_ERRORS as e:
                attempt += 1
                if attempt > self.max_retries:
                    logger.error(
                        f"Failed to load configuration {path} after {attempt} attempts: {e}"
                    )
                    raise
                logger.warning(
                    f"Retrying configuration load {path} "
                    f"(attempt {attempt}/{self.max_retries}): {e}"
                )
                self._sleep(self.retry_delay)
