"""
JSON Schema Registry.

Loads every JSON Schema document from a directory once, at initialization,
and indexes it by a schema key derived from the file name:

    branding-config.schema.json  ->  branding-config
    sponsors.json                ->  sponsors

Design Principles:
    1. Load Once: Schemas are read during initialize(), never on lookup
    2. Fail Fast: A missing directory or a malformed schema aborts
       initialization with a clear error naming the offending file
    3. All or Nothing: A failed initialize() leaves the registry empty,
       never partially populated
    4. Read Only: Registered schemas are not modified after loading

The bundled schemas live in the ``schemas/`` directory next to this module.
The path is resolved using __file__ so it works regardless of the current
working directory.
"""
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from content.errors import InitializationError, SchemaLoadError

logger = logging.getLogger(__name__)

# Bundled schema directory (branding-config, sponsors-config, system-config)
SCHEMA_DIR = Path(__file__).parent / "schemas"

SCHEMA_FILE_SUFFIX = ".schema.json"


def schema_key_for(filename: str) -> str:
    """Derive the schema key from a schema file name.

    Args:
        filename: Base name of the schema file

    Returns:
        File name without the ``.schema.json`` suffix, or without its
        extension for any other file

    Example:
        >>> schema_key_for("branding-config.schema.json")
        'branding-config'
        >>> schema_key_for("system.json")
        'system'
    """
    if filename.endswith(SCHEMA_FILE_SUFFIX):
        return filename[: -len(SCHEMA_FILE_SUFFIX)]
    return os.path.splitext(filename)[0]


def _load_schema(schema_path: Path) -> Dict[str, Any]:
    """Load and check one JSON schema file.

    Args:
        schema_path: Full path to the schema file

    Returns:
        Parsed schema document

    Raises:
        SchemaLoadError: If the file cannot be read, is not valid JSON, or is
            not a valid JSON Schema for its declared draft
    """
    try:
        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)
    except json.JSONDecodeError as e:
        raise SchemaLoadError(
            f"Invalid JSON in schema file {schema_path.name}: "
            f"{e.msg} (line {e.lineno}, column {e.colno})",
            str(schema_path),
        ) from e
    except OSError as e:
        raise SchemaLoadError(
            f"Failed to read schema file {schema_path.name}: {e}",
            str(schema_path),
        ) from e

    if not isinstance(schema, (dict, bool)):
        raise SchemaLoadError(
            f"Schema file {schema_path.name} must contain a JSON object",
            str(schema_path),
        )

    try:
        validator_for(schema, default=Draft7Validator).check_schema(schema)
    except SchemaError as e:
        raise SchemaLoadError(
            f"Invalid JSON Schema in {schema_path.name}: {e.message}",
            str(schema_path),
        ) from e

    return schema


class SchemaRegistry:
    """Named JSON Schemas loaded from a directory.

    Attributes:
        schema_directory: Directory the schemas were loaded from (None until
            initialize() succeeds)

    Example:
        >>> registry = SchemaRegistry()
        >>> registry.initialize()
        >>> registry.get_available_schemas()
        ['branding-config', 'sponsors-config', 'system-config']
    """

    def __init__(self):
        self._schemas: Dict[str, Dict[str, Any]] = {}
        self._validators: Dict[str, Any] = {}
        self.schema_directory: Optional[Path] = None

    @property
    def initialized(self) -> bool:
        return self.schema_directory is not None

    def initialize(self, schema_directory: Optional[Union[str, Path]] = None) -> None:
        """Load every ``*.json`` file in a directory as a schema.

        Files are registered in name order. Files with other extensions are
        ignored. Re-initializing replaces the previous set of schemas.

        Args:
            schema_directory: Directory holding the schema files (defaults
                to the bundled schemas)

        Raises:
            InitializationError: If the directory cannot be listed
            SchemaLoadError: If any schema file fails to load
        """
        directory = Path(schema_directory) if schema_directory is not None else SCHEMA_DIR

        try:
            filenames = sorted(os.listdir(directory))
        except OSError as e:
            self.clear()
            raise InitializationError(
                f"Failed to list schema directory {directory}: {e}"
            ) from e

        loaded: Dict[str, Dict[str, Any]] = {}
        try:
            for filename in filenames:
                schema_path = directory / filename
                if not filename.endswith(".json") or not schema_path.is_file():
                    continue
                key = schema_key_for(filename)
                loaded[key] = _load_schema(schema_path)
                logger.debug(f"Loaded schema: {key}")
        except SchemaLoadError as e:
            self.clear()
            logger.error(f"Failed to load schemas from {directory}: {e}")
            raise

        self._schemas = loaded
        self._validators = {
            key: validator_for(schema, default=Draft7Validator)(
                schema, format_checker=FormatChecker()
            )
            for key, schema in loaded.items()
        }
        self.schema_directory = directory
        logger.info(f"Loaded {len(loaded)} schemas from {directory}")

    def get_available_schemas(self) -> List[str]:
        """Return registered schema keys in registration order."""
        return list(self._schemas.keys())

    def get_schema(self, schema_key: str) -> Optional[Dict[str, Any]]:
        """Return the schema document for a key, or None if unknown."""
        return self._schemas.get(schema_key)

    def has_schema(self, schema_key: str) -> bool:
        return schema_key in self._schemas

    def get_default_configuration(self, schema_key: str) -> Any:
        """Return a copy of the ``default`` document declared by a schema.

        Args:
            schema_key: Registered schema key

        Returns:
            Deep copy of the schema's top-level ``default`` value, or an empty
            dict when the schema is unknown or declares no default
        """
        schema = self._schemas.get(schema_key)
        if not isinstance(schema, dict) or "default" not in schema:
            return {}
        return copy.deepcopy(schema["default"])

    def get_validator(self, schema_key: str) -> Optional[Any]:
        """Return the compiled jsonschema validator for a key, or None."""
        return self._validators.get(schema_key)

    def clear(self) -> None:
        self._schemas = {}
        self._validators = {}
        self.schema_directory = None
