"""
Error Taxonomy for the Content Service.

Every failure the content service raises derives from ContentServiceError so
callers can catch the whole family at once. The classes split into two
groups:

Terminal (never retried):
    InitializationError: Schema directory cannot be listed
    SchemaLoadError: A schema file is not valid JSON or not a valid schema
    ConfigurationFileNotFoundError: Target configuration file is missing
    UnsupportedFormatError: File extension has no registered parser
    ConfigurationValidationError: Parsed content violates its schema

Transient:
    Read and parse failures (OSError, json.JSONDecodeError, yaml.YAMLError)
    are retried by the loader and, once the retry budget is spent, re-raised
    unchanged. They are intentionally not wrapped here.
"""
from typing import List, Optional


class ContentServiceError(Exception):
    """Base class for all content service errors."""
    pass


class InitializationError(ContentServiceError):
    """Raised when the schema directory cannot be listed."""
    pass


class SchemaLoadError(ContentServiceError):
    """Raised when a schema file cannot be parsed or is not a valid schema.

    Attributes:
        schema_file: Path of the schema file that failed to load
    """

    def __init__(self, message: str, schema_file: Optional[str] = None):
        super().__init__(message)
        self.schema_file = schema_file


class ConfigurationFileNotFoundError(ContentServiceError, FileNotFoundError):
    """Raised when a configuration file is missing or inaccessible.

    Also a builtin FileNotFoundError, so ``except FileNotFoundError`` keeps
    working for callers that do not know about the content service.

    Attributes:
        file_path: Canonical path that was looked up
    """

    def __init__(self, file_path: str):
        super().__init__(f"Configuration file not found: {file_path}")
        self.file_path = file_path


class UnsupportedFormatError(ContentServiceError):
    """Raised when a file extension has no parser.

    Attributes:
        extension: The rejected extension, including the leading dot
    """

    def __init__(self, extension: str):
        super().__init__(f"Unsupported file format: {extension or '(none)'}")
        self.extension = extension


class ConfigurationValidationError(ContentServiceError):
    """Raised when parsed content fails schema validation.

    Attributes:
        errors: Every violation message, path-prefixed
        schema_key: Schema the content was validated against
    """

    def __init__(self, errors: List[str], schema_key: Optional[str] = None):
        super().__init__(f"Configuration validation failed: {', '.join(errors)}")
        self.errors = list(errors)
        self.schema_key = schema_key
