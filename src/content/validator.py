"""
Content Validation Against Registered Schemas.

Wraps jsonschema so that validation never raises for bad content: the caller
gets a ValidationResult holding a pass/fail flag and every violation as a
flat, human-readable string. All violations are collected, not just the first.

Message Format:
    "<instance path>: <jsonschema message>"

    The instance path is "root" for the document itself, otherwise a JSON
    pointer to the failing value:

    root: 'sponsors' is a required property
    /logo/position: 'middle' is not one of ['top-left', 'top-right']
    /sponsors/0/active: 'yes' is not of type 'boolean'
"""
from dataclasses import dataclass, field
from typing import Any, List

from jsonschema.exceptions import ValidationError

from content.schema_registry import SchemaRegistry


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one document."""

    valid: bool
    errors: List[str] = field(default_factory=list)


def format_instance_path(error: ValidationError) -> str:
    """Render the location of a jsonschema error as a JSON pointer."""
    if not error.absolute_path:
        return "root"
    return "".join(f"/{part}" for part in error.absolute_path)


def format_error(error: ValidationError) -> str:
    return f"{format_instance_path(error)}: {error.message}"


def validate_content(registry: SchemaRegistry, content: Any, schema_key: str) -> ValidationResult:
    """Validate content against a registered schema.

    An unknown schema key is reported as a failed result rather than raised.

    Args:
        registry: Initialized schema registry
        content: Parsed JSON-compatible value
        schema_key: Key of the schema to validate against

    Returns:
        ValidationResult with every violation, ordered by instance path

    Example:
        >>> result = validate_content(registry, {}, "sponsors-config")
        >>> result.valid
        False
        >>> result.errors[0]
        "root: 'sponsors' is a required property"
    """
    validator = registry.get_validator(schema_key)
    if validator is None:
        return ValidationResult(valid=False, errors=[f"Schema not found: {schema_key}"])

    violations = sorted(
        validator.iter_errors(content),
        key=lambda e: [str(part) for part in e.absolute_path],
    )
    if not violations:
        return ValidationResult(valid=True, errors=[])

    return ValidationResult(valid=False, errors=[format_error(e) for e in violations])
