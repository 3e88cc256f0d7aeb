"""JSON Schema validation helpers for community and package configuration files.

Wraps jsonschema Draft7 validation and raises on the first error, reporting
the offending path.
"""

from __future__ import annotations

from typing import Any, Dict

from jsonschema import Draft7Validator

COMMUNITY_CONFIGURATION_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["communitySlug", "runtimeFrameworkMoniker", "packageNamespace"],
    "properties": {
        "communitySlug": {"type": "string", "pattern": "^[a-z0-9-]+$"},
        "runtimeFrameworkMoniker": {"type": "string", "minLength": 1},
        "packageNamespace": {"type": "string", "pattern": "^[A-Za-z0-9_]+$"},
    },
}

PACKAGE_CONFIGURATION_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["packageId"],
    "properties": {
        "packageId": {"type": "string", "minLength": 1},
    },
}


class SchemaError(ValueError):
    """Raised when data fails to validate against a provided schema."""


def validate(schema: Dict[str, Any], data: Any, source: str = "input") -> None:
    """Validate ``data`` strictly and raise on the first error.

    Args:
        schema: Draft-07 JSON Schema dict.
        data:   Parsed document to validate.
        source: Name used in the error message (usually a file path).
    """
    validator = Draft7Validator(schema)
    errs = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path])
        msg = f"Invalid {source} at '{path}': {first.message}"
        raise SchemaError(msg)
