"""JSON Schema validation utilities."""

import copy
import re
from typing import Any

from jsonschema import Draft7Validator, ValidationError

_REQUIRED_MESSAGE = re.compile(r"^'(?P<name>[^']+)' is a required property")


def _error_path(error: ValidationError) -> str:
    """Dotted path of the offending field, including missing required ones."""
    parts = [str(p) for p in error.absolute_path]
    if error.validator == "required":
        match = _REQUIRED_MESSAGE.match(error.message)
        if match:
            parts.append(match.group("name"))
    return ".".join(parts) or "(root)"


def validate_schema(data: Any, schema: dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate data against a JSON Schema.

    All violations are collected, not just the first one. Each message has
    the form ``<path> (<kind>): <reason>``.

    Args:
        data: The data to validate
        schema: JSON Schema to validate against

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    if not schema:
        return True, []

    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])

    if not errors:
        return True, []

    error_messages = [
        f"{_error_path(e)} ({e.validator}): {e.message}"
        for e in errors
    ]

    return False, error_messages


def apply_defaults(data: dict[str, Any], schema: dict[str, Any]) -> dict[str, Any]:
    """
    Return a copy of ``data`` with top-level schema defaults filled in.

    Only absent properties receive their default; explicit values, including
    None, are left untouched.
    """
    result = dict(data)
    for name, prop in (schema.get("properties") or {}).items():
        if name not in result and isinstance(prop, dict) and "default" in prop:
            result[name] = copy.deepcopy(prop["default"])
    return result
