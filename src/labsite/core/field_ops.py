"""Field schema, coercion, and validation for content records.

Each category declares a ``{field: FieldDef}`` table (see
``labsite.content.schemas``). The helpers here turn raw CLI strings into typed
values and check typed values against a FieldDef.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class FieldType(Enum):
    """Supported field types for record fields."""

    STRING = "string"
    INT = "int"
    BOOL = "bool"
    STRING_LIST = "string_list"
    LIST = "list"
    DICT = "dict"


@dataclass
class FieldDef:
    """Schema definition for a single field."""

    field_type: FieldType
    description: str
    choices: list[str] | None = None
    min_val: int | None = None
    max_val: int | None = None


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def parse_assignment(text: str) -> tuple[str, str]:
    """Split a ``field=value`` CLI assignment.

    Examples:
        "title=Intro to Crypto" -> ("title", "Intro to Crypto")
        "year=" -> ("year", "")

    Raises:
        ValueError: If there is no ``=`` or the field name is empty.
    """
    name, sep, value = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise ValueError(f"Expected field=value, got: {text!r}")
    return name, value


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def coerce_value(value_str: str, field_def: FieldDef) -> Any:
    """Coerce a string value to the field's expected type.

    Args:
        value_str: Raw string from CLI input.
        field_def: Schema definition for the target field.

    Returns:
        Coerced value.

    Raises:
        ValueError: If the value cannot be coerced.
    """
    ft = field_def.field_type

    if ft == FieldType.STRING:
        return value_str

    if ft == FieldType.INT:
        try:
            return int(value_str)
        except ValueError as e:
            raise ValueError(f"Expected integer, got: {value_str!r}") from e

    if ft == FieldType.BOOL:
        lower = value_str.lower()
        if lower in ("true", "yes", "1", "on"):
            return True
        if lower in ("false", "no", "0", "off"):
            return False
        raise ValueError(f"Expected boolean (true/false/yes/no/1/0/on/off), got: {value_str!r}")

    if ft == FieldType.STRING_LIST:
        # JSON array or comma-separated
        stripped = value_str.strip()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
                if isinstance(parsed, list):
                    return [str(item) for item in parsed]
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in value_str.split(",") if item.strip()]

    if ft in (FieldType.LIST, FieldType.DICT):
        expected = list if ft == FieldType.LIST else dict
        try:
            parsed = json.loads(value_str.strip())
        except json.JSONDecodeError as e:
            raise ValueError(f"Expected JSON {expected.__name__}, got: {value_str!r}") from e
        if not isinstance(parsed, expected):
            raise ValueError(f"Expected JSON {expected.__name__}, got: {value_str!r}")
        return parsed

    raise ValueError(f"Unknown field type: {ft}")


def coerce_untyped(value_str: str) -> Any:
    """Coerce a value for a field with no schema entry.

    ``"true"``/``"false"`` -> ``bool``; integers; JSON arrays/objects; else ``str``.
    """
    low = value_str.lower()
    if low == "true":
        return True
    if low == "false":
        return False
    try:
        return int(value_str)
    except ValueError:
        pass
    stripped = value_str.strip()
    if stripped[:1] in ("[", "{"):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            pass
    return value_str


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _matches_type(value: Any, field_type: FieldType) -> bool:
    if field_type == FieldType.STRING:
        return isinstance(value, str)
    if field_type == FieldType.INT:
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        # Form inputs store numbers as strings
        return isinstance(value, str) and value.strip().lstrip("-").isdigit()
    if field_type == FieldType.BOOL:
        return isinstance(value, bool)
    if field_type == FieldType.STRING_LIST:
        return isinstance(value, list) and all(isinstance(item, str) for item in value)
    if field_type == FieldType.LIST:
        return isinstance(value, list)
    if field_type == FieldType.DICT:
        return isinstance(value, dict)
    return False


def validate_field(field: str, value: Any, schema: dict[str, FieldDef]) -> list[str]:
    """Validate a typed field value against a schema.

    Fields absent from the schema are accepted as-is.

    Returns:
        List of error messages (empty if valid).
    """
    field_def = schema.get(field)
    if field_def is None:
        return []

    if not _matches_type(value, field_def.field_type):
        return [f"{field}: expected {field_def.field_type.value}, got {type(value).__name__}."]

    errors: list[str] = []
    if field_def.field_type == FieldType.INT:
        number = int(value)
        if field_def.min_val is not None and number < field_def.min_val:
            errors.append(f"{field}: value {number} is below minimum {field_def.min_val}.")
        if field_def.max_val is not None and number > field_def.max_val:
            errors.append(f"{field}: value {number} is above maximum {field_def.max_val}.")

    if field_def.choices is not None and isinstance(value, str) and value not in field_def.choices:
        errors.append(f"{field}: {value!r} is not a valid choice. Options: {', '.join(field_def.choices)}.")

    return errors
