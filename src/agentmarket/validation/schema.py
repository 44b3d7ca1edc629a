"""Validation of user inputs against an agent's input schema.

The validator is a pure function of (schema, inputs): it never mutates the
inputs and collects every violation instead of stopping at the first one,
leaving it to the caller to decide whether the result is fatal.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import urlsplit

from agentmarket.agents.errors import InputValidationError
from agentmarket.agents.models import FieldDefinition, FieldType

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Schemes that are only meaningful with a host part
HOST_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})

# HTML input types used by the form renderers
_FORM_INPUT_TYPES: dict[FieldType, str] = {
    FieldType.STRING: "text",
    FieldType.TEXT: "textarea",
    FieldType.URL: "url",
    FieldType.EMAIL: "email",
    FieldType.NUMBER: "number",
    FieldType.DROPDOWN: "select",
    FieldType.PASSWORD: "password",
    FieldType.FILE: "file",
}


@dataclass
class ValidationResult:
    """Outcome of validating inputs against a schema.

    Attributes:
        is_valid: True when no errors were found
        errors: Every violation, in schema order
        warnings: Non-fatal observations
    """

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def is_empty(value: Any) -> bool:
    """A value counts as missing when it is absent, None or an empty string."""
    return value is None or value == ""


def is_numeric(value: Any) -> bool:
    """Check whether a value is a number or a string that parses as one."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        try:
            return not math.isnan(float(value.strip()))
        except ValueError:
            return False
    return False


def is_valid_url(value: Any) -> bool:
    """Check whether a value is an absolute URI.

    Web schemes need a host; other schemes such as ``mailto:a@b.c`` or
    ``urn:isbn:1`` only need the scheme.
    """
    if not isinstance(value, str):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme:
        return False
    if parts.scheme in HOST_SCHEMES:
        return bool(parts.netloc)
    return True


def is_valid_email(value: Any) -> bool:
    """Check a value against the marketplace's email shape."""
    return isinstance(value, str) and EMAIL_PATTERN.match(value) is not None


class SchemaValidator:
    """Validates user inputs against a list of field definitions.

    Example:
        >>> validator = SchemaValidator()
        >>> schema = [FieldDefinition(name="color", type="dropdown",
        ...                           options=["red", "blue"], required=True)]
        >>> result = validator.validate(schema, {"color": "green"})
        >>> result.is_valid
        False
        >>> result.errors
        ['color must be one of: red, blue']
    """

    def validate(
        self, schema: Sequence[FieldDefinition], inputs: Mapping[str, Any]
    ) -> ValidationResult:
        """Validate inputs against the schema.

        Args:
            schema: The agent's input schema
            inputs: User-provided values keyed by field name

        Returns:
            ValidationResult aggregating all violations
        """
        errors: list[str] = []
        warnings: list[str] = []

        known_fields = {f.name for f in schema}
        for key in inputs:
            if key not in known_fields:
                warnings.append(f"Unexpected input field: {key}")

        for field_def in schema:
            value = inputs.get(field_def.name)

            if is_empty(value):
                if field_def.required:
                    errors.append(f"Missing required field: {field_def.display_label}")
                continue

            errors.extend(self._check_value(field_def, value))

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def _check_value(self, field_def: FieldDefinition, value: Any) -> list[str]:
        """Run the type-specific checks for one present value."""
        label = field_def.display_label
        errors: list[str] = []

        if field_def.type in (FieldType.STRING, FieldType.TEXT):
            if not isinstance(value, str):
                return [f"{label} must be a string"]
            if field_def.min_length is not None and len(value) < field_def.min_length:
                errors.append(f"{label} must be at least {field_def.min_length} characters")
            if field_def.max_length is not None and len(value) > field_def.max_length:
                errors.append(f"{label} must be {field_def.max_length} characters or less")

        elif field_def.type == FieldType.NUMBER:
            if not is_numeric(value):
                errors.append(f"{label} must be a number")

        elif field_def.type == FieldType.URL:
            if not is_valid_url(value):
                errors.append(f"{label} must be a valid URL")

        elif field_def.type == FieldType.EMAIL:
            if not is_valid_email(value):
                errors.append(f"{label} must be a valid email address")

        elif field_def.type == FieldType.DROPDOWN:
            options = field_def.options or []
            if value not in options:
                errors.append(f"{label} must be one of: {', '.join(options)}")

        if field_def.pattern and isinstance(value, str):
            if re.search(field_def.pattern, value) is None:
                errors.append(f"{label} does not match the required pattern")

        return errors


_default_validator = SchemaValidator()


def validate(schema: Sequence[FieldDefinition], inputs: Mapping[str, Any]) -> ValidationResult:
    """Validate inputs with the default validator."""
    return _default_validator.validate(schema, inputs)


def validate_input(schema: Sequence[FieldDefinition], inputs: Mapping[str, Any]) -> None:
    """Validate inputs and raise on any violation.

    Args:
        schema: The agent's input schema
        inputs: User-provided values

    Raises:
        InputValidationError: With the aggregated message when invalid
    """
    result = _default_validator.validate(schema, inputs)
    if not result.is_valid:
        raise InputValidationError(result.errors)


def generate_sample_input(schema: Sequence[FieldDefinition]) -> dict[str, Any]:
    """Build sample values for every required field of a schema.

    ``test_example`` wins when the creator supplied one.
    """
    sample: dict[str, Any] = {}
    for field_def in schema:
        if not field_def.required:
            continue
        if field_def.test_example not in (None, ""):
            sample[field_def.name] = field_def.test_example
            continue

        if field_def.type == FieldType.URL:
            sample[field_def.name] = "https://example.com"
        elif field_def.type == FieldType.EMAIL:
            sample[field_def.name] = "user@example.com"
        elif field_def.type == FieldType.NUMBER:
            sample[field_def.name] = 42
        elif field_def.type == FieldType.DROPDOWN:
            sample[field_def.name] = (field_def.options or ["option1"])[0]
        else:
            sample[field_def.name] = f"Sample {field_def.display_label}"
    return sample


def map_field_type(field_type: FieldType) -> str:
    """Map a schema field type to an HTML input type."""
    return _FORM_INPUT_TYPES.get(field_type, "text")


def get_field_config(field_def: FieldDefinition) -> dict[str, Optional[Any]]:
    """Build the form configuration for a single field."""
    readable = field_def.name.replace("_", " ")
    config: dict[str, Optional[Any]] = {
        "name": field_def.name,
        "type": map_field_type(field_def.type),
        "required": field_def.required,
        "label": field_def.label or readable.title(),
        "placeholder": field_def.placeholder or f"Enter {readable}",
        "description": field_def.description,
    }
    if field_def.type == FieldType.DROPDOWN and field_def.options:
        config["options"] = list(field_def.options)
    return config
