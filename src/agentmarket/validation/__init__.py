"""Input validation against agent schemas."""

from agentmarket.validation.schema import (
    SchemaValidator,
    ValidationResult,
    generate_sample_input,
    get_field_config,
    map_field_type,
    validate,
    validate_input,
)

__all__ = [
    "SchemaValidator",
    "ValidationResult",
    "generate_sample_input",
    "get_field_config",
    "map_field_type",
    "validate",
    "validate_input",
]
