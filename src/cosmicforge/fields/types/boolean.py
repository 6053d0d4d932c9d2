"""Boolean field type handler."""

from typing import Any

from cosmicforge.fields.base import BaseFieldTypeHandler

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}


class BooleanFieldHandler(BaseFieldTypeHandler):
    """Handler for boolean (checkbox) field type."""

    field_type = "boolean"

    @classmethod
    def serialize(cls, value: Any) -> Any:
        """Convert Python value to database-storable format."""
        if value is None:
            return False
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_STRINGS
        return bool(value)

    @classmethod
    def deserialize(cls, value: Any) -> Any:
        """Convert database value to Python format."""
        if value is None:
            return False
        return bool(value)

    @classmethod
    def validate(cls, value: Any, options: dict[str, Any] | None = None) -> bool:
        """
        Validate boolean field value.

        Args:
            value: Value to validate
            options: Not used for boolean

        Returns:
            True if valid

        Raises:
            ValueError: If validation fails
        """
        if value is None or isinstance(value, bool):
            return True

        if isinstance(value, int) and value in (0, 1):
            return True

        if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS | _FALSE_STRINGS:
            return True

        raise ValueError(f"Boolean field requires true or false, got {value!r}")

    @classmethod
    def default(cls) -> Any:
        """Get default value for boolean field."""
        return False
