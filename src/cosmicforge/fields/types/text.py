"""Text field type handler."""

from typing import Any

from cosmicforge.fields.base import BaseFieldTypeHandler


class TextFieldHandler(BaseFieldTypeHandler):
    """Handler for text field type. Numbers are accepted and stored as text."""

    field_type = "text"

    @classmethod
    def serialize(cls, value: Any) -> Any:
        """Convert Python value to database-storable format."""
        if value is None:
            return None
        return str(value)

    @classmethod
    def deserialize(cls, value: Any) -> Any:
        """Convert database value to Python format."""
        if value is None:
            return None
        return str(value)

    @classmethod
    def validate(cls, value: Any, options: dict[str, Any] | None = None) -> bool:
        """
        Validate text field value.

        Args:
            value: Value to validate
            options: Unused for text

        Returns:
            True if valid

        Raises:
            ValueError: If validation fails
        """
        if value is None:
            return True

        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError(f"Text field requires string value, got {type(value).__name__}")

        return True

    @classmethod
    def default(cls) -> Any:
        """Get default value for text field."""
        return ""
