"""Multiselect field type handler."""

from typing import Any

from cosmicforge.fields.types.select import SelectFieldHandler


class MultiSelectFieldHandler(SelectFieldHandler):
    """
    Handler for multiselect field type.

    Allows selection of several options from the template's option list.
    Options:
        - options: ordered list of allowed option strings
    """

    field_type = "multiselect"

    @classmethod
    def serialize(cls, value: Any) -> Any:
        """Convert Python value to database-storable format."""
        if value is None:
            return []
        if isinstance(value, str):
            # Single value provided as string
            return [value] if value else []
        if isinstance(value, (list, tuple)):
            # Keep first occurrence order
            return list(dict.fromkeys(str(v) for v in value))
        raise ValueError(f"Cannot convert {type(value).__name__} to multiselect value")

    @classmethod
    def deserialize(cls, value: Any) -> Any:
        """Convert database value to Python format."""
        if value is None:
            return []
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [value]
        return list(value)

    @classmethod
    def validate(cls, value: Any, options: dict[str, Any] | None = None) -> bool:
        """
        Validate multiselect field value.

        Args:
            value: Value to validate (list of option names)
            options: Optional dict with 'options', the allowed values

        Returns:
            True if valid

        Raises:
            ValueError: If validation fails
        """
        if value is None:
            return True

        if isinstance(value, str):
            value = [value] if value else []
        elif not isinstance(value, (list, tuple)):
            raise ValueError(f"Multiselect field requires list value, got {type(value).__name__}")

        choices = list((options or {}).get("options") or [])
        for item in value:
            cls._check_choice(item, choices)

        return True

    @classmethod
    def default(cls) -> Any:
        """Get default value for multiselect field."""
        return []
