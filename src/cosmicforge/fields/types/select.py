"""Select field type handler."""

from typing import Any

from cosmicforge.fields.base import BaseFieldTypeHandler


class SelectFieldHandler(BaseFieldTypeHandler):
    """
    Handler for select field type.

    Allows selection of one option from the template's option list.
    Options:
        - options: ordered list of allowed option strings
    """

    field_type = "select"

    @classmethod
    def serialize(cls, value: Any) -> Any:
        """Convert Python value to database-storable format."""
        if value is None or value == "":
            return None
        return str(value)

    @classmethod
    def deserialize(cls, value: Any) -> Any:
        """Convert database value to Python format."""
        if value is None:
            return None
        return str(value)

    @classmethod
    def _check_choice(cls, value: Any, choices: list[str]) -> None:
        if not isinstance(value, str):
            raise ValueError(
                f"Select field requires string value, got {type(value).__name__}"
            )
        if choices and value not in choices:
            raise ValueError(f"Invalid option '{value}'. Valid options: {', '.join(choices)}")

    @classmethod
    def validate(cls, value: Any, options: dict[str, Any] | None = None) -> bool:
        """
        Validate select field value.

        Args:
            value: Value to validate (option name)
            options: Optional dict with 'options', the allowed values.
                An empty list accepts any string.

        Returns:
            True if valid

        Raises:
            ValueError: If validation fails
        """
        if value is None or value == "":
            return True

        cls._check_choice(value, list((options or {}).get("options") or []))
        return True

    @classmethod
    def default(cls) -> Any:
        """Get default value for select field."""
        return None
