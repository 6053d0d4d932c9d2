"""Image field type handler."""

from typing import Any

from cosmicforge.fields.base import BaseFieldTypeHandler


class ImageFieldHandler(BaseFieldTypeHandler):
    """
    Handler for image field type.

    The value is a reference to an already uploaded image (its URL or
    upload path). Storing the file itself is the upload endpoint's job.
    """

    field_type = "image"

    @classmethod
    def serialize(cls, value: Any) -> Any:
        """Convert Python value to database-storable format."""
        if value is None or value == "":
            return None
        return str(value).strip()

    @classmethod
    def deserialize(cls, value: Any) -> Any:
        """Convert database value to Python format."""
        return value

    @classmethod
    def validate(cls, value: Any, options: dict[str, Any] | None = None) -> bool:
        """
        Validate image reference.

        Raises:
            ValueError: If the value is not a string reference
        """
        if value is None or value == "":
            return True

        if not isinstance(value, str):
            raise ValueError(f"Image field requires an image URL or path, got {type(value).__name__}")

        if any(ch in value for ch in "\n\r\0"):
            raise ValueError("Image reference contains invalid characters")

        return True

    @classmethod
    def default(cls) -> Any:
        """Get default value for image field."""
        return None
