"""Base class for field type handlers."""

from abc import ABC, abstractmethod
from typing import Any


class BaseFieldTypeHandler(ABC):
    """
    Base class for field type handlers.

    Each template field type (text, number, select, etc.) implements this
    class to provide serialization, deserialization, and validation of
    the values a user submits when creating an entity or location.

    Options:
        Handlers receive the field's type-specific settings as a dict,
        e.g. ``{"options": ["Fire", "Water"]}`` for select fields or
        ``{"formula": "attack * 2"}`` for computed fields.
    """

    field_type: str

    @classmethod
    @abstractmethod
    def serialize(cls, value: Any) -> Any:
        """
        Convert Python value to the JSON-storable format.

        Args:
            value: Python value to serialize

        Returns:
            JSON-serializable value
        """
        pass

    @classmethod
    @abstractmethod
    def deserialize(cls, value: Any) -> Any:
        """
        Convert stored value to Python format.

        Args:
            value: Stored value to deserialize

        Returns:
            Python value
        """
        pass

    @classmethod
    @abstractmethod
    def validate(cls, value: Any, options: dict[str, Any] | None = None) -> bool:
        """
        Validate value against field type requirements.

        Args:
            value: Value to validate
            options: Field type-specific options

        Returns:
            True if valid

        Raises:
            ValueError: If validation fails
        """
        pass

    @classmethod
    @abstractmethod
    def default(cls) -> Any:
        """
        Get default value for field type.

        Returns:
            Default value (JSON-serializable)
        """
        pass

    @classmethod
    def is_computed(cls) -> bool:
        """Whether values of this type are derived rather than entered."""
        return False
