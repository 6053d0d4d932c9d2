"""Field type handlers for Cosmic Forge templates.

Each template field type has a handler implementing serialization,
deserialization, and validation of the values users submit.
"""

from cosmicforge.fields.base import BaseFieldTypeHandler
from cosmicforge.fields.types.boolean import BooleanFieldHandler
from cosmicforge.fields.types.computed import ComputedFieldHandler
from cosmicforge.fields.types.image import ImageFieldHandler
from cosmicforge.fields.types.multiselect import MultiSelectFieldHandler
from cosmicforge.fields.types.number import NumberFieldHandler
from cosmicforge.fields.types.select import SelectFieldHandler
from cosmicforge.fields.types.text import TextFieldHandler

# Registry of field type handlers
FIELD_HANDLERS: dict[str, type[BaseFieldTypeHandler]] = {
    TextFieldHandler.field_type: TextFieldHandler,
    NumberFieldHandler.field_type: NumberFieldHandler,
    BooleanFieldHandler.field_type: BooleanFieldHandler,
    SelectFieldHandler.field_type: SelectFieldHandler,
    MultiSelectFieldHandler.field_type: MultiSelectFieldHandler,
    ImageFieldHandler.field_type: ImageFieldHandler,
    ComputedFieldHandler.field_type: ComputedFieldHandler,
}


def get_field_handler(field_type: str) -> type[BaseFieldTypeHandler] | None:
    """
    Get field handler for given field type.

    Args:
        field_type: Field type identifier

    Returns:
        Field handler class or None if not found
    """
    return FIELD_HANDLERS.get(str(getattr(field_type, "value", field_type)))


def register_field_handler(handler: type[BaseFieldTypeHandler]) -> None:
    """
    Register a new field handler.

    Args:
        handler: Field handler class to register
    """
    FIELD_HANDLERS[handler.field_type] = handler


def list_field_types() -> list[str]:
    """
    List all registered field types.

    Returns:
        List of field type identifiers
    """
    return list(FIELD_HANDLERS.keys())


__all__ = [
    "BaseFieldTypeHandler",
    "FIELD_HANDLERS",
    "get_field_handler",
    "register_field_handler",
    "list_field_types",
    "TextFieldHandler",
    "NumberFieldHandler",
    "BooleanFieldHandler",
    "SelectFieldHandler",
    "MultiSelectFieldHandler",
    "ImageFieldHandler",
    "ComputedFieldHandler",
]
