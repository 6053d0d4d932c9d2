"""Computed field type handler.

Computed fields hold the value of a formula over the entity's other
fields. Users never enter them; the formula engine derives them when
the entity is created.
"""

import math
from typing import Any

from cosmicforge.fields.base import BaseFieldTypeHandler


class ComputedFieldHandler(BaseFieldTypeHandler):
    """
    Handler for computed fields.

    Storage format:
        Results are stored in their natural JSON type. NaN and infinite
        numbers have no JSON form and are stored as null; -0 is stored as 0.
    """

    field_type = "computed"

    @classmethod
    def serialize(cls, value: Any) -> Any:
        """
        Serialize formula result for storage.

        Args:
            value: Computed formula result

        Returns:
            JSON-serializable value
        """
        if isinstance(value, float) and not math.isfinite(value):
            return None

        if isinstance(value, float) and value == 0:
            return 0

        if isinstance(value, (list, tuple)):
            return [cls.serialize(v) for v in value]

        if isinstance(value, dict):
            return {k: cls.serialize(v) for k, v in value.items()}

        return value

    @classmethod
    def deserialize(cls, value: Any) -> Any:
        """Stored results are already in usable format."""
        return value

    @classmethod
    def validate(cls, value: Any, options: dict[str, Any] | None = None) -> bool:
        """
        Reject any submitted value.

        Raises:
            ValueError: Always; computed fields are read-only
        """
        raise ValueError("computed fields are read-only and cannot be set")

    @classmethod
    def default(cls) -> Any:
        """Computed fields have no default; the engine supplies the value."""
        return None

    @classmethod
    def is_computed(cls) -> bool:
        return True
