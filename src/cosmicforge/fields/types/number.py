"""Number field type handler."""

import math
from typing import Any

from cosmicforge.fields.base import BaseFieldTypeHandler
from cosmicforge.formula.values import normalize_number


class NumberFieldHandler(BaseFieldTypeHandler):
    """
    Handler for number field type.

    Form inputs arrive as strings, so numeric strings are accepted and
    converted. Whole numbers are stored as integers.
    """

    field_type = "number"

    @classmethod
    def serialize(cls, value: Any) -> Any:
        """Convert Python value to database-storable format."""
        if value is None:
            return None
        if isinstance(value, str):
            if not value.strip():
                return None
            value = value.strip()
        try:
            number = normalize_number(float(value))
        except (ValueError, TypeError, OverflowError):
            raise ValueError("Cannot convert value to number")
        # -0 is stored as 0
        return 0 if number == 0 else number

    @classmethod
    def deserialize(cls, value: Any) -> Any:
        """Convert database value to Python format."""
        if value is None:
            return None
        return normalize_number(float(value))

    @classmethod
    def validate(cls, value: Any, options: dict[str, Any] | None = None) -> bool:
        """
        Validate number field value.

        Args:
            value: Value to validate
            options: Unused for numbers

        Returns:
            True if valid

        Raises:
            ValueError: If validation fails
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return True

        if isinstance(value, bool):
            raise ValueError("Number field requires numeric value, got bool")

        try:
            num = float(value)
        except (ValueError, TypeError):
            raise ValueError(f"Number field requires numeric value, got {value}")
        except OverflowError:
            raise ValueError("Number field value is too large")

        if not math.isfinite(num):
            raise ValueError("Number field requires a finite value")

        return True

    @classmethod
    def default(cls) -> Any:
        """Get default value for number field."""
        return 0
