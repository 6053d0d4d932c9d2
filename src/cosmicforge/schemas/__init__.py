"""Pydantic schemas for templates and formula results."""

from cosmicforge.schemas.computed import ComputedResult, FieldFailure
from cosmicforge.schemas.template import FieldSchema, FieldType, TemplateSchema

__all__ = [
    "ComputedResult",
    "FieldFailure",
    "FieldSchema",
    "FieldType",
    "TemplateSchema",
]
