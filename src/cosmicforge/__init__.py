"""
Cosmic Forge - worldbuilding templates with computed fields.

Templates describe the fields an entity or location carries. Computed
fields derive their value from a sandboxed formula over the entity's
other fields.
"""

__version__ = "0.1.0"

from cosmicforge.formula import evaluate
from cosmicforge.schemas import ComputedResult, FieldFailure, FieldSchema, TemplateSchema

__all__ = [
    "__version__",
    "evaluate",
    "ComputedResult",
    "FieldFailure",
    "FieldSchema",
    "TemplateSchema",
]
