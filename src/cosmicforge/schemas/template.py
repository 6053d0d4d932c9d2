"""Template schemas describing the fields an entity or location carries."""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class FieldType(str, Enum):
    """Field types a template author can choose from."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    MULTISELECT = "multiselect"
    COMPUTED = "computed"
    IMAGE = "image"


# Older templates were saved with "string" for plain text fields
FIELD_TYPE_ALIASES = {"string": FieldType.TEXT}

OPTION_FIELD_TYPES = {FieldType.SELECT, FieldType.MULTISELECT}

# Formulas reference fields by bare name, so names follow the identifier syntax
FIELD_NAME_PATTERN = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")

# Literal keywords and the Math namespace can never resolve to a field
RESERVED_FIELD_NAMES = frozenset({"true", "false", "null", "undefined", "Math"})


class FieldSchema(BaseModel):
    """One field of a template."""

    name: str = Field(..., min_length=1, max_length=255, description="Field name")
    type: FieldType = Field(..., description="Field type")
    options: Optional[list[str]] = Field(
        None, description="Allowed values (select and multiselect only)"
    )
    formula: Optional[str] = Field(None, description="Formula source (computed only)")

    model_config = {"frozen": True}

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not FIELD_NAME_PATTERN.fullmatch(v):
            raise ValueError(
                f"Field name '{v}' must start with a letter, _ or $ and contain "
                "only letters, digits, _ and $"
            )
        if v in RESERVED_FIELD_NAMES:
            raise ValueError(f"Field name '{v}' is reserved")
        return v

    @field_validator("type", mode="before")
    @classmethod
    def resolve_type_alias(cls, v: Any) -> Any:
        if isinstance(v, str):
            return FIELD_TYPE_ALIASES.get(v.strip().lower(), v.strip().lower())
        return v

    @field_validator("options", mode="before")
    @classmethod
    def split_options(cls, v: Any) -> Any:
        """Accept the comma-separated form the template editor produces."""
        if isinstance(v, str):
            return [opt.strip() for opt in v.split(",") if opt.strip()]
        return v

    @model_validator(mode="after")
    def check_type_specific_attributes(self) -> "FieldSchema":
        if self.type == FieldType.COMPUTED:
            if self.formula is None or not self.formula.strip():
                raise ValueError(f"Computed field '{self.name}' requires a formula")
        elif self.formula is not None:
            raise ValueError(f"Only computed fields may have a formula ('{self.name}')")

        if self.type not in OPTION_FIELD_TYPES and self.options:
            raise ValueError(
                f"Only select and multiselect fields may have options ('{self.name}')"
            )
        return self

    @property
    def is_computed(self) -> bool:
        return self.type == FieldType.COMPUTED


class TemplateSchema(BaseModel):
    """
    Ordered field list of an entity or location template.

    Field order is the author's display order; it has no bearing on the
    order in which computed fields are evaluated.
    """

    name: str = Field(default="", max_length=255, description="Template name")
    fields: list[FieldSchema] = Field(default_factory=list, description="Template fields")

    model_config = {"frozen": True}

    @field_validator("fields")
    @classmethod
    def check_unique_names(cls, v: list[FieldSchema]) -> list[FieldSchema]:
        seen: set[str] = set()
        duplicates: list[str] = []
        for field in v:
            if field.name in seen:
                duplicates.append(field.name)
            seen.add(field.name)
        if duplicates:
            raise ValueError(f"Duplicate field names: {', '.join(sorted(set(duplicates)))}")
        return v

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def computed_fields(self) -> list[FieldSchema]:
        return [f for f in self.fields if f.is_computed]

    @property
    def input_fields(self) -> list[FieldSchema]:
        """Fields whose values are supplied by the user."""
        return [f for f in self.fields if not f.is_computed]

    def get_field(self, name: str) -> FieldSchema | None:
        for field in self.fields:
            if field.name == name:
                return field
        return None
