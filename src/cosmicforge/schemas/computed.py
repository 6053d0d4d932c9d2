"""Result schemas produced by evaluating a template's computed fields."""

from typing import TYPE_CHECKING, Any, Iterator

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from cosmicforge.core.exceptions import FormulaError


class FieldFailure(BaseModel):
    """Why a computed field has no value."""

    field: str = Field(..., description="Computed field name")
    kind: str = Field(..., description="Error kind tag, e.g. 'syntax' or 'cycle'")
    message: str = Field(..., description="Terse message suitable for end users")
    details: dict[str, Any] = Field(default_factory=dict, description="Structured context")

    model_config = {"frozen": True}

    @classmethod
    def from_error(cls, error: "FormulaError", field: str | None = None) -> "FieldFailure":
        return cls(
            field=field or error.field or "",
            kind=error.kind,
            message=error.message,
            details=dict(error.details),
        )


class ComputedResult(BaseModel):
    """
    Outcome of evaluating every computed field of a template.

    Each computed field appears in exactly one of ``values`` or
    ``failures``. Indexing by field name returns the value or the
    failure.
    """

    values: dict[str, Any] = Field(default_factory=dict)
    failures: dict[str, FieldFailure] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def names(self) -> list[str]:
        return sorted({*self.values, *self.failures})

    def items(self) -> Iterator[tuple[str, Any]]:
        for name in self.names():
            yield name, self[name]

    def is_failure(self, name: str) -> bool:
        return name in self.failures

    def __getitem__(self, name: str) -> Any:
        if name in self.failures:
            return self.failures[name]
        return self.values[name]

    def __contains__(self, name: object) -> bool:
        return name in self.values or name in self.failures

    def __len__(self) -> int:
        return len(self.values) + len(self.failures)

    def to_entity_data(
        self,
        values: dict[str, Any],
        error_prefix: str = "ERROR: ",
    ) -> dict[str, Any]:
        """
        Merge computed values into the entity's input values.

        Failed fields are stored as ``"<error_prefix><message>"`` strings,
        which is what clients reading entity data back already expect.

        Args:
            values: Input field values of the entity
            error_prefix: Prefix for failed field strings

        Returns:
            New dict suitable for persisting as the entity ``data``
        """
        data = dict(values)
        data.update(self.values)
        for name, failure in self.failures.items():
            data[name] = f"{error_prefix}{failure.message}"
        return data
