"""
Custom exceptions for Cosmic Forge.

Provides a hierarchy of exceptions that map to HTTP status codes
and include structured error information. The hosting CRUD layer
is expected to translate ``status_code`` and ``to_dict()`` into
responses.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cosmicforge.schemas.computed import FieldFailure


class CosmicForgeException(Exception):
    """
    Base exception for all Cosmic Forge errors.

    All custom exceptions should inherit from this class.
    """

    # Default status code for base exception
    status_code = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# HTTP 400 - Bad Request Errors
# =============================================================================


class BadRequestError(CosmicForgeException):
    """Invalid request parameters or payload."""

    status_code = 400


class ValidationError(BadRequestError):
    """Request validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"errors": errors or []},
        )

    @property
    def errors(self) -> list[dict[str, Any]]:
        return self.details["errors"]


class InvalidFieldTypeError(BadRequestError):
    """Invalid field type specified."""

    def __init__(self, field_type: str) -> None:
        super().__init__(
            message=f"Invalid field type: {field_type}",
            code="INVALID_FIELD_TYPE",
            details={"field_type": field_type},
        )


class InvalidFieldValueError(BadRequestError):
    """Invalid value for field type."""

    def __init__(self, field_name: str, expected_type: str, received_value: Any) -> None:
        super().__init__(
            message=f"Invalid value for field '{field_name}'. Expected {expected_type}.",
            code="INVALID_FIELD_VALUE",
            details={
                "field_name": field_name,
                "expected_type": expected_type,
                "received_value": str(received_value)[:100],
            },
        )


class RequiredFieldError(BadRequestError):
    """Required field is missing."""

    def __init__(self, field_name: str) -> None:
        super().__init__(
            message=f"Required field '{field_name}' is missing",
            code="REQUIRED_FIELD",
            details={
                "field_name": field_name,
            },
        )


# =============================================================================
# HTTP 404 - Not Found Errors
# =============================================================================


class NotFoundError(CosmicForgeException):
    """Resource not found."""

    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> None:
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(
            message=message,
            code="NOT_FOUND",
            details=details,
        )


class FieldNotFoundError(NotFoundError):
    """Template field not found."""

    def __init__(self, field_name: str) -> None:
        super().__init__(
            message=f"Field '{field_name}' not found in template",
            resource_type="field",
            resource_id=field_name,
        )


# =============================================================================
# HTTP 422 - Unprocessable Entity Errors
# =============================================================================


class UnprocessableEntityError(CosmicForgeException):
    """Request cannot be processed."""

    status_code = 422


class FormulaError(UnprocessableEntityError):
    """
    Formula parsing or execution error.

    Every formula error is scoped to one computed field. Errors raised
    below the engine (parser, sandbox, interpreter) do not know which
    field they belong to; the engine attaches it with ``for_field``.
    """

    kind = "formula_error"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="FORMULA_ERROR",
            details=details,
        )
        self.field = field

    def for_field(self, field: str) -> "FormulaError":
        """Attach the computed field this error belongs to."""
        self.field = field
        return self

    def to_failure(self) -> "FieldFailure":
        """Convert to the per-field failure reported in a ComputedResult."""
        from cosmicforge.schemas.computed import FieldFailure

        return FieldFailure.from_error(self)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["error"]["field"] = self.field
        data["error"]["kind"] = self.kind
        return data


class FormulaSyntaxError(FormulaError):
    """Formula text does not match the grammar."""

    kind = "syntax"


class FormulaSandboxViolation(FormulaError):
    """Formula uses a construct outside the allowlist."""

    kind = "sandbox_violation"

    def __init__(self, construct: str, field: str | None = None) -> None:
        super().__init__(
            message=f"'{construct}' is not allowed in formulas",
            field=field,
            details={"construct": construct},
        )
        self.construct = construct


class UnknownIdentifierError(FormulaError):
    """Formula references a name with no bound value."""

    kind = "unknown_identifier"

    def __init__(self, identifier: str, field: str | None = None) -> None:
        super().__init__(
            message=f"{identifier} is not defined",
            field=field,
            details={"identifier": identifier},
        )
        self.identifier = identifier


class CyclicFormulaError(FormulaError):
    """Computed fields reference each other in a loop."""

    kind = "cycle"

    def __init__(self, cycle: list[str], field: str | None = None) -> None:
        members = sorted(cycle)
        super().__init__(
            message=f"Circular reference between computed fields: {', '.join(members)}",
            field=field,
            details={"cycle": members},
        )
        self.cycle = members


class UpstreamFailureError(FormulaError):
    """A field this formula depends on could not be computed."""

    kind = "upstream_failure"

    def __init__(self, dependency: str, field: str | None = None) -> None:
        super().__init__(
            message=f"Depends on '{dependency}', which could not be computed",
            field=field,
            details={"dependency": dependency},
        )
        self.dependency = dependency


class FormulaRuntimeError(FormulaError):
    """Formula failed while evaluating (type mismatch, bad argument)."""

    kind = "runtime"


class FormulaBudgetExceededError(FormulaRuntimeError):
    """Formula exceeded its evaluation budget."""

    kind = "budget_exceeded"

    def __init__(self, limit_name: str, limit: int, field: str | None = None) -> None:
        super().__init__(
            message=f"Formula exceeded the {limit_name} limit of {limit}",
            field=field,
            details={"limit_name": limit_name, "limit": limit},
        )

