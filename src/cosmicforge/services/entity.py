"""Entity data service: turns submitted field values into stored entity data."""

from collections.abc import Mapping
from typing import Any

from cosmicforge.core.config import Settings, get_settings
from cosmicforge.core.exceptions import ValidationError
from cosmicforge.core.logging import LoggerMixin
from cosmicforge.fields import ComputedFieldHandler, get_field_handler
from cosmicforge.formula.engine import FormulaEngine, get_engine
from cosmicforge.schemas.computed import ComputedResult, FieldFailure
from cosmicforge.schemas.template import FieldSchema, TemplateSchema


class EntityDataService(LoggerMixin):
    """Service for validating entity input and filling in computed fields."""

    def __init__(
        self,
        engine: FormulaEngine | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        if engine is None:
            engine = get_engine() if settings is None else FormulaEngine(self.settings)
        self.engine = engine

    @staticmethod
    def _handler_options(field: FieldSchema) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if field.options is not None:
            options["options"] = list(field.options)
        return options

    def coerce_values(self, schema: TemplateSchema, raw: Mapping[str, Any]) -> dict[str, Any]:
        """Validate and normalize the user-supplied values of an entity.

        Args:
            schema: Template of the entity
            raw: Submitted values (field name -> value)

        Returns:
            Normalized values for every non-computed field, with handler
            defaults for fields that were not submitted

        Raises:
            ValidationError: If any key is unknown or read-only, or any
                value fails its field type's validation

        """
        validation_errors: list[dict[str, Any]] = []
        values: dict[str, Any] = {}

        for name, value in raw.items():
            field = schema.get_field(name)
            if field is None:
                validation_errors.append({
                    "field_name": name,
                    "message": f"Field '{name}' does not exist in template",
                })
                continue

            handler = get_field_handler(field.type)
            if handler is None:
                validation_errors.append({
                    "field_name": name,
                    "message": f"Field '{name}' has unsupported type '{field.type.value}'",
                })
                continue

            try:
                handler.validate(value, self._handler_options(field))
                values[name] = handler.serialize(value)
            except (ValueError, OverflowError) as e:
                validation_errors.append({
                    "field_name": name,
                    "message": f"Invalid value for field '{name}': {e}",
                })

        if validation_errors:
            raise ValidationError(
                message="Validation failed",
                errors=validation_errors,
            )

        for field in schema.input_fields:
            if field.name not in values:
                handler = get_field_handler(field.type)
                values[field.name] = handler.default() if handler else None

        return values

    def build_entity_data(
        self,
        schema: TemplateSchema,
        raw: Mapping[str, Any],
    ) -> tuple[dict[str, Any], ComputedResult]:
        """Build the ``data`` dict persisted for a new entity.

        Args:
            schema: Template of the entity
            raw: Submitted values (field name -> value)

        Returns:
            Tuple of the entity data, with computed fields filled in or
            replaced by error strings, and the full ComputedResult

        Raises:
            ValidationError: If the submitted values are invalid

        """
        values = self.coerce_values(schema, raw)
        result = self.engine.evaluate(schema, values)

        if not result.ok:
            self.logger.info(
                "Entity data built with failed computed fields",
                extra={
                    "template": schema.name,
                    "failed_fields": sorted(result.failures),
                },
            )

        stored = result.model_copy(
            update={
                "values": {
                    name: ComputedFieldHandler.serialize(value)
                    for name, value in result.values.items()
                }
            }
        )
        data = stored.to_entity_data(values, error_prefix=self.settings.formula_error_prefix)
        return data, result

    def check_template(self, schema: TemplateSchema) -> list[FieldFailure]:
        """Check every computed field of a template being edited.

        Args:
            schema: Template to check

        Returns:
            Failures in field order; empty when every formula is fine

        """
        failures: list[FieldFailure] = []
        for field in schema.computed_fields:
            failure = self.engine.check_formula(schema, field.name)
            if failure is not None:
                failures.append(failure)
        return failures
