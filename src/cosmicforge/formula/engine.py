"""Computed field evaluation for Cosmic Forge templates.

``evaluate(schema, values)`` is the entry point the entity CRUD layer
calls when an entity is created: it orders a template's computed
fields by their dependencies and evaluates each formula in the
sandboxed interpreter. Formula problems never escape as exceptions;
every computed field ends up with either a value or a ``FieldFailure``.
"""

import copy
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

from cosmicforge.core.config import Settings, get_settings
from cosmicforge.core.exceptions import (
    CyclicFormulaError,
    FieldNotFoundError,
    FormulaBudgetExceededError,
    FormulaError,
    UnknownIdentifierError,
    UpstreamFailureError,
    ValidationError,
)
from cosmicforge.core.logging import LoggerMixin
from cosmicforge.formula.dependencies import FormulaDependencyGraph
from cosmicforge.formula.evaluator import FormulaEvaluator
from cosmicforge.formula.parser import FormulaParser, Node, collect_identifiers
from cosmicforge.formula.sandbox import NAMESPACES, check_sandbox
from cosmicforge.formula.values import value_size
from cosmicforge.schemas.computed import ComputedResult, FieldFailure
from cosmicforge.schemas.template import FieldType, TemplateSchema


class FormulaEngine(LoggerMixin):
    """
    Evaluates the computed fields of a template.

    The engine holds configuration and a cache of parsed formulas, both
    read-only after construction, so one instance can serve concurrent
    requests.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.parser = FormulaParser(
            max_length=self.settings.formula_max_length,
            max_depth=self.settings.formula_max_depth,
        )
        # ASTs are never mutated, so sharing them between calls is safe
        self._parse = lru_cache(maxsize=self.settings.formula_cache_size)(self.parser.parse)

    def parse(self, formula: str) -> Node:
        """Parse a formula, reusing the cached AST for repeated formulas."""
        return self._parse(formula)

    def _compile(
        self,
        schema: TemplateSchema,
        bound_names: set[str],
        failures: dict[str, FieldFailure],
    ) -> dict[str, Node]:
        """Parse and sandbox-check every computed field."""
        asts: dict[str, Node] = {}
        for field in schema.computed_fields:
            try:
                ast = self.parse(field.formula)
                check_sandbox(ast, bound_names)
            except FormulaError as e:
                self._fail(failures, field.name, e)
                continue
            asts[field.name] = ast
        return asts

    def _build_graph(
        self,
        schema: TemplateSchema,
        asts: Mapping[str, Node],
        targets: set[str],
    ) -> FormulaDependencyGraph:
        """Link each computed field to the ``targets`` its formula references."""
        graph = FormulaDependencyGraph()
        for field in schema.computed_fields:
            refs = collect_identifiers(asts[field.name]) & targets if field.name in asts else set()
            graph.add_formula_field(field.name, refs, allow_cycles=True)
        return graph

    def _fail(
        self,
        failures: dict[str, FieldFailure],
        field: str,
        error: FormulaError,
    ) -> None:
        failure = error.for_field(field).to_failure()
        failures[field] = failure
        self.logger.warning(
            f"Computed field '{field}' failed: {failure.message}",
            extra={"field": field, "kind": failure.kind, "details": failure.details},
        )

    def evaluate(self, schema: TemplateSchema, values: Mapping[str, Any]) -> ComputedResult:
        """
        Evaluate every computed field of a template.

        Args:
            schema: Template whose computed fields are evaluated
            values: Values of the non-computed fields

        Returns:
            ComputedResult covering every computed field of the schema
        """
        computed_names = {f.name for f in schema.computed_fields}
        if not computed_names:
            return ComputedResult()

        # Computed fields are always derived, never taken from input
        inputs = {k: v for k, v in values.items() if k not in computed_names}
        bound_names = set(inputs) | computed_names

        failures: dict[str, FieldFailure] = {}
        results: dict[str, Any] = {}

        asts = self._compile(schema, bound_names, failures)
        graph = self._build_graph(schema, asts, computed_names)

        cyclic: set[str] = set()
        for cycle in graph.find_cycles():
            for name in cycle:
                self._fail(failures, name, CyclicFormulaError(cycle))
                cyclic.add(name)

        order = graph.get_evaluation_order(set(asts) - cyclic)
        environment = dict(inputs)
        size_limit = self.settings.formula_max_value_size
        oversized = {k for k, v in inputs.items() if value_size(v, size_limit) > size_limit}

        for name in order:
            failed_deps = sorted(d for d in graph.get_dependencies(name) if d in failures)
            if failed_deps:
                self._fail(failures, name, UpstreamFailureError(failed_deps[0]))
                continue
            if oversized and collect_identifiers(asts[name]) & oversized:
                self._fail(failures, name, FormulaBudgetExceededError("value size", size_limit))
                continue

            evaluator = FormulaEvaluator(
                environment,
                max_steps=self.settings.formula_max_steps,
                max_string_length=self.settings.formula_max_string_length,
                max_value_size=self.settings.formula_max_value_size,
            )
            try:
                value = evaluator.evaluate(asts[name])
            except FormulaError as e:
                self._fail(failures, name, e)
                continue

            # Lists and objects may alias input values
            value = copy.deepcopy(value)
            results[name] = value
            environment[name] = value

        return ComputedResult(values=results, failures=failures)

    # ==========================================================================
    # Authoring helpers
    # ==========================================================================

    def _get_computed_field(self, schema: TemplateSchema, field_name: str):
        field = schema.get_field(field_name)
        if field is None:
            raise FieldNotFoundError(field_name)
        if field.type != FieldType.COMPUTED:
            raise ValidationError(
                f"Field '{field_name}' is not a computed field",
                errors=[{"field": field_name, "message": "Not a computed field"}],
            )
        return field

    def check_formula(self, schema: TemplateSchema, field_name: str) -> FieldFailure | None:
        """
        Check a computed field's formula while the template is being edited.

        No entity values exist yet, so every field of the schema is treated
        as bound. Reports syntax errors, sandbox violations, references to
        names that are not fields of the template, and cycles.

        Args:
            schema: Template being edited
            field_name: Computed field to check

        Returns:
            FieldFailure describing the first problem, or None if the
            formula is fine

        Raises:
            FieldNotFoundError: If the field does not exist
            ValidationError: If the field is not computed
        """
        field = self._get_computed_field(schema, field_name)
        field_names = set(schema.field_names)

        try:
            ast = self.parse(field.formula)
            check_sandbox(ast, field_names)
        except FormulaError as e:
            return e.for_field(field_name).to_failure()

        unknown = sorted(collect_identifiers(ast) - field_names - NAMESPACES)
        if unknown:
            return UnknownIdentifierError(unknown[0], field_name).to_failure()

        asts = self._parse_quietly(schema)
        graph = self._build_graph(schema, asts, {f.name for f in schema.computed_fields})
        for cycle in graph.find_cycles():
            if field_name in cycle:
                return CyclicFormulaError(cycle, field_name).to_failure()

        return None

    def _parse_quietly(self, schema: TemplateSchema) -> dict[str, Node]:
        """Parse every computed field, skipping the ones that do not parse."""
        asts: dict[str, Node] = {}
        for field in schema.computed_fields:
            try:
                asts[field.name] = self.parse(field.formula)
            except FormulaError:
                continue
        return asts

    def available_variables(self, schema: TemplateSchema, field_name: str) -> list[str]:
        """
        Names a formula for ``field_name`` may reference.

        Every other field qualifies except image fields and computed
        fields that already depend on ``field_name``, since referencing
        them would close a cycle. Returned in display order.

        Raises:
            FieldNotFoundError: If the field does not exist
            ValidationError: If the field is not computed
        """
        self._get_computed_field(schema, field_name)
        graph = self._build_graph(
            schema, self._parse_quietly(schema), set(schema.field_names)
        )
        excluded = {field_name, *graph.get_affected_fields(field_name)}
        return [
            f.name
            for f in schema.fields
            if f.name not in excluded and f.type != FieldType.IMAGE
        ]

    def affected_fields(self, schema: TemplateSchema, changed: Iterable[str]) -> list[str]:
        """
        Computed fields whose value depends, directly or transitively, on
        any of the ``changed`` fields.

        Args:
            schema: Template of the entity
            changed: Names of fields whose values changed

        Returns:
            Sorted list of computed field names
        """
        graph = self._build_graph(
            schema, self._parse_quietly(schema), set(schema.field_names)
        )
        affected: set[str] = set()
        for name in changed:
            affected.update(graph.get_affected_fields(name))
        return sorted(affected)


@lru_cache(maxsize=1)
def get_engine() -> FormulaEngine:
    """Shared engine built from the global settings."""
    return FormulaEngine()


def evaluate(schema: TemplateSchema, values: Mapping[str, Any]) -> ComputedResult:
    """
    Evaluate every computed field of ``schema`` against ``values``.

    Args:
        schema: Template schema
        values: Values of the non-computed fields

    Returns:
        ComputedResult with a value or failure for each computed field
    """
    return get_engine().evaluate(schema, values)
