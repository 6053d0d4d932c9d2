"""Unit tests for FormulaEngine: computed field evaluation over a template."""

import logging
import math

import pytest

from cosmicforge.core.config import Settings
from cosmicforge.core.exceptions import FieldNotFoundError, ValidationError
from cosmicforge.formula import evaluate
from cosmicforge.formula.engine import FormulaEngine, get_engine
from cosmicforge.schemas.computed import ComputedResult, FieldFailure

NUMBER_A = {"name": "a", "type": "number"}
NUMBER_B = {"name": "b", "type": "number"}


def computed(name, formula):
    return {"name": name, "type": "computed", "formula": formula}


def doubling_chain(length):
    """Computed fields c1..cN where each is a list holding the previous one twice."""
    fields = [NUMBER_A, computed("c1", "[a, a]")]
    for i in range(2, length + 1):
        fields.append(computed(f"c{i}", f"[c{i - 1}, c{i - 1}]"))
    return fields


class TestEvaluateBasics:
    """Core evaluation behavior."""

    def test_no_computed_fields(self, engine, make_schema):
        """Test that a template without computed fields yields an empty result."""
        schema = make_schema({"name": "name", "type": "text"}, NUMBER_A)
        result = engine.evaluate(schema, {"name": "Bob", "a": 1})
        assert result == ComputedResult()
        assert len(result) == 0
        assert result.ok

    def test_simple_sum(self, engine, make_schema):
        """Test total = a + b with a=2, b=3."""
        schema = make_schema(NUMBER_A, NUMBER_B, computed("total", "a + b"))
        result = engine.evaluate(schema, {"a": 2, "b": 3})
        assert result.values == {"total": 5}
        assert result["total"] == 5
        assert result.failures == {}

    def test_computed_depends_on_computed(self, engine, make_schema):
        """Test that computed fields see earlier computed results regardless of display order."""
        schema = make_schema(
            computed("double_total", "total * 2"),
            NUMBER_A,
            NUMBER_B,
            computed("total", "a + b"),
        )
        result = engine.evaluate(schema, {"a": 2, "b": 3})
        assert result.values == {"double_total": 10, "total": 5}

    def test_character_template(self, engine, character_schema):
        """Test a template mixing every field type."""
        values = {
            "name": "Ignis",
            "portrait": None,
            "element": "Fire",
            "traits": ["Brave"],
            "is_boss": True,
            "attack": 30,
            "defense": 20,
        }
        result = engine.evaluate(character_schema, values)
        assert result.values == {"power": 80, "rank": "elite"}

    def test_input_value_for_computed_name_is_ignored(self, engine, make_schema):
        """Test that values supplied for computed fields are not used."""
        schema = make_schema(NUMBER_A, NUMBER_B, computed("total", "a + b"))
        result = engine.evaluate(schema, {"a": 2, "b": 3, "total": 100})
        assert result["total"] == 5

    def test_field_named_like_global(self, engine, make_schema):
        """Test that a field named like a host global is an ordinary value."""
        schema = make_schema(
            {"name": "process", "type": "number"}, computed("double", "process * 2")
        )
        result = engine.evaluate(schema, {"process": 4})
        assert result["double"] == 8

    def test_list_results_do_not_alias_inputs(self, engine, make_schema):
        """Test that returned lists are copies of input values."""
        schema = make_schema(
            {"name": "traits", "type": "multiselect", "options": ["Brave", "Sly"]},
            computed("same_traits", "traits"),
        )
        traits = ["Brave"]
        result = engine.evaluate(schema, {"traits": traits})
        assert result["same_traits"] == ["Brave"]
        assert result["same_traits"] is not traits

    def test_non_finite_values_are_kept(self, engine, make_schema):
        """Test that infinity is a value, not a failure."""
        schema = make_schema(NUMBER_A, computed("ratio", "a / 0"))
        result = engine.evaluate(schema, {"a": 1})
        assert result["ratio"] == math.inf
        assert result.ok

    def test_module_level_evaluate(self, make_schema):
        """Test the module-level evaluate entry point."""
        schema = make_schema(NUMBER_A, NUMBER_B, computed("total", "a + b"))
        assert evaluate(schema, {"a": 1, "b": 1})["total"] == 2
        assert get_engine() is get_engine()


class TestFieldFailures:
    """Every computed field ends with either a value or a failure."""

    def test_unknown_identifier(self, engine, make_schema):
        """Test that a reference to an undefined name fails only that field."""
        schema = make_schema(
            NUMBER_A,
            computed("bad", "a + c"),
            computed("good", "a * 2"),
        )
        result = engine.evaluate(schema, {"a": 2})
        assert result["good"] == 4
        failure = result["bad"]
        assert isinstance(failure, FieldFailure)
        assert failure.field == "bad"
        assert failure.kind == "unknown_identifier"
        assert failure.details == {"identifier": "c"}
        assert failure.message == "c is not defined"

    def test_cycle(self, engine, make_schema):
        """Test that x = y + 1, y = x + 1 fails both fields with a cycle."""
        schema = make_schema(computed("x", "y + 1"), computed("y", "x + 1"))
        result = engine.evaluate(schema, {})
        assert set(result.failures) == {"x", "y"}
        for name in ("x", "y"):
            failure = result.failures[name]
            assert failure.kind == "cycle"
            assert failure.details == {"cycle": ["x", "y"]}
            assert failure.message == "Circular reference between computed fields: x, y"
        assert result.values == {}

    def test_self_reference(self, engine, make_schema):
        """Test that a field referencing itself is a cycle."""
        schema = make_schema(computed("hp", "hp + 1"))
        result = engine.evaluate(schema, {})
        assert result.failures["hp"].kind == "cycle"
        assert result.failures["hp"].details == {"cycle": ["hp"]}

    def test_upstream_failure(self, engine, make_schema):
        """Test that z = x * 2 fails when x failed."""
        schema = make_schema(
            computed("x", "missing + 1"),
            computed("z", "x * 2"),
        )
        result = engine.evaluate(schema, {})
        assert result.failures["x"].kind == "unknown_identifier"
        failure = result.failures["z"]
        assert failure.kind == "upstream_failure"
        assert failure.details == {"dependency": "x"}

    def test_upstream_failure_is_transitive(self, engine, make_schema):
        """Test that failures propagate down a chain."""
        schema = make_schema(
            computed("w", "z + 1"),
            computed("x", "1 +"),
            computed("z", "x * 2"),
        )
        result = engine.evaluate(schema, {})
        assert result.failures["x"].kind == "syntax"
        assert result.failures["z"].details == {"dependency": "x"}
        assert result.failures["w"].details == {"dependency": "z"}

    def test_first_failed_dependency_by_name(self, engine, make_schema):
        """Test that the upstream failure names the first failed dependency in name order."""
        schema = make_schema(
            computed("q", "nope"),
            computed("p", "nope"),
            computed("r", "q + p"),
        )
        result = engine.evaluate(schema, {})
        assert result.failures["r"].details == {"dependency": "p"}

    def test_field_downstream_of_cycle(self, engine, make_schema):
        """Test that a field depending on a cycle gets an upstream failure."""
        schema = make_schema(
            computed("x", "y + 1"),
            computed("y", "x + 1"),
            computed("z", "x + 1"),
        )
        result = engine.evaluate(schema, {})
        assert result.failures["x"].kind == "cycle"
        assert result.failures["z"].kind == "upstream_failure"
        assert result.failures["z"].details == {"dependency": "x"}

    def test_syntax_error(self, engine, make_schema):
        """Test that a formula that does not parse is a syntax failure."""
        schema = make_schema(NUMBER_A, computed("bad", "a +* 2"))
        result = engine.evaluate(schema, {"a": 1})
        assert result.failures["bad"].kind == "syntax"

    def test_sandbox_violation(self, engine, make_schema):
        """Test that host access is a sandbox failure."""
        schema = make_schema(computed("evil", "window.alert(1)"))
        result = engine.evaluate(schema, {})
        failure = result.failures["evil"]
        assert failure.kind == "sandbox_violation"
        assert failure.details == {"construct": "window.alert()"}

    def test_assignment_is_sandbox_violation(self, engine, make_schema):
        """Test that assignment fails without touching the inputs."""
        schema = make_schema(NUMBER_A, computed("evil", "a = 5"))
        values = {"a": 1}
        result = engine.evaluate(schema, values)
        assert result.failures["evil"].kind == "sandbox_violation"
        assert values == {"a": 1}

    def test_runtime_error(self, engine, make_schema):
        """Test that type errors become runtime failures."""
        schema = make_schema({"name": "name", "type": "text"}, computed("bad", "name - 1"))
        result = engine.evaluate(schema, {"name": "Bob"})
        assert result.failures["bad"].kind == "runtime"

    def test_budget_exceeded(self, make_schema):
        """Test that the step budget is enforced per field."""
        engine = FormulaEngine(Settings(formula_max_steps=5))
        schema = make_schema(NUMBER_A, computed("busy", "a + a + a + a"), computed("ok", "a"))
        result = engine.evaluate(schema, {"a": 1})
        assert result.failures["busy"].kind == "budget_exceeded"
        assert result["ok"] == 1

    def test_doubling_lists_stop_at_size_limit(self, engine, make_schema):
        """Test that lists doubling across fields fail once they pass the size limit."""
        schema = make_schema(*doubling_chain(40), computed("text", "str(c40)"))
        result = engine.evaluate(schema, {"a": 1})
        assert len(result["c1"]) == 2
        assert "c16" in result.values
        failure = result.failures["c17"]
        assert failure.kind == "budget_exceeded"
        assert failure.details == {"limit_name": "value size", "limit": 250_000}
        assert result.failures["c40"].kind == "upstream_failure"
        assert result.failures["text"].details == {"dependency": "c40"}

    def test_doubling_lists_custom_limit(self, make_schema):
        """Test that the size limit comes from settings."""
        engine = FormulaEngine(Settings(formula_max_value_size=1000))
        schema = make_schema(*doubling_chain(12), computed("same", "c12 == c12"))
        result = engine.evaluate(schema, {"a": 1})
        assert "c8" in result.values
        assert result.failures["c9"].kind == "budget_exceeded"
        assert result.failures["same"].kind == "upstream_failure"

    def test_oversized_input_value(self, make_schema):
        """Test that a formula reading an oversized input fails instead of walking it."""
        engine = FormulaEngine(Settings(formula_max_value_size=100))
        schema = make_schema(
            NUMBER_A,
            {"name": "tags", "type": "multiselect"},
            computed("label", "concat('n', len(tags))"),
            computed("double", "a * 2"),
        )
        tags = ["x"]
        for _ in range(60):
            tags = [tags, tags]
        result = engine.evaluate(schema, {"a": 1, "tags": tags})
        assert result.failures["label"].kind == "budget_exceeded"
        assert result["double"] == 2

    def test_too_deep_formula(self, engine, make_schema):
        """Test that a formula nested past the depth limit fails as syntax."""
        schema = make_schema(NUMBER_A, computed("deep", " + ".join(["a"] * 100)))
        result = engine.evaluate(schema, {"a": 1})
        assert result.failures["deep"].kind == "syntax"
        assert result.failures["deep"].details["max_depth"] == 64

    def test_every_computed_field_reported(self, engine, make_schema):
        """Test that each computed field is in exactly one of values and failures."""
        schema = make_schema(
            NUMBER_A,
            computed("ok", "a"),
            computed("bad", "nope"),
            computed("x", "y"),
            computed("y", "x"),
            computed("down", "bad + ok"),
        )
        result = engine.evaluate(schema, {"a": 1})
        names = {f.name for f in schema.computed_fields}
        assert set(result.names()) == names
        assert not set(result.values) & set(result.failures)

    def test_failures_are_logged(self, engine, make_schema, caplog):
        """Test that failures are logged at WARNING with structured context."""
        schema = make_schema(computed("bad", "nope"))
        with caplog.at_level(logging.WARNING, logger="cosmicforge"):
            engine.evaluate(schema, {})
        records = [r for r in caplog.records if getattr(r, "field", None) == "bad"]
        assert records
        assert records[0].levelno == logging.WARNING
        assert records[0].kind == "unknown_identifier"


class TestPurity:
    """Evaluation is deterministic and side-effect free."""

    def test_idempotent(self, engine, character_schema):
        """Test that identical inputs give equal results."""
        values = {"attack": 60, "defense": 5, "is_boss": False}
        first = engine.evaluate(character_schema, values)
        second = engine.evaluate(character_schema, values)
        assert first == second
        assert first["rank"] == "legendary"

    def test_order_independent(self, engine, make_schema):
        """Test that permuting schema fields does not change the result."""
        fields = [
            NUMBER_A,
            NUMBER_B,
            computed("total", "a + b"),
            computed("double", "total * 2"),
            computed("x", "y"),
            computed("y", "x"),
            computed("z", "x + double"),
            computed("bad", "c"),
        ]
        values = {"a": 1, "b": 2}
        forward = engine.evaluate(make_schema(*fields), values)
        backward = engine.evaluate(make_schema(*reversed(fields)), values)
        assert forward == backward
        assert forward["double"] == 6

    def test_inputs_not_mutated(self, engine, make_schema):
        """Test that the values mapping is left untouched."""
        schema = make_schema(NUMBER_A, computed("total", "a + 1"))
        values = {"a": 1}
        engine.evaluate(schema, values)
        assert values == {"a": 1}

    def test_parse_cache_reuses_ast(self, engine):
        """Test that the same formula text parses to the same cached AST."""
        assert engine.parse("a + 1") is engine.parse("a + 1")


class TestAuthoringHelpers:
    """Tests for check_formula, available_variables and affected_fields."""

    def test_check_formula_ok(self, engine, character_schema):
        """Test a valid formula has no failure."""
        assert engine.check_formula(character_schema, "power") is None

    def test_check_formula_unknown_field(self, engine, make_schema):
        """Test a reference to a name not in the template."""
        schema = make_schema(NUMBER_A, computed("total", "a + bonus"))
        failure = engine.check_formula(schema, "total")
        assert failure.kind == "unknown_identifier"
        assert failure.details == {"identifier": "bonus"}

    def test_check_formula_allows_math(self, engine, make_schema):
        """Test that Math is not reported as an unknown field."""
        schema = make_schema(NUMBER_A, computed("total", "Math.max(a, 1)"))
        assert engine.check_formula(schema, "total") is None

    def test_check_formula_cycle(self, engine, make_schema):
        """Test that a cycle is reported while editing."""
        schema = make_schema(computed("x", "y"), computed("y", "x"))
        failure = engine.check_formula(schema, "x")
        assert failure.kind == "cycle"
        assert failure.field == "x"

    def test_check_formula_syntax(self, engine, make_schema):
        """Test that a syntax error is reported while editing."""
        schema = make_schema(computed("x", "(1"))
        assert engine.check_formula(schema, "x").kind == "syntax"

    def test_check_formula_missing_field(self, engine, make_schema):
        """Test checking a field that does not exist."""
        with pytest.raises(FieldNotFoundError):
            engine.check_formula(make_schema(NUMBER_A), "nope")

    def test_check_formula_not_computed(self, engine, make_schema):
        """Test checking a field that is not computed."""
        with pytest.raises(ValidationError):
            engine.check_formula(make_schema(NUMBER_A), "a")

    def test_available_variables(self, engine, character_schema):
        """Test that the field itself, image fields and its dependents are excluded."""
        available = engine.available_variables(character_schema, "power")
        assert available == [
            "name",
            "element",
            "traits",
            "is_boss",
            "attack",
            "defense",
        ]

    def test_affected_fields(self, engine, character_schema):
        """Test computed fields affected by changing inputs."""
        assert engine.affected_fields(character_schema, ["attack"]) == ["power", "rank"]
        assert engine.affected_fields(character_schema, ["is_boss"]) == ["rank"]
        assert engine.affected_fields(character_schema, ["name"]) == []
