"""Unit tests for template schemas."""

import pytest
from pydantic import ValidationError

from cosmicforge.schemas.template import FieldSchema, FieldType, TemplateSchema


class TestFieldSchema:
    """Tests for FieldSchema validation."""

    def test_basic_field(self):
        """Test creating a plain field."""
        field = FieldSchema(name="attack", type="number")
        assert field.type == FieldType.NUMBER
        assert field.options is None
        assert field.formula is None
        assert field.is_computed is False

    def test_name_is_stripped(self):
        """Test that surrounding whitespace is removed from names."""
        assert FieldSchema(name="  attack ", type="number").name == "attack"

    def test_empty_name_rejected(self):
        """Test that blank names are rejected."""
        with pytest.raises(ValidationError):
            FieldSchema(name="   ", type="number")

    @pytest.mark.parametrize("name", ["hit_points", "_hidden", "$gold", "HP2"])
    def test_identifier_names_accepted(self, name):
        """Test that names usable in formulas are accepted."""
        assert FieldSchema(name=name, type="number").name == name

    @pytest.mark.parametrize("name", ["attack power", "2nd", "hp-max", "r\u00e9sum\u00e9"])
    def test_non_identifier_names_rejected(self, name):
        """Test that names a formula could not reference are rejected."""
        with pytest.raises(ValidationError):
            FieldSchema(name=name, type="number")

    @pytest.mark.parametrize("name", ["true", "false", "null", "undefined", "Math"])
    def test_reserved_names_rejected(self, name):
        """Test that literal keywords and the Math namespace cannot be field names."""
        with pytest.raises(ValidationError) as exc_info:
            FieldSchema(name=name, type="number")
        assert "reserved" in str(exc_info.value)

    def test_type_is_case_insensitive(self):
        """Test that type names are normalized."""
        assert FieldSchema(name="a", type="NUMBER").type == FieldType.NUMBER

    def test_string_alias(self):
        """Test that the legacy 'string' type means text."""
        assert FieldSchema(name="bio", type="string").type == FieldType.TEXT

    def test_unknown_type_rejected(self):
        """Test that unknown field types are rejected."""
        with pytest.raises(ValidationError):
            FieldSchema(name="a", type="date")

    def test_select_options_list(self):
        """Test select options given as a list."""
        field = FieldSchema(name="element", type="select", options=["Fire", "Water"])
        assert field.options == ["Fire", "Water"]

    def test_options_comma_separated(self):
        """Test options given as the editor's comma-separated string."""
        field = FieldSchema(name="traits", type="multiselect", options="Brave, Sly,, Wise ")
        assert field.options == ["Brave", "Sly", "Wise"]

    def test_options_on_number_rejected(self):
        """Test that only select types take options."""
        with pytest.raises(ValidationError):
            FieldSchema(name="a", type="number", options=["1", "2"])

    def test_computed_requires_formula(self):
        """Test that computed fields need a formula."""
        with pytest.raises(ValidationError):
            FieldSchema(name="total", type="computed")
        with pytest.raises(ValidationError):
            FieldSchema(name="total", type="computed", formula="   ")

    def test_formula_only_on_computed(self):
        """Test that non-computed fields cannot carry a formula."""
        with pytest.raises(ValidationError):
            FieldSchema(name="a", type="number", formula="1 + 1")

    def test_computed_field(self):
        """Test a valid computed field."""
        field = FieldSchema(name="total", type="computed", formula="a + b")
        assert field.is_computed is True
        assert field.formula == "a + b"

    def test_frozen(self):
        """Test that fields cannot be modified after creation."""
        field = FieldSchema(name="a", type="number")
        with pytest.raises(ValidationError):
            field.name = "b"


class TestTemplateSchema:
    """Tests for TemplateSchema."""

    def test_empty_template(self):
        """Test a template without fields."""
        schema = TemplateSchema()
        assert schema.fields == []
        assert schema.computed_fields == []

    def test_duplicate_names_rejected(self):
        """Test that field names must be unique."""
        with pytest.raises(ValidationError) as exc_info:
            TemplateSchema(
                fields=[
                    {"name": "a", "type": "number"},
                    {"name": "a", "type": "text"},
                ]
            )
        assert "Duplicate field names: a" in str(exc_info.value)

    def test_helpers(self, character_schema):
        """Test the field accessors."""
        assert character_schema.field_names[:2] == ["name", "portrait"]
        assert [f.name for f in character_schema.computed_fields] == ["power", "rank"]
        assert "power" not in [f.name for f in character_schema.input_fields]
        assert len(character_schema.input_fields) == 7

    def test_get_field(self, character_schema):
        """Test looking up fields by name."""
        assert character_schema.get_field("attack").type == FieldType.NUMBER
        assert character_schema.get_field("nope") is None
