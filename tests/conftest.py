"""
Pytest configuration and fixtures for Cosmic Forge tests.
"""

from collections.abc import Callable
from typing import Any

import pytest

from cosmicforge.core.config import Settings
from cosmicforge.formula.engine import FormulaEngine
from cosmicforge.formula.parser import FormulaParser
from cosmicforge.schemas.template import TemplateSchema


@pytest.fixture
def settings() -> Settings:
    """Settings with the default formula limits."""
    return Settings()


@pytest.fixture
def parser() -> FormulaParser:
    """Formula parser with default limits."""
    return FormulaParser()


@pytest.fixture
def engine(settings: Settings) -> FormulaEngine:
    """Formula engine built from default settings."""
    return FormulaEngine(settings)


@pytest.fixture
def make_schema() -> Callable[..., TemplateSchema]:
    """
    Build a template from field dicts.

    Usage:
        make_schema(
            {"name": "a", "type": "number"},
            {"name": "total", "type": "computed", "formula": "a * 2"},
        )
    """

    def _make(*fields: dict[str, Any], name: str = "Test Template") -> TemplateSchema:
        return TemplateSchema(name=name, fields=list(fields))

    return _make


@pytest.fixture
def character_schema(make_schema) -> TemplateSchema:
    """A character template mixing every field type."""
    return make_schema(
        {"name": "name", "type": "text"},
        {"name": "portrait", "type": "image"},
        {"name": "element", "type": "select", "options": ["Fire", "Water", "Earth"]},
        {"name": "traits", "type": "multiselect", "options": ["Brave", "Sly", "Wise"]},
        {"name": "is_boss", "type": "boolean"},
        {"name": "attack", "type": "number"},
        {"name": "defense", "type": "number"},
        {"name": "power", "type": "computed", "formula": "attack * 2 + defense"},
        {
            "name": "rank",
            "type": "computed",
            "formula": "power >= 100 ? 'legendary' : is_boss ? 'elite' : 'common'",
        },
        name="Character",
    )
