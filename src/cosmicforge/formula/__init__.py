"""Formula engine for Cosmic Forge.

Computed template fields carry a formula over the entity's other fields.
This module provides a sandboxed evaluation system supporting:
- Arithmetic operations (+, -, *, /, %) with IEEE-754 double semantics
- Comparison operations (==, !=, ===, !==, <, >, <=, >=)
- Logical operations (&&, ||, !) and the ternary operator
- Array and object literals, index access and .length
- An allowlisted function set (round, sum, includes, Math.* ...)
- Bare field references resolved against the entity's values
- Dependency ordering and cycle detection between computed fields
"""

from cosmicforge.formula.dependencies import FormulaDependencyGraph
from cosmicforge.formula.engine import FormulaEngine, evaluate, get_engine
from cosmicforge.formula.evaluator import FormulaEvaluator
from cosmicforge.formula.functions import (
    FORMULA_FUNCTIONS,
    MATH_FUNCTIONS,
    register_function,
    register_math_function,
)
from cosmicforge.formula.parser import FormulaParser

__all__ = [
    "FormulaParser",
    "FormulaEvaluator",
    "FormulaEngine",
    "FORMULA_FUNCTIONS",
    "MATH_FUNCTIONS",
    "register_function",
    "register_math_function",
    "FormulaDependencyGraph",
    "evaluate",
    "get_engine",
]
