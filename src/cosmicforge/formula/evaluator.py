"""Formula evaluator for Cosmic Forge.

Tree-walking interpreter for parsed formula ASTs. The interpreter only
reads from its environment and never hands out host objects, so a
formula can do nothing beyond computing a value.
"""

import math
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from cosmicforge.core.config import get_settings
from cosmicforge.core.exceptions import (
    FormulaBudgetExceededError,
    FormulaRuntimeError,
    FormulaSandboxViolation,
    UnknownIdentifierError,
)
from cosmicforge.formula.functions import (
    FORMULA_FUNCTIONS,
    MATH_CONSTANTS,
    MATH_FUNCTIONS,
    FormulaFunction,
    func_includes,
)
from cosmicforge.formula.parser import (
    ArrayNode,
    AssignmentNode,
    BinaryOpNode,
    BooleanNode,
    CallNode,
    ConditionalNode,
    IdentifierNode,
    IndexNode,
    MemberNode,
    Node,
    NullNode,
    NumberNode,
    ObjectNode,
    StringNode,
    UnaryOpNode,
)
from cosmicforge.formula.sandbox import ALLOWED_METHODS, NAMESPACES, describe
from cosmicforge.formula.values import (
    is_number,
    normalize_number,
    to_text,
    truthy,
    type_name,
    value_size,
    values_equal,
)


class FormulaEvaluator:
    """
    Evaluates formula ASTs against field values.

    An evaluator keeps a step counter, so use one instance per
    evaluation pass rather than sharing it between threads.
    """

    def __init__(
        self,
        fields: Mapping[str, Any] | None = None,
        max_steps: int | None = None,
        max_string_length: int | None = None,
        max_value_size: int | None = None,
    ):
        """
        Initialize evaluator with optional field values.

        Args:
            fields: Mapping of field names to their values (read-only)
            max_steps: Node visits allowed per evaluation
            max_string_length: Longest string a formula may produce
            max_value_size: Largest list or object a formula may build
        """
        settings = get_settings()
        self._fields: Mapping[str, Any] = MappingProxyType(dict(fields or {}))
        self.max_steps = max_steps or settings.formula_max_steps
        self.max_string_length = max_string_length or settings.formula_max_string_length
        self.max_value_size = max_value_size or settings.formula_max_value_size
        self._steps = 0

    def evaluate(self, ast: Node, fields: Mapping[str, Any] | None = None) -> Any:
        """
        Evaluate an AST.

        Args:
            ast: Parsed formula
            fields: Optional field values (overrides constructor values)

        Returns:
            Evaluation result

        Raises:
            FormulaError: Unknown identifier, sandbox violation, runtime
                type error or exhausted budget
        """
        if fields is not None:
            self._fields = MappingProxyType(dict(fields))
        self._steps = 0

        try:
            return self._eval(ast)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise FormulaRuntimeError(str(e)) from e

    def _tick(self) -> None:
        self._steps += 1
        if self._steps > self.max_steps:
            raise FormulaBudgetExceededError("step", self.max_steps)

    def _check_string(self, value: Any) -> Any:
        if isinstance(value, str) and len(value) > self.max_string_length:
            raise FormulaBudgetExceededError("string length", self.max_string_length)
        return value

    def _check_size(self, value: Any) -> Any:
        if value_size(value, self.max_value_size) > self.max_value_size:
            raise FormulaBudgetExceededError("value size", self.max_value_size)
        return value

    def _eval(self, node: Node) -> Any:
        """Recursively evaluate an AST node."""
        self._tick()

        if isinstance(node, (NumberNode, StringNode, BooleanNode)):
            return node.value

        if isinstance(node, NullNode):
            return None

        if isinstance(node, IdentifierNode):
            return self._lookup(node.name)

        if isinstance(node, ArrayNode):
            return self._check_size([self._eval(item) for item in node.items])

        if isinstance(node, ObjectNode):
            return self._check_size({key: self._eval(value) for key, value in node.entries})

        if isinstance(node, MemberNode):
            return self._eval_member(node)

        if isinstance(node, IndexNode):
            return self._eval_index(node)

        if isinstance(node, CallNode):
            return self._eval_call(node)

        if isinstance(node, ConditionalNode):
            if truthy(self._eval(node.test)):
                return self._eval(node.consequent)
            return self._eval(node.alternate)

        if isinstance(node, BinaryOpNode):
            return self._eval_binary(node)

        if isinstance(node, UnaryOpNode):
            return self._eval_unary(node)

        if isinstance(node, AssignmentNode):
            raise FormulaSandboxViolation(f"assignment '{node.operator}'")

        raise FormulaRuntimeError(f"Unsupported expression: {type(node).__name__}")

    def _is_namespace(self, node: Node) -> bool:
        return (
            isinstance(node, IdentifierNode)
            and node.name in NAMESPACES
            and node.name not in self._fields
        )

    def _lookup(self, name: str) -> Any:
        if name in self._fields:
            return self._fields[name]
        if name in NAMESPACES:
            raise FormulaSandboxViolation(name)
        raise UnknownIdentifierError(name)

    def _eval_member(self, node: MemberNode) -> Any:
        if self._is_namespace(node.target):
            if node.name in MATH_CONSTANTS:
                return MATH_CONSTANTS[node.name]
            raise FormulaSandboxViolation(describe(node))

        if node.name != "length":
            raise FormulaSandboxViolation(describe(node))

        target = self._eval(node.target)
        if isinstance(target, (str, list)):
            return len(target)
        raise TypeError(f"length is only available on text and lists, not {type_name(target)}")

    def _eval_index(self, node: IndexNode) -> Any:
        target = self._eval(node.target)
        key = self._eval(node.index)

        if isinstance(target, dict):
            return target.get(key if isinstance(key, str) else to_text(key))

        if isinstance(target, (list, str)):
            if not is_number(key) or not float(key).is_integer():
                raise TypeError(f"{type_name(target)} index must be a whole number")
            position = int(key)
            if 0 <= position < len(target):
                return target[position]
            return None

        raise TypeError(f"cannot index into {type_name(target)}")

    def _resolve_function(self, node: CallNode) -> tuple[str, FormulaFunction, list[Any]]:
        """Find the allowlisted function a call refers to, plus any bound receiver."""
        callee = node.callee
        if isinstance(callee, IdentifierNode) and callee.name in FORMULA_FUNCTIONS:
            return callee.name, FORMULA_FUNCTIONS[callee.name], []

        if isinstance(callee, MemberNode):
            if self._is_namespace(callee.target):
                if callee.name in MATH_FUNCTIONS:
                    return describe(callee), MATH_FUNCTIONS[callee.name], []
            elif callee.name in ALLOWED_METHODS:
                return callee.name, func_includes, [self._eval(callee.target)]

        raise FormulaSandboxViolation(f"{describe(callee)}()")

    def _eval_call(self, node: CallNode) -> Any:
        """Evaluate a function call."""
        callee = node.callee
        if isinstance(callee, IdentifierNode) and callee.name == "if":
            return self._eval_if(node)

        name, func, receiver = self._resolve_function(node)
        args = receiver + [self._eval(arg) for arg in node.arguments]

        try:
            result = func(*args)
        except (TypeError, ValueError) as e:
            raise FormulaRuntimeError(f"{name}(): {e}") from e
        return self._check_string(result)

    def _eval_if(self, node: CallNode) -> Any:
        """if() only evaluates the branch it takes."""
        args = node.arguments
        if not 2 <= len(args) <= 3:
            raise FormulaRuntimeError("if(): expects a condition and one or two values")
        if truthy(self._eval(args[0])):
            return self._eval(args[1])
        return self._eval(args[2]) if len(args) == 3 else None

    def _eval_binary(self, node: BinaryOpNode) -> Any:
        """Evaluate a binary operation."""
        op = node.operator

        # Logical operators short-circuit and yield an operand
        if op == "&&":
            left = self._eval(node.left)
            return self._eval(node.right) if truthy(left) else left
        if op == "||":
            left = self._eval(node.left)
            return left if truthy(left) else self._eval(node.right)

        left = self._eval(node.left)
        right = self._eval(node.right)

        if op == "+":
            return self._add(left, right)
        if op in ("-", "*", "/", "%"):
            return self._arithmetic(op, left, right)

        # Comparison operators
        if op == "==":
            return values_equal(left, right)
        if op == "!=":
            return not values_equal(left, right)
        if op in ("<", ">", "<=", ">="):
            return self._compare(op, left, right)

        raise FormulaRuntimeError(f"Unknown operator: {op}")

    def _eval_unary(self, node: UnaryOpNode) -> Any:
        """Evaluate a unary operation."""
        operand = self._eval(node.operand)
        op = node.operator

        if op == "!":
            return not truthy(operand)

        if not is_number(operand):
            raise TypeError(f"unary '{op}' needs a number, got {type_name(operand)}")
        if op == "-":
            return normalize_number(-float(operand))
        if op == "+":
            return operand

        raise FormulaRuntimeError(f"Unknown unary operator: {op}")

    # ==========================================================================
    # Operator Implementations
    # ==========================================================================

    def _add(self, left: Any, right: Any) -> Any:
        """Numeric addition, or concatenation when either side is text."""
        if isinstance(left, str) or isinstance(right, str):
            return self._check_string(to_text(left) + to_text(right))
        if is_number(left) and is_number(right):
            return normalize_number(float(left) + float(right))
        raise TypeError(f"cannot add {type_name(left)} and {type_name(right)}")

    def _arithmetic(self, op: str, left: Any, right: Any) -> int | float:
        """IEEE-754 double arithmetic; never raises on zero or overflow."""
        if not (is_number(left) and is_number(right)):
            raise TypeError(
                f"'{op}' needs numbers, got {type_name(left)} and {type_name(right)}"
            )
        a, b = float(left), float(right)

        if op == "-":
            return normalize_number(a - b)
        if op == "*":
            return normalize_number(a * b)
        if op == "/":
            if b == 0:
                if a == 0 or math.isnan(a):
                    return math.nan
                return math.copysign(math.inf, a) * math.copysign(1.0, b)
            return normalize_number(a / b)

        # % keeps the sign of the dividend
        if b == 0 or math.isinf(a) or math.isnan(a) or math.isnan(b):
            return math.nan
        if math.isinf(b):
            return normalize_number(a)
        return normalize_number(math.fmod(a, b))

    def _compare(self, op: str, left: Any, right: Any) -> bool:
        if is_number(left) and is_number(right):
            a, b = float(left), float(right)
        elif isinstance(left, str) and isinstance(right, str):
            a, b = left, right
        else:
            raise TypeError(
                f"cannot compare {type_name(left)} with {type_name(right)} using '{op}'"
            )

        if op == "<":
            return a < b
        if op == ">":
            return a > b
        if op == "<=":
            return a <= b
        return a >= b
