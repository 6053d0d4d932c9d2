"""Formula parser for Cosmic Forge.

Parses formula strings into an AST using the Lark parser.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterator

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import LarkError, UnexpectedCharacters, UnexpectedEOF, UnexpectedToken

from cosmicforge.core.config import get_settings
from cosmicforge.core.exceptions import FormulaError, FormulaSyntaxError
from cosmicforge.formula.grammar import FORMULA_GRAMMAR
from cosmicforge.formula.values import normalize_number


# AST Node types
@dataclass
class Node:
    def children(self) -> tuple["Node", ...]:
        return ()


@dataclass
class NumberNode(Node):
    value: float | int


@dataclass
class StringNode(Node):
    value: str


@dataclass
class BooleanNode(Node):
    value: bool


@dataclass
class NullNode(Node):
    pass


@dataclass
class IdentifierNode(Node):
    name: str


@dataclass
class ArrayNode(Node):
    items: list[Node] = field(default_factory=list)

    def children(self) -> tuple[Node, ...]:
        return tuple(self.items)


@dataclass
class ObjectNode(Node):
    entries: list[tuple[str, Node]] = field(default_factory=list)

    def children(self) -> tuple[Node, ...]:
        return tuple(value for _, value in self.entries)


@dataclass
class MemberNode(Node):
    target: Node
    name: str

    def children(self) -> tuple[Node, ...]:
        return (self.target,)


@dataclass
class IndexNode(Node):
    target: Node
    index: Node

    def children(self) -> tuple[Node, ...]:
        return (self.target, self.index)


@dataclass
class CallNode(Node):
    callee: Node
    arguments: list[Node] = field(default_factory=list)

    def children(self) -> tuple[Node, ...]:
        return (self.callee, *self.arguments)


@dataclass
class BinaryOpNode(Node):
    operator: str
    left: Node
    right: Node

    def children(self) -> tuple[Node, ...]:
        return (self.left, self.right)


@dataclass
class UnaryOpNode(Node):
    operator: str
    operand: Node

    def children(self) -> tuple[Node, ...]:
        return (self.operand,)


@dataclass
class ConditionalNode(Node):
    test: Node
    consequent: Node
    alternate: Node

    def children(self) -> tuple[Node, ...]:
        return (self.test, self.consequent, self.alternate)


@dataclass
class AssignmentNode(Node):
    operator: str
    target: Node
    value: Node

    def children(self) -> tuple[Node, ...]:
        return (self.target, self.value)


_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)


def _unquote(token: str) -> str:
    """Strip quotes and resolve backslash escapes."""

    def replace(match: re.Match) -> str:
        seq = match.group(1)
        if seq.startswith("u") and len(seq) == 5:
            return chr(int(seq[1:], 16))
        return _ESCAPES.get(seq, seq)

    return _ESCAPE_RE.sub(replace, token[1:-1])


def _binary(operator: str):
    @v_args(inline=True)
    def build(self, left, right):
        return BinaryOpNode(operator, left, right)

    return build


class FormulaTransformer(Transformer):
    """Transform Lark parse tree into AST nodes."""

    @v_args(inline=True)
    def number(self, token):
        return NumberNode(normalize_number(float(token)))

    @v_args(inline=True)
    def string(self, token):
        return StringNode(_unquote(str(token)))

    def true(self, _):
        return BooleanNode(True)

    def false(self, _):
        return BooleanNode(False)

    def null(self, _):
        return NullNode()

    @v_args(inline=True)
    def identifier(self, token):
        return IdentifierNode(str(token))

    @v_args(inline=True)
    def array(self, items):
        return ArrayNode(list(items or []))

    @v_args(inline=True)
    def obj(self, entries):
        return ObjectNode(list(entries or []))

    def arguments(self, items):
        return list(items)

    def entries(self, items):
        return list(items)

    @v_args(inline=True)
    def entry(self, key: Token, value):
        name = _unquote(str(key)) if key.type == "STRING" else str(key)
        return (name, value)

    @v_args(inline=True)
    def member(self, target, name):
        return MemberNode(target, str(name))

    @v_args(inline=True)
    def index(self, target, index):
        return IndexNode(target, index)

    @v_args(inline=True)
    def call(self, callee, arguments):
        return CallNode(callee, list(arguments or []))

    @v_args(inline=True)
    def ternary(self, test, consequent, alternate):
        return ConditionalNode(test, consequent, alternate)

    @v_args(inline=True)
    def assignment(self, target, operator, value):
        return AssignmentNode(str(operator), target, value)

    # Binary operators
    add = _binary("+")
    sub = _binary("-")
    mul = _binary("*")
    div = _binary("/")
    mod = _binary("%")

    # Comparison operators (== and === share strict semantics)
    eq = _binary("==")
    ne = _binary("!=")
    lt = _binary("<")
    gt = _binary(">")
    le = _binary("<=")
    ge = _binary(">=")

    # Logical operators
    and_op = _binary("&&")
    or_op = _binary("||")

    @v_args(inline=True)
    def not_op(self, operand):
        return UnaryOpNode("!", operand)

    @v_args(inline=True)
    def neg(self, operand):
        return UnaryOpNode("-", operand)

    @v_args(inline=True)
    def pos(self, operand):
        return UnaryOpNode("+", operand)


@lru_cache(maxsize=1)
def _get_lark() -> Lark:
    """Build the LALR parser once; construction compiles the grammar."""
    return Lark(
        FORMULA_GRAMMAR,
        parser="lalr",
        transformer=FormulaTransformer(),
    )


def iter_nodes(ast: Node) -> Iterator[Node]:
    """Yield every node of the tree, parents before children."""
    stack = [ast]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children()))


def node_depth(ast: Node) -> int:
    """Height of the tree, computed without recursion."""
    deepest = 0
    stack = [(ast, 1)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in node.children())
    return deepest


def _describe_syntax_error(error: LarkError) -> str:
    if isinstance(error, UnexpectedEOF):
        return "Unexpected end of formula"
    if isinstance(error, UnexpectedToken):
        if error.token.type == "$END":
            return "Unexpected end of formula"
        return (
            f"Unexpected '{error.token}' at line {error.line}, column {error.column}"
        )
    if isinstance(error, UnexpectedCharacters):
        return (
            f"Unexpected character '{error.char}' at line {error.line}, column {error.column}"
        )
    return str(error)


class FormulaParser:
    """
    Parser for Cosmic Forge formulas.

    Parses formula strings into an AST that can be evaluated.
    """

    def __init__(self, max_length: int | None = None, max_depth: int | None = None):
        settings = get_settings()
        self.max_length = max_length or settings.formula_max_length
        self.max_depth = max_depth or settings.formula_max_depth
        self._parser = _get_lark()

    def parse(self, formula: str) -> Node:
        """
        Parse a formula string into an AST.

        Args:
            formula: Formula string to parse

        Returns:
            AST root node

        Raises:
            FormulaSyntaxError: If formula syntax is invalid or exceeds limits
        """
        if not isinstance(formula, str) or not formula.strip():
            raise FormulaSyntaxError("Formula is empty")
        if len(formula) > self.max_length:
            raise FormulaSyntaxError(
                f"Formula is longer than {self.max_length} characters",
                details={"length": len(formula), "max_length": self.max_length},
            )

        try:
            ast = self._parser.parse(formula)
        except LarkError as e:
            raise FormulaSyntaxError(
                f"Invalid formula syntax: {_describe_syntax_error(e)}"
            ) from e

        depth = node_depth(ast)
        if depth > self.max_depth:
            raise FormulaSyntaxError(
                f"Formula is nested more than {self.max_depth} levels deep",
                details={"depth": depth, "max_depth": self.max_depth},
            )
        return ast

    def validate(self, formula: str) -> tuple[bool, str | None]:
        """
        Validate formula syntax.

        Args:
            formula: Formula string to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            self.parse(formula)
            return True, None
        except FormulaError as e:
            return False, e.message

    def get_identifiers(self, formula: str | Node) -> set[str]:
        """
        Extract the bare identifiers a formula reads.

        Function names in call position, member names and object keys
        are not references and are left out.

        Args:
            formula: Formula string or already parsed AST

        Returns:
            Set of identifier names
        """
        ast = self.parse(formula) if isinstance(formula, str) else formula
        return collect_identifiers(ast)


def collect_identifiers(ast: Node) -> set[str]:
    """Collect identifier references from an AST."""
    names: set[str] = set()
    stack = [ast]
    while stack:
        node = stack.pop()
        if isinstance(node, IdentifierNode):
            names.add(node.name)
            continue
        if isinstance(node, CallNode) and isinstance(node.callee, IdentifierNode):
            stack.extend(node.arguments)
            continue
        stack.extend(node.children())
    return names
