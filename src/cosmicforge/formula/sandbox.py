"""Static allowlist check for parsed formulas.

A formula may only read bound names, call registered functions, use
the ``Math`` namespace, read ``.length`` and call ``.includes()``.
Everything else (host globals, arbitrary members such as
``constructor``, calls to unregistered functions, assignment) is
rejected before evaluation starts.
"""

from collections.abc import Collection

from cosmicforge.core.exceptions import FormulaSandboxViolation
from cosmicforge.formula.functions import FORMULA_FUNCTIONS, MATH_CONSTANTS, MATH_FUNCTIONS
from cosmicforge.formula.parser import (
    AssignmentNode,
    CallNode,
    IdentifierNode,
    MemberNode,
    Node,
)

MATH_NAMESPACE = "Math"

NAMESPACES = frozenset({MATH_NAMESPACE})

ALLOWED_PROPERTIES = frozenset({"length"})

ALLOWED_METHODS = frozenset({"includes"})

# Host globals a formula written for the old evaluator might reach for
FORBIDDEN_GLOBALS = frozenset(
    {
        "window",
        "globalThis",
        "self",
        "global",
        "document",
        "process",
        "require",
        "module",
        "exports",
        "import",
        "eval",
        "Function",
        "fetch",
        "XMLHttpRequest",
        "localStorage",
        "sessionStorage",
        "console",
        "setTimeout",
        "setInterval",
        "this",
        "constructor",
        "prototype",
        "__proto__",
        "Object",
        "Reflect",
        "Proxy",
        "__import__",
        "__builtins__",
    }
)


def describe(node: Node) -> str:
    """Short source-like rendering of a callee or member chain."""
    if isinstance(node, IdentifierNode):
        return node.name
    if isinstance(node, MemberNode):
        return f"{describe(node.target)}.{node.name}"
    return "(expression)"


def is_namespace(node: Node, bound_names: Collection[str]) -> bool:
    """True when ``node`` names a namespace that no field shadows."""
    return (
        isinstance(node, IdentifierNode)
        and node.name in NAMESPACES
        and node.name not in bound_names
    )


def check_sandbox(ast: Node, bound_names: Collection[str]) -> None:
    """
    Reject constructs outside the formula allowlist.

    Args:
        ast: Parsed formula
        bound_names: Field names that will have values at evaluation time

    Raises:
        FormulaSandboxViolation: On the first disallowed construct found
    """
    stack = [ast]
    while stack:
        node = stack.pop()

        if isinstance(node, AssignmentNode):
            raise FormulaSandboxViolation(f"assignment '{node.operator}'")

        if isinstance(node, CallNode):
            callee = node.callee
            if isinstance(callee, IdentifierNode):
                if callee.name not in FORMULA_FUNCTIONS:
                    raise FormulaSandboxViolation(f"{callee.name}()")
            elif isinstance(callee, MemberNode) and is_namespace(callee.target, bound_names):
                if callee.name not in MATH_FUNCTIONS:
                    raise FormulaSandboxViolation(f"{describe(callee)}()")
            elif isinstance(callee, MemberNode) and callee.name in ALLOWED_METHODS:
                stack.append(callee.target)
            else:
                raise FormulaSandboxViolation(f"{describe(callee)}()")
            stack.extend(node.arguments)
            continue

        if isinstance(node, MemberNode):
            if is_namespace(node.target, bound_names):
                if node.name not in MATH_CONSTANTS:
                    raise FormulaSandboxViolation(describe(node))
                continue
            if node.name not in ALLOWED_PROPERTIES:
                raise FormulaSandboxViolation(describe(node))
            stack.append(node.target)
            continue

        if isinstance(node, IdentifierNode):
            if node.name in bound_names:
                continue
            if node.name in NAMESPACES or node.name in FORBIDDEN_GLOBALS:
                raise FormulaSandboxViolation(node.name)
            continue

        stack.extend(node.children())
