"""Value semantics shared by the formula interpreter and its functions.

Formulas see plain JSON-like values: None, bool, int/float, str,
list and dict. Numbers behave like IEEE-754 doubles; integral results
are handed back as ``int`` so that ``2 + 3`` stores ``5`` rather than
``5.0``.
"""

import math
from typing import Any

# Largest integer a double represents exactly
MAX_SAFE_INTEGER = 2**53


def is_number(value: Any) -> bool:
    """True for int and float, but not bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_number(value: float) -> int | float:
    """Return integral, finite, exactly representable values as int; -0.0 stays a float."""
    if value == 0:
        return 0 if math.copysign(1.0, value) > 0 else value
    if math.isfinite(value) and value.is_integer() and abs(value) <= MAX_SAFE_INTEGER:
        return int(value)
    return value


def type_name(value: Any) -> str:
    """Name of a value's type as shown in error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "text"
    if isinstance(value, (list, tuple)):
        return "list"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def truthy(value: Any) -> bool:
    """JavaScript truthiness: 0, NaN, "", null and false are falsy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def format_number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def to_text(value: Any) -> str:
    """
    Render a scalar the way string concatenation sees it.

    Lists and objects have no text form; they only take part in
    membership, length, indexing and equality.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, dict)):
        raise TypeError(f"cannot convert {type_name(value)} to text")
    return str(value)


def value_size(value: Any, limit: int) -> int:
    """
    Size of a value: one per list, object and scalar, plus text characters.

    A list holding the same member twice counts it twice. Counting stops
    as soon as ``limit`` is passed.
    """
    size = 0
    stack = [value]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            size += max(len(item), 1)
        elif isinstance(item, (list, tuple)):
            size += 1
            stack.extend(item)
        elif isinstance(item, dict):
            size += 1
            for key, member in item.items():
                size += len(key)
                stack.append(member)
        else:
            size += 1
        if size > limit:
            break
    return size


def values_equal(left: Any, right: Any) -> bool:
    """Strict equality: no coercion between types, lists and objects compared by content."""
    pending = [(left, right)]
    while pending:
        a, b = pending.pop()
        if is_number(a) and is_number(b):
            if float(a) != float(b):
                return False
        elif isinstance(a, bool) or isinstance(b, bool):
            if not (isinstance(a, bool) and isinstance(b, bool) and a == b):
                return False
        elif isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
            if len(a) != len(b):
                return False
            pending.extend(zip(a, b))
        elif isinstance(a, dict) and isinstance(b, dict):
            if a.keys() != b.keys():
                return False
            pending.extend((a[k], b[k]) for k in a)
        elif type_name(a) != type_name(b) or a != b:
            return False
    return True
