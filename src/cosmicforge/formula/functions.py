"""Formula functions for Cosmic Forge.

Implements the closed set of functions a formula may call. Bare
functions (``round(x, 2)``) live in ``FORMULA_FUNCTIONS``; the ``Math``
namespace (``Math.round(x)``, ``Math.PI``) lives in ``MATH_FUNCTIONS``
and ``MATH_CONSTANTS``. Nothing outside these registries is callable.

Functions raise ``TypeError`` or ``ValueError`` on bad arguments; the
evaluator turns those into field-scoped runtime failures.
"""

import math
from typing import Any, Callable

from cosmicforge.formula.values import (
    is_number,
    normalize_number,
    to_text,
    truthy,
    type_name,
    values_equal,
)


# Type alias for formula functions
FormulaFunction = Callable[..., Any]

# Registry of bare formula functions
FORMULA_FUNCTIONS: dict[str, FormulaFunction] = {}

# Registry of Math.<name> functions
MATH_FUNCTIONS: dict[str, FormulaFunction] = {}

MATH_CONSTANTS: dict[str, float] = {
    "PI": math.pi,
    "E": math.e,
}


def register_function(name: str) -> Callable[[FormulaFunction], FormulaFunction]:
    """Decorator to register a bare formula function."""

    def decorator(func: FormulaFunction) -> FormulaFunction:
        FORMULA_FUNCTIONS[name] = func
        return func

    return decorator


def register_math_function(name: str) -> Callable[[FormulaFunction], FormulaFunction]:
    """Decorator to register a ``Math.<name>`` function."""

    def decorator(func: FormulaFunction) -> FormulaFunction:
        MATH_FUNCTIONS[name] = func
        return func

    return decorator


def _number(value: Any, what: str = "argument") -> float:
    if not is_number(value):
        raise TypeError(f"{what} must be a number, got {type_name(value)}")
    return float(value)


def _flatten(args: tuple[Any, ...]) -> list[Any]:
    """Spread list arguments one level: sum(a, [b, c]) == sum(a, b, c)."""
    flat: list[Any] = []
    for arg in args:
        if isinstance(arg, (list, tuple)):
            flat.extend(arg)
        else:
            flat.append(arg)
    return flat


def _round_half_up(value: float, decimals: int = 0) -> float:
    """Round like JavaScript's Math.round: halves go toward +Infinity."""
    # Doubles from 2**52 up have no fractional part; scaling them can overflow
    if not math.isfinite(value) or abs(value) >= 2.0**52:
        return value
    factor = 10.0**decimals
    return math.floor(value * factor + 0.5) / factor


# =============================================================================
# Numeric Functions
# =============================================================================


@register_math_function("round")
def math_round(value: Any) -> int | float:
    """Round to the nearest integer."""
    return normalize_number(_round_half_up(_number(value)))


@register_function("round")
def func_round(value: Any, decimals: Any = 0) -> int | float:
    """Round to specified decimals."""
    places = _number(decimals, "decimals")
    if not places.is_integer() or not 0 <= places <= 15:
        raise ValueError("decimals must be a whole number between 0 and 15")
    return normalize_number(_round_half_up(_number(value), int(places)))


@register_math_function("floor")
@register_function("floor")
def func_floor(value: Any) -> int | float:
    """Round down."""
    v = _number(value)
    return normalize_number(float(math.floor(v))) if math.isfinite(v) else v


@register_math_function("ceil")
@register_function("ceil")
def func_ceil(value: Any) -> int | float:
    """Round up."""
    v = _number(value)
    return normalize_number(float(math.ceil(v))) if math.isfinite(v) else v


@register_math_function("trunc")
def func_trunc(value: Any) -> int | float:
    """Drop the fractional part."""
    v = _number(value)
    return normalize_number(float(math.trunc(v))) if math.isfinite(v) else v


@register_math_function("sign")
def func_sign(value: Any) -> int | float:
    v = _number(value)
    if math.isnan(v):
        return v
    return (v > 0) - (v < 0)


@register_math_function("abs")
@register_function("abs")
def func_abs(value: Any) -> int | float:
    """Absolute value."""
    return normalize_number(abs(_number(value)))


@register_math_function("min")
@register_function("min")
def func_min(*args: Any) -> int | float:
    """Smallest number; lists are spread."""
    numbers = [_number(v) for v in _flatten(args)]
    if any(math.isnan(n) for n in numbers):
        return math.nan
    return normalize_number(min(numbers)) if numbers else math.inf


@register_math_function("max")
@register_function("max")
def func_max(*args: Any) -> int | float:
    """Largest number; lists are spread."""
    numbers = [_number(v) for v in _flatten(args)]
    if any(math.isnan(n) for n in numbers):
        return math.nan
    return normalize_number(max(numbers)) if numbers else -math.inf


@register_math_function("pow")
@register_function("pow")
def func_pow(base: Any, exponent: Any) -> int | float:
    """Raise to power."""
    b = _number(base, "base")
    e = _number(exponent, "exponent")
    try:
        return normalize_number(math.pow(b, e))
    except OverflowError:
        # Odd integral exponents keep the base's sign
        negative = b < 0 and e.is_integer() and int(e) % 2 == 1
        return -math.inf if negative else math.inf
    except ValueError:
        return math.nan


@register_math_function("sqrt")
@register_function("sqrt")
def func_sqrt(value: Any) -> int | float:
    """Square root; negative input gives NaN."""
    v = _number(value)
    if v < 0:
        return math.nan
    return normalize_number(math.sqrt(v))


@register_math_function("log")
def func_log(value: Any) -> float:
    """Natural logarithm."""
    v = _number(value)
    if v == 0:
        return -math.inf
    if v < 0 or math.isnan(v):
        return math.nan
    return normalize_number(math.log(v))


@register_math_function("log10")
def func_log10(value: Any) -> float:
    v = _number(value)
    if v == 0:
        return -math.inf
    if v < 0 or math.isnan(v):
        return math.nan
    return normalize_number(math.log10(v))


@register_math_function("exp")
def func_exp(value: Any) -> float:
    """e raised to power."""
    try:
        return normalize_number(math.exp(_number(value)))
    except OverflowError:
        return math.inf


@register_math_function("sin")
def func_sin(value: Any) -> float:
    v = _number(value)
    return math.sin(v) if math.isfinite(v) else math.nan


@register_math_function("cos")
def func_cos(value: Any) -> float:
    v = _number(value)
    return math.cos(v) if math.isfinite(v) else math.nan


@register_math_function("tan")
def func_tan(value: Any) -> float:
    v = _number(value)
    return math.tan(v) if math.isfinite(v) else math.nan


@register_function("sum")
def func_sum(*args: Any) -> int | float:
    """Sum of numeric values; lists are spread."""
    return normalize_number(math.fsum(_number(v) for v in _flatten(args)))


@register_function("avg")
def func_avg(*args: Any) -> int | float | None:
    """Average of numeric values; null when there are none."""
    numbers = [_number(v) for v in _flatten(args)]
    if not numbers:
        return None
    return normalize_number(math.fsum(numbers) / len(numbers))


@register_function("num")
def func_num(value: Any) -> int | float:
    """Convert text or boolean to number; unparseable text gives NaN."""
    if is_number(value):
        return value
    if isinstance(value, bool):
        return int(value)
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return normalize_number(float(text))
        except ValueError:
            return math.nan
    raise TypeError(f"cannot convert {type_name(value)} to a number")


# =============================================================================
# Text and List Functions
# =============================================================================


@register_function("len")
def func_len(value: Any) -> int:
    """Length of text or list."""
    if isinstance(value, (str, list, tuple)):
        return len(value)
    raise TypeError(f"len() needs text or a list, got {type_name(value)}")


@register_function("includes")
def func_includes(container: Any, item: Any) -> bool:
    """Membership in a list, or substring in text."""
    if isinstance(container, (list, tuple)):
        return any(values_equal(element, item) for element in container)
    if isinstance(container, str):
        if not isinstance(item, str):
            raise TypeError(f"text can only contain text, got {type_name(item)}")
        return item in container
    raise TypeError(f"includes() needs text or a list, got {type_name(container)}")


@register_function("concat")
def func_concat(*args: Any) -> str:
    """Concatenate values into a string."""
    return "".join("" if a is None else to_text(a) for a in args)


@register_function("str")
def func_str(value: Any) -> str:
    """Convert to text."""
    return to_text(value)


def _text(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected text, got {type_name(value)}")
    return value


@register_function("upper")
def func_upper(text: Any) -> str:
    """Convert to uppercase."""
    return _text(text).upper()


@register_function("lower")
def func_lower(text: Any) -> str:
    """Convert to lowercase."""
    return _text(text).lower()


@register_function("trim")
def func_trim(text: Any) -> str:
    """Remove leading/trailing whitespace."""
    return _text(text).strip()


# =============================================================================
# Logical Functions
# =============================================================================


@register_function("if")
def func_if(condition: Any, if_true: Any, if_false: Any = None) -> Any:
    """Conditional: if(condition, value_if_true, value_if_false)."""
    return if_true if truthy(condition) else if_false
