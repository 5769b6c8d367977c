"""Tree-walking evaluator for parsed formula expressions.

Values are Python ``int`` (64-bit signed range) and ``bool``.  ``bool`` is
a subclass of ``int``, so every check below tests for ``bool`` first and
never lets one kind stand in for the other.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Mapping, Union

from gridcalc.formulas.ast import Add, BoolLiteral, Call, Equals, Expr, If, IntLiteral
from gridcalc.formulas.errors import (
    FormulaError,
    FormulaEvalError,
    FormulaFunctionError,
    FormulaOverflowError,
    FormulaTypeError,
)
from gridcalc.formulas.parsing import INT64_MAX, INT64_MIN

Value = Union[int, bool]
FormulaFunction = Callable[[list[Value]], Value]

# Built-ins resolved by exact name.  Intentionally empty: calls parse, but
# evaluate to "does not exist" until a function is registered here.
BUILTIN_FUNCTIONS: Mapping[str, FormulaFunction] = MappingProxyType({})


def evaluate_formula(
    expr: Expr,
    functions: Mapping[str, FormulaFunction] | None = None,
) -> Value:
    """Evaluate a parsed formula tree.

    Args:
        expr: Tree from ``parse_formula()``.
        functions: Function registry to resolve calls against.  Defaults to
            :data:`BUILTIN_FUNCTIONS`.

    Returns:
        The computed ``int`` or ``bool``.

    Raises:
        FormulaEvalError: On a type mismatch, unknown function or overflow.
    """
    registry = BUILTIN_FUNCTIONS if functions is None else functions
    try:
        return _eval(expr, registry)
    except RecursionError:
        raise FormulaEvalError("Formula is nested too deeply to evaluate") from None


def format_value(value: Value) -> str:
    """Display form of a value: ``true``/``false`` or base-10 digits."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _kind(value: Value) -> str:
    return "boolean" if isinstance(value, bool) else "integer"


def _expect_int(value: Value, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise FormulaTypeError(f"{where} expects an integer, got {_kind(value)} {format_value(value)}")
    return value


def _eval(node: Expr, functions: Mapping[str, FormulaFunction]) -> Value:
    if isinstance(node, IntLiteral):
        return node.value
    if isinstance(node, BoolLiteral):
        return node.value

    if isinstance(node, Add):
        left = _expect_int(_eval(node.left, functions), "+")
        right = _expect_int(_eval(node.right, functions), "+")
        total = left + right
        if not INT64_MIN <= total <= INT64_MAX:
            raise FormulaOverflowError(f"{left}+{right} does not fit in 64 bits")
        return total

    if isinstance(node, Equals):
        left = _expect_int(_eval(node.left, functions), "=")
        right = _expect_int(_eval(node.right, functions), "=")
        return left == right

    if isinstance(node, If):
        cond = _eval(node.cond, functions)
        if not isinstance(cond, bool):
            raise FormulaTypeError(f"if expects a boolean condition, got {_kind(cond)} {format_value(cond)}")
        # Only the taken branch is evaluated.
        return _eval(node.then if cond else node.otherwise, functions)

    if isinstance(node, Call):
        if node.name not in functions:
            raise FormulaFunctionError(node.name)
        args = [_eval(arg, functions) for arg in node.args]
        return functions[node.name](args)

    raise FormulaError(f"Unknown node type: {type(node).__name__}")
