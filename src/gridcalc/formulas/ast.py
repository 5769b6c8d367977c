"""Expression tree produced by the formula grammar."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class IntLiteral:
    value: int


@dataclass(frozen=True)
class BoolLiteral:
    value: bool


@dataclass(frozen=True)
class Add:
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Equals:
    left: Expr
    right: Expr


@dataclass(frozen=True)
class If:
    cond: Expr
    then: Expr
    otherwise: Expr


@dataclass(frozen=True)
class Call:
    """Named function call; ``args`` keeps source order."""

    name: str
    args: tuple[Expr, ...] = ()


Expr = Union[IntLiteral, BoolLiteral, Add, Equals, If, Call]


def format_expr(expr: Expr) -> str:
    """Render *expr* as canonical formula source, without the ``=`` marker.

    Any tree returned by ``parse_formula()`` parses back from the output to
    an equal tree.
    """
    if isinstance(expr, BoolLiteral):
        return "true" if expr.value else "false"
    if isinstance(expr, IntLiteral):
        return str(expr.value)
    if isinstance(expr, Add):
        return f"({format_expr(expr.left)}+{format_expr(expr.right)})"
    if isinstance(expr, Equals):
        return f"({format_expr(expr.left)}={format_expr(expr.right)})"
    if isinstance(expr, If):
        parts = (expr.cond, expr.then, expr.otherwise)
        return "if(" + ",".join(format_expr(p) for p in parts) + ")"
    if isinstance(expr, Call):
        return f"{expr.name}(" + ",".join(format_expr(a) for a in expr.args) + ")"
    raise TypeError(f"Not an expression: {expr!r}")
