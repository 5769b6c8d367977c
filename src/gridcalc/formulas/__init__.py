"""Cell formula parsing and evaluation.

Public API::

    from gridcalc.formulas import parse_formula, evaluate_formula, format_value
"""

from gridcalc.formulas.ast import (
    Add,
    BoolLiteral,
    Call,
    Equals,
    Expr,
    If,
    IntLiteral,
    format_expr,
)
from gridcalc.formulas.errors import (
    ENGINE_ERRORS,
    FormulaError,
    FormulaEvalError,
    FormulaFunctionError,
    FormulaOverflowError,
    FormulaParseError,
    FormulaTypeError,
)
from gridcalc.formulas.evaluator import (
    BUILTIN_FUNCTIONS,
    Value,
    evaluate_formula,
    format_value,
)
from gridcalc.formulas.parser import parse_formula

__all__ = [
    "Add",
    "BUILTIN_FUNCTIONS",
    "BoolLiteral",
    "Call",
    "ENGINE_ERRORS",
    "Equals",
    "Expr",
    "FormulaError",
    "FormulaEvalError",
    "FormulaFunctionError",
    "FormulaOverflowError",
    "FormulaParseError",
    "FormulaTypeError",
    "If",
    "IntLiteral",
    "Value",
    "evaluate_formula",
    "format_expr",
    "format_value",
    "parse_formula",
]
