"""Error types for formula parsing and evaluation."""

from __future__ import annotations


class FormulaError(Exception):
    """Base class for all formula-related errors."""


class FormulaParseError(FormulaError):
    """Syntax error in a formula expression.

    Attributes:
        position: Character position where the error was detected.
        message: Human-readable description.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.message = message
        self.position = position
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


class FormulaEvalError(FormulaError):
    """A well-formed formula that cannot be reduced to a value.

    Attributes:
        kind: Machine-readable error kind.
        detail: Human-readable description.
    """

    kind = "evaluation"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class FormulaTypeError(FormulaEvalError):
    """An operator or conditional received an operand of the wrong kind."""

    kind = "type_mismatch"


class FormulaFunctionError(FormulaEvalError):
    """Call to a function that is not in the registry.

    Attributes:
        func_name: The function that caused the error.
    """

    kind = "unknown_function"

    def __init__(self, func_name: str, message: str | None = None) -> None:
        self.func_name = func_name
        super().__init__(message or f"Function {func_name!r} does not exist")


class FormulaOverflowError(FormulaEvalError):
    """Integer arithmetic left the 64-bit signed range."""

    kind = "overflow"


# Everything the engine raises for a bad formula.  Display code catches
# this tuple; anything else is a bug.
ENGINE_ERRORS: tuple[type[Exception], ...] = (
    FormulaParseError,
    FormulaEvalError,
)
