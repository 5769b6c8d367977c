"""Recursive-descent grammar for cell formulas.

Built from the combinators in :mod:`gridcalc.formulas.parsing`.  At every
expression position the alternatives are tried in this order and the
first one that succeeds wins::

    expr := INT
          | "true" | "false"
          | "(" expr "+" expr ")"
          | "(" expr "=" expr ")"
          | "if(" expr "," expr "," expr ")"
          | NAME "(" [expr ("," expr)*] ")"

NAME is a run of ASCII letters and digits.  There is no whitespace and no
operator precedence: every binary form is parenthesized.  Keep more
specific alternatives before less specific ones sharing a prefix
(``if(`` before a call), otherwise the specific one is never reached.

Nesting depth is bounded by the interpreter recursion limit: each level
of parentheses costs a handful of stack frames, so with the default limit
formulas nest to roughly 150 levels.  Deeper input is rejected with
"Formula is nested too deeply" rather than crashing.
"""

from __future__ import annotations

from typing import Any, Callable

from gridcalc.formulas.ast import Add, BoolLiteral, Call, Equals, Expr, If, IntLiteral
from gridcalc.formulas.errors import FormulaParseError
from gridcalc.formulas.parsing import ParseFailure, Parsing, is_ascii_alnum


def parse_formula(text: str) -> Expr:
    """Parse a formula body into an expression tree.

    Args:
        text: The formula with the leading ``=`` already removed,
            e.g. ``"(13+(2+5))"``.

    Returns:
        The root :data:`Expr` node.

    Raises:
        FormulaParseError: If the text is not a complete expression.
    """
    try:
        return _Grammar().expr(Parsing.new(text)).done().get()
    except RecursionError:
        raise FormulaParseError("Formula is nested too deeply") from None


class _Grammar:
    """One parse run.

    Results of :meth:`expr` are memoized by offset: ``(A+B)`` and ``(A=B)``
    both parse ``A`` from the same offset, which is exponential in the
    nesting depth otherwise.  The memo lives only as long as the run.
    """

    def __init__(self) -> None:
        self._memo: dict[int, Parsing[Expr] | ParseFailure] = {}
        self._sum_body = self._binary_body("+", Add)
        self._equality_body = self._binary_body("=", Equals)
        self._alternatives = (
            self.int_literal,
            self.bool_literal,
            self.addition,
            self.equality,
            self.conditional,
            self.call,
        )

    # ------------------------------------------------------------------
    # Expression choice point
    # ------------------------------------------------------------------

    def expr(self, p: Parsing[Any]) -> Parsing[Expr]:
        if p.pos not in self._memo:
            try:
                self._memo[p.pos] = p.try_one(self._alternatives)
            except ParseFailure as exc:
                self._memo[p.pos] = exc
        result = self._memo[p.pos]
        if isinstance(result, ParseFailure):
            raise result
        return result

    # ------------------------------------------------------------------
    # Alternatives
    # ------------------------------------------------------------------

    def int_literal(self, p: Parsing[Any]) -> Parsing[Expr]:
        q = p.parse_int()
        return q.replace(IntLiteral(q.get()))

    def bool_literal(self, p: Parsing[Any]) -> Parsing[Expr]:
        return p.try_one([
            lambda q: q.skip("true").replace(BoolLiteral(True)),
            lambda q: q.skip("false").replace(BoolLiteral(False)),
        ])

    def _binary_body(self, op: str, node: Callable[[Expr, Expr], Expr]) -> Callable:
        def body(p: Parsing[Any]) -> Parsing[Expr]:
            left = self.expr(p)
            right = self.expr(left.skip(op))
            return right.replace(node(left.get(), right.get()))

        return body

    def addition(self, p: Parsing[Any]) -> Parsing[Expr]:
        return p.wrapped("(", self._sum_body, ")")

    def equality(self, p: Parsing[Any]) -> Parsing[Expr]:
        return p.wrapped("(", self._equality_body, ")")

    def _if_body(self, p: Parsing[Any]) -> Parsing[Expr]:
        cond = self.expr(p)
        then = self.expr(cond.skip(","))
        otherwise = self.expr(then.skip(","))
        return otherwise.replace(If(cond.get(), then.get(), otherwise.get()))

    def conditional(self, p: Parsing[Any]) -> Parsing[Expr]:
        return p.skip("if").wrapped("(", self._if_body, ")")

    def call(self, p: Parsing[Any]) -> Parsing[Expr]:
        name = p.match_while(is_ascii_alnum, "a function name")
        args = name.wrapped("(", self._arguments, ")")
        return args.replace(Call(name.get(), tuple(args.get())))

    # ------------------------------------------------------------------
    # Argument lists
    # ------------------------------------------------------------------

    def _arguments(self, p: Parsing[Any]) -> Parsing[list[Expr]]:
        return p.try_one([self._many_arguments, self._one_argument, self._no_arguments])

    def _argument_then_comma(self, p: Parsing[Any]) -> Parsing[Expr]:
        return self.expr(p).skip(",")

    def _many_arguments(self, p: Parsing[Any]) -> Parsing[list[Expr]]:
        leading = p.repeat_one_or_more(self._argument_then_comma)
        last = self.expr(leading)
        return last.replace([*leading.get(), last.get()])

    def _one_argument(self, p: Parsing[Any]) -> Parsing[list[Expr]]:
        arg = self.expr(p)
        return arg.replace([arg.get()])

    def _no_arguments(self, p: Parsing[Any]) -> Parsing[list[Expr]]:
        return p.replace([])
