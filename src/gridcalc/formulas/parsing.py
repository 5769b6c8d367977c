"""Backtracking parser combinators over an immutable cursor.

A :class:`Parsing` value is the whole parse state: the source text, the
current offset, and the payload produced by the last successful step.
Every combinator returns a *new* state and never touches the old one, so
backtracking is just retrying from a state you still hold::

    p = Parsing.new("(1+2)")
    p.wrapped("(", _sum, ")").done().get()

Failures are raised as :class:`ParseFailure`.  :meth:`Parsing.try_one` is
the only place that catches them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

from gridcalc.formulas.errors import FormulaParseError

T = TypeVar("T")
U = TypeVar("U")

Transformer = Callable[["Parsing[Any]"], "Parsing[Any]"]

# Integer literals are 64-bit signed.
INT64_MAX = 2**63 - 1
INT64_MIN = -(2**63)
_INT64_DIGITS = len(str(INT64_MAX))


class ParseFailure(FormulaParseError):
    """A recoverable failure raised by a combinator.

    Attributes:
        attempts: For a failed :meth:`Parsing.try_one`, the failure of each
            alternative in the order tried.
    """

    def __init__(
        self,
        message: str,
        position: int | None = None,
        attempts: Sequence[ParseFailure] = (),
    ) -> None:
        self.attempts = tuple(attempts)
        super().__init__(message, position)


def is_ascii_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def is_ascii_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


@dataclass(frozen=True)
class Parsing(Generic[T]):
    """Immutable parse cursor carrying the most recently parsed value."""

    text: str
    pos: int = 0
    val: Any = None

    @classmethod
    def new(cls, text: str) -> Parsing[None]:
        return cls(text, 0, None)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def rest(self) -> str:
        """The unconsumed remainder of the source text."""
        return self.text[self.pos:]

    def get(self) -> T:
        return self.val

    def replace(self, val: U) -> Parsing[U]:
        """Return a state at the same offset carrying *val*."""
        return Parsing(self.text, self.pos, val)

    def fail(self, message: str) -> ParseFailure:
        """Build (not raise) a failure located at this state's offset."""
        return ParseFailure(message, self.pos)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def skip(self, literal: str) -> Parsing[T]:
        """Advance past *literal* if the remaining text starts with it."""
        if self.text.startswith(literal, self.pos):
            return Parsing(self.text, self.pos + len(literal), self.val)
        raise self.fail(f'Expected "{literal}" but found "{self.rest}" instead')

    def match_while(
        self, predicate: Callable[[str], bool], predicate_name: str
    ) -> Parsing[str]:
        """Consume the longest non-empty run of characters matching *predicate*.

        The payload of the returned state is the matched substring.
        """
        end = self.pos
        while end < len(self.text) and predicate(self.text[end]):
            end += 1
        if end == self.pos:
            raise self.fail(f'Expected {predicate_name}, instead found "{self.rest}"')
        return Parsing(self.text, end, self.text[self.pos:end])

    def parse_int(self) -> Parsing[int]:
        """Parse a run of ASCII digits as a non-negative 64-bit integer."""
        digits = self.match_while(is_ascii_digit, "an int")
        # Length check first: int() refuses very long digit strings.
        significant = digits.val.lstrip("0")
        if len(significant) > _INT64_DIGITS or int(significant or "0") > INT64_MAX:
            shown = digits.val if len(digits.val) <= 40 else digits.val[:20] + "..."
            raise self.fail(f"Integer literal {shown} does not fit in 64 bits")
        return digits.replace(int(significant or "0"))

    def done(self) -> Parsing[T]:
        """Require that the whole input has been consumed."""
        if self.pos == len(self.text):
            return self
        raise self.fail(f'expected end of string, instead found "{self.rest}"')

    # ------------------------------------------------------------------
    # Combinators
    # ------------------------------------------------------------------

    def try_one(self, transformers: Sequence[Transformer]) -> Parsing[Any]:
        """Return the result of the first transformer that succeeds.

        Every transformer starts from this same state, so whatever a failed
        attempt consumed is discarded.  Order is the tie-break: the first
        success wins even if a later alternative would consume more.
        """
        failures: list[ParseFailure] = []
        for transformer in transformers:
            try:
                return transformer(self)
            except ParseFailure as exc:
                failures.append(exc)
        raise ParseFailure(
            f'No method worked parsing at "{self.rest}"',
            self.pos,
            attempts=failures,
        )

    def repeat_one_or_more(self, transformer: Transformer) -> Parsing[list[Any]]:
        """Apply *transformer* until it fails, collecting payloads in order.

        The first application must succeed; its failure propagates.  An
        application that succeeds without consuming input ends the run.
        """
        state = transformer(self)
        values = [state.val]
        while True:
            try:
                nxt = transformer(state)
            except ParseFailure:
                break
            if nxt.pos == state.pos:
                break
            values.append(nxt.val)
            state = nxt
        return state.replace(values)

    def wrapped(self, left: str, inner: Transformer, right: str) -> Parsing[Any]:
        """Parse ``left``, then *inner*, then ``right``; keep inner's payload."""
        return inner(self.skip(left)).skip(right)
