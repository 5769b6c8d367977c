"""Sheet: a cell store whose cells display their formula results.

A cell whose raw text starts with ``=`` is a formula.  Exactly that one
character is stripped and the rest is parsed and evaluated every time
the cell is displayed.  Any other text is shown verbatim.  A formula
that fails displays its error message in place of a value; a bad cell
never affects any other cell.
"""

from __future__ import annotations

from typing import Any, Mapping

import polars as pl

from gridcalc.config import load_config
from gridcalc.formulas.errors import (
    ENGINE_ERRORS,
    FormulaError,
    FormulaParseError,
)
from gridcalc.formulas.evaluator import FormulaFunction, Value, evaluate_formula, format_value
from gridcalc.formulas.parser import parse_formula
from gridcalc.logging.events import (
    SYNTAX_ERROR,
    EventLevel,
    EventType,
    emit,
    make_cell_event,
)
from gridcalc.store import CellStore

FORMULA_MARKER = "="


def is_formula(text: str) -> bool:
    return text.startswith(FORMULA_MARKER)


class Sheet:
    """Cell store plus on-demand formula display.

    Parameters
    ----------
    store : CellStore | None
        Backing store; a new empty one when omitted.
    config : dict[str, Any] | None
        Display settings (see :data:`gridcalc.config.DEFAULT_CONFIG`).
    functions : Mapping[str, FormulaFunction] | None
        Function registry for formula calls; the built-in one when omitted.
    """

    def __init__(
        self,
        store: CellStore | None = None,
        config: dict[str, Any] | None = None,
        functions: Mapping[str, FormulaFunction] | None = None,
    ) -> None:
        self.store = store if store is not None else CellStore()
        self.config = config if config is not None else load_config()
        self._functions = functions

    # ------------------------------------------------------------------
    # Store passthrough
    # ------------------------------------------------------------------

    def set(self, x: int, y: int, text: str) -> None:
        self.store.set(x, y, text)
        emit(make_cell_event(EventType.cell_set, EventLevel.info, "Cell set", x=x, y=y, contents=text))

    def raw_text(self, x: int, y: int) -> str:
        return self.store.raw_text(x, y)

    def bounding_box(self) -> tuple[int, int]:
        return self.store.bounding_box()

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def evaluate_cell(self, x: int, y: int) -> Value:
        """Evaluate the formula stored at ``(x, y)``.

        Raises:
            FormulaParseError: If the cell holds no formula or a malformed one.
            FormulaEvalError: If evaluation fails.
        """
        text = self.raw_text(x, y)
        if not is_formula(text):
            raise FormulaParseError(f"Cell ({x}, {y}) does not hold a formula", position=0)
        expr = parse_formula(text[len(FORMULA_MARKER):])
        return evaluate_formula(expr, self._functions)

    def display_cell(self, x: int, y: int) -> str:
        """Display string for ``(x, y)``: verbatim text, a value, or an error."""
        text = self.raw_text(x, y)
        if not is_formula(text):
            return text
        try:
            return format_value(self.evaluate_cell(x, y))
        except ENGINE_ERRORS as exc:
            self._report(x, y, text, exc)
            return str(exc)

    def _report(self, x: int, y: int, text: str, exc: FormulaError) -> None:
        if isinstance(exc, FormulaParseError):
            event_type, code = EventType.formula_parse_error, SYNTAX_ERROR
        else:
            event_type, code = EventType.formula_eval_error, exc.kind
        emit(
            make_cell_event(
                event_type,
                EventLevel.warning,
                str(exc),
                x=x,
                y=y,
                contents=text,
                error_code=code,
            )
        )

    def rows(self) -> list[list[str]]:
        """Displayed values of ``[0, max_x] x [0, max_y]``, row by row."""
        max_x, max_y = self.bounding_box()
        return [[self.display_cell(x, y) for x in range(max_x + 1)] for y in range(max_y + 1)]

    def render(self) -> str:
        """Render the whole sheet as text, one line per row.

        Empty cells show the ``empty_display`` placeholder and columns are
        joined with ``column_separator``.
        """
        empty = self.config.get("empty_display", "_")
        sep = self.config.get("column_separator", ",\t")
        lines = [sep.join(value or empty for value in row) for row in self.rows()]
        return "\n".join(lines) + "\n"

    def to_frame(self) -> pl.DataFrame:
        """Displayed values as a string DataFrame, one column per x."""
        rows = self.rows()
        columns = [str(x) for x in range(len(rows[0]))]
        return pl.DataFrame(rows, schema={c: pl.Utf8 for c in columns}, orient="row")
