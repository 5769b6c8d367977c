"""Sparse, auto-growing two-dimensional cell store.

Cells live in one flat row-major list indexed by ``x + y * width``.  The
physical array only ever doubles, so a run of far-apart writes costs
amortized O(cells written), the two-dimensional analogue of a dynamic
array.  The logical extent of the sheet, the bounding box of every
``set`` call, is tracked separately from the physical size.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from gridcalc.logging.events import EventType, emit_info


class CellRef(NamedTuple):
    x: int
    y: int


@dataclass
class Cell:
    """Raw cell text plus the cells that refer back to it.

    ``backrefs`` is reserved for dependency tracking.  Nothing in the
    engine reads or fills it; the store only carries it through growth.
    """

    contents: str = ""
    backrefs: list[CellRef] = field(default_factory=list)


class CellStore:
    """Grid of :class:`Cell` addressed by non-negative ``(x, y)``.

    Usage::

        store = CellStore()
        store.set(3, 1, "=(1+2)")
        store.raw_text(3, 1)      # "=(1+2)"
        store.bounding_box()      # (3, 1)
    """

    def __init__(self) -> None:
        self._width = 1
        self._height = 1
        self._cells: list[Cell] = [Cell()]
        self._max_x = 0
        self._max_y = 0

    @property
    def width(self) -> int:
        """Physical width of the backing array."""
        return self._width

    @property
    def height(self) -> int:
        """Physical height of the backing array."""
        return self._height

    def set(self, x: int, y: int, text: str) -> None:
        """Store *text* at ``(x, y)``, growing the array if needed.

        Raises:
            ValueError: If either coordinate is negative.
        """
        if x < 0 or y < 0:
            raise ValueError(f"Cell coordinates must be non-negative, got ({x}, {y})")
        self._max_x = max(self._max_x, x)
        self._max_y = max(self._max_y, y)
        if x >= self._width or y >= self._height:
            self._grow_to_fit(x, y)
        self._cells[x + y * self._width].contents = text

    def cell(self, x: int, y: int) -> Cell:
        """Return the cell at ``(x, y)``.

        Outside the physical array this is a fresh empty cell that is not
        stored; reads never grow the array.
        """
        if 0 <= x < self._width and 0 <= y < self._height:
            return self._cells[x + y * self._width]
        return Cell()

    def raw_text(self, x: int, y: int) -> str:
        """Text as set, or ``""`` for a cell that was never set."""
        return self.cell(x, y).contents

    def bounding_box(self) -> tuple[int, int]:
        """``(max_x, max_y)`` over every coordinate ever passed to :meth:`set`."""
        return self._max_x, self._max_y

    def _grow_to_fit(self, x: int, y: int) -> None:
        new_width = self._width
        new_height = self._height
        while new_width <= x:
            new_width *= 2
        while new_height <= y:
            new_height *= 2

        cells: list[Cell] = []
        for yy in range(self._height):
            row_start = yy * self._width
            cells.extend(self._cells[row_start:row_start + self._width])
            cells.extend(Cell() for _ in range(new_width - self._width))
        cells.extend(Cell() for _ in range(new_width * (new_height - self._height)))

        self._cells = cells
        self._width = new_width
        self._height = new_height
        emit_info(
            EventType.store_grown,
            f"Cell store grown to {new_width}x{new_height}",
            {"width": new_width, "height": new_height},
        )
