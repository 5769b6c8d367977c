"""gridcalc -- a small formula engine over a growable grid of cells."""

__version__ = "0.1.0"
