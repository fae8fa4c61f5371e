"""
Worksheet access for the compilers.

Wraps an ``openpyxl`` worksheet so that every read goes through merge
resolution: a cell inside a merged block reports the value of the block's
top-left (origin) cell.
"""

import datetime
import logging

import openpyxl
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)


def load_workbook(file_path):
    """Open a workbook with cached formula results instead of formulas."""
    logger.info(f"Loading workbook: {file_path}")
    return openpyxl.load_workbook(file_path, data_only=True)


def cell_name(row, col):
    """Return the A1-style coordinate of (row, col)."""
    return f"{get_column_letter(col)}{row}"


def _as_text(value):
    """Render a cell value the way it reads in Excel."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime.datetime) and value.time() == datetime.time():
        return value.date().isoformat()
    return str(value).strip()


class SheetGrid:
    """Merge-aware, bounds-checked view over one worksheet."""

    def __init__(self, worksheet):
        self.worksheet = worksheet
        # Captured once: openpyxl grows the dimensions when cells are touched.
        self.max_row = worksheet.max_row or 0
        self.max_column = worksheet.max_column or 0
        self._merge_origins = {}
        for merged in worksheet.merged_cells.ranges:
            origin = (merged.min_row, merged.min_col)
            for row in range(merged.min_row, merged.max_row + 1):
                for col in range(merged.min_col, merged.max_col + 1):
                    self._merge_origins[(row, col)] = origin

    @property
    def title(self):
        return self.worksheet.title

    @property
    def hidden(self):
        return self.worksheet.sheet_state != "visible"

    def in_bounds(self, row, col):
        return 1 <= row <= self.max_row and 1 <= col <= self.max_column

    def text(self, row, col):
        """Own value of the cell as trimmed text, ignoring merges."""
        if not self.in_bounds(row, col):
            return ""
        return _as_text(self.worksheet.cell(row=row, column=col).value)

    def is_merged(self, row, col):
        return (row, col) in self._merge_origins

    def merge_origin(self, row, col):
        """Top-left cell of the merged block containing (row, col), else itself."""
        return self._merge_origins.get((row, col), (row, col))

    def effective_value(self, row, col):
        """Value of (row, col) after following a merge to its origin cell."""
        origin_row, origin_col = self.merge_origin(row, col)
        return self.text(origin_row, origin_col)

    def find_label(self, label):
        """Yield (row, col) of every non-merged cell whose text equals *label*.

        The comparison is case-insensitive and ignores surrounding whitespace.
        Cells are visited row by row, left to right.
        """
        wanted = label.strip().lower()
        for row in range(1, self.max_row + 1):
            for col in range(1, self.max_column + 1):
                if self.is_merged(row, col):
                    continue
                if self.text(row, col).lower() == wanted:
                    yield row, col


def iter_grids(workbook, ignore_sheets=()):
    """Yield a :class:`SheetGrid` for every visible sheet not in *ignore_sheets*."""
    ignored = {name.lower() for name in ignore_sheets}
    for ws in workbook.worksheets:
        if ws.title.lower() in ignored:
            logger.debug(f"Skipping ignored sheet '{ws.title}'")
            continue
        grid = SheetGrid(ws)
        if grid.hidden:
            logger.debug(f"Skipping hidden sheet '{ws.title}'")
            continue
        yield grid
