"""
Reads the rows of the ``Indicator table`` worksheet.

Each row below the ``Indicator Code`` header describes one indicator:
code, name, discussion, numerator and denominator (definition and
computation), disaggregations (one per line) and references.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List

from .cql_writer import comment_lines
from .errors import LayoutNotFoundError
from .table_layout import INDICATOR_CODE_LABEL, resolve_indicator_layout
from .worksheet import SheetGrid

logger = logging.getLogger(__name__)

INDICATOR_SHEET = "Indicator table"

_CODE_PATTERN = re.compile(r"^([^\d]*?)(\d*)$")


def pad_indicator_code(code):
    """Zero-pad the trailing number of an indicator code: ``IMMZ.IND.1`` -> ``IMMZ.IND.01``."""
    code = code.strip()
    match = _CODE_PATTERN.match(code)
    if not match or not match.group(2):
        return code
    return f"{match.group(1)}{int(match.group(2)):02d}"


def stratifier_name(disaggregation):
    """``Age (in years)`` -> ``Age Stratifier``."""
    return f"{disaggregation.split('(', 1)[0].strip()} Stratifier"


@dataclass
class Indicator:
    code: str
    name: str = ""
    discussion: str = ""
    numerator_definition: str = ""
    numerator_computation: str = ""
    denominator_definition: str = ""
    denominator_computation: str = ""
    disaggregations: List[str] = field(default_factory=list)
    references: List[str] = field(default_factory=list)

    @property
    def library_name(self):
        return self.code.replace(".", "").replace(" ", "")

    @property
    def stratifiers(self):
        return [stratifier_name(d) for d in self.disaggregations]


def find_indicator_sheet(workbook, sheet_name=INDICATOR_SHEET):
    for ws in workbook.worksheets:
        if ws.title.strip().lower() == sheet_name.lower():
            return SheetGrid(ws)
    raise LayoutNotFoundError(f"Cannot find a worksheet named '{sheet_name}'")


def read_indicators(grid):
    """Return one :class:`Indicator` per data row of the indicator table."""
    layout = resolve_indicator_layout(grid)

    def value(row, field_name):
        return grid.effective_value(row, layout.column(field_name))

    indicators = []
    for row in range(layout.header_row + 1, grid.max_row + 1):
        code = grid.text(row, layout.code_col)
        if (not code or code.lower() == INDICATOR_CODE_LABEL.lower()
                or grid.is_merged(row, layout.code_col)):
            continue

        indicators.append(Indicator(
            code=pad_indicator_code(code),
            name=value(row, "name"),
            discussion=value(row, "discussion"),
            numerator_definition=value(row, "numerator_definition"),
            numerator_computation=value(row, "numerator_computation"),
            denominator_definition=value(row, "denominator_definition"),
            denominator_computation=value(row, "denominator_computation"),
            disaggregations=comment_lines(value(row, "disaggregation")),
            references=comment_lines(value(row, "references")),
        ))

    logger.info(f"Sheet '{grid.title}': {len(indicators)} indicators")
    return indicators
