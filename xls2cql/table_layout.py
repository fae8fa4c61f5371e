"""
Locates the semantic columns of decision and indicator tables.

Decision tables have no fixed schema.  The block is anchored on a
``Decision ID`` label::

    Decision ID   IMMZ.DT.01.Some-Description
    Business Rule <description>
    Trigger       <trigger>
    Inputs        ...        Output   Action ...   Annotations   Reference(s)
    <clause>      <clause>   <text>   <text>       <text>        <text>

The header row is scanned left to right for each landmark label in turn.
"""

import logging
import re
from dataclasses import dataclass

from .errors import BadDecisionIdError, LayoutNotFoundError
from .worksheet import cell_name

logger = logging.getLogger(__name__)

DECISION_ID_LABEL = "Decision ID"
INPUTS_LABEL = "Inputs"
OUTPUT_LABEL = "Output"
ANNOTATIONS_LABEL = "Annotations"
REFERENCES_LABEL = "Reference(s)"

INDICATOR_CODE_LABEL = "Indicator Code"

# Indicator columns relative to the "Indicator Code" column
INDICATOR_COLUMN_OFFSETS = {
    "name": 1,
    "discussion": 2,
    "numerator_definition": 3,
    "numerator_computation": 4,
    "denominator_definition": 5,
    "denominator_computation": 6,
    "disaggregation": 7,
    "references": 8,
}

_DECISION_ID_PATTERN = re.compile(r"^(\w+)\.(\w+)\.(\d+)(.*)$", re.DOTALL)


@dataclass(frozen=True)
class DecisionId:
    code: str       # e.g. IMMZ.DT.01
    mnemonic: str   # whatever follows the code, e.g. .Some-Description

    @property
    def library_name(self):
        return self.code.replace(".", "")

    def __str__(self):
        return f"{self.code}{self.mnemonic}"


def parse_decision_id(text):
    """Split ``IMMZ.DT.01.Description`` into its code and mnemonic."""
    match = _DECISION_ID_PATTERN.match(text.strip())
    if not match:
        raise BadDecisionIdError(
            f"Cannot parse {text!r} should be in format AAA.BBB.##.XXXXXX "
            f"for example IMMZ.DT.01.Some-Description-Of-The-Decision"
        )
    code = ".".join(match.group(i) for i in (1, 2, 3))
    return DecisionId(code=code, mnemonic=match.group(4).strip())


@dataclass(frozen=True)
class TableLayout:
    """Column positions of one decision table (1-based)."""
    anchor_row: int
    anchor_col: int
    header_row: int
    input_start: int
    output_start: int
    annotation_start: int
    reference_col: int
    decision_id: DecisionId
    description: str = ""
    trigger: str = ""

    def __post_init__(self):
        if not (self.input_start < self.output_start < self.action_start
                < self.annotation_start < self.reference_col):
            raise LayoutNotFoundError(
                f"Columns out of order: inputs={self.input_start} "
                f"output={self.output_start} actions={self.action_start} "
                f"annotations={self.annotation_start} "
                f"references={self.reference_col}"
            )

    @property
    def action_start(self):
        return self.output_start + 1

    @property
    def input_columns(self):
        return range(self.input_start, self.output_start)

    @property
    def action_columns(self):
        return range(self.action_start, self.annotation_start)

    @property
    def first_data_row(self):
        return self.header_row + 1


def find_decision_tables(grid):
    """Yield (row, col) of every ``Decision ID`` label on the sheet."""
    return grid.find_label(DECISION_ID_LABEL)


def _scan_right(grid, row, start_col, label):
    """Return the first column at or right of *start_col* whose text is *label*.

    The scan stops at the used width of the sheet.
    """
    wanted = label.lower()
    for col in range(start_col, grid.max_column + 1):
        if grid.text(row, col).lower() == wanted:
            return col
    raise LayoutNotFoundError(
        f"Could not find '{label}' in sheet '{grid.title}' scanning right from "
        f"{cell_name(row, start_col)} to column {grid.max_column}"
    )


def resolve_decision_layout(grid, anchor_row, anchor_col):
    """Build the :class:`TableLayout` of the table anchored at (row, col).

    Raises:
        BadDecisionIdError: the cell right of the anchor is not a decision ID.
        LayoutNotFoundError: ``Inputs``, ``Output``, ``Annotations`` or
            ``Reference(s)`` is missing.
    """
    decision_id = parse_decision_id(grid.effective_value(anchor_row, anchor_col + 1))
    description = grid.effective_value(anchor_row + 1, anchor_col + 1)
    trigger = grid.effective_value(anchor_row + 2, anchor_col + 1)

    header_row = anchor_row + 3
    if grid.text(header_row, anchor_col).lower() != INPUTS_LABEL.lower():
        raise LayoutNotFoundError(
            f"Expected the value '{INPUTS_LABEL}' in cell "
            f"{cell_name(header_row, anchor_col)} of sheet '{grid.title}'"
        )

    output_start = _scan_right(grid, header_row, anchor_col, OUTPUT_LABEL)
    annotation_start = _scan_right(grid, header_row, output_start, ANNOTATIONS_LABEL)
    reference_col = _scan_right(grid, header_row, annotation_start, REFERENCES_LABEL)

    layout = TableLayout(
        anchor_row=anchor_row,
        anchor_col=anchor_col,
        header_row=header_row,
        input_start=anchor_col,
        output_start=output_start,
        annotation_start=annotation_start,
        reference_col=reference_col,
        decision_id=decision_id,
        description=description,
        trigger=trigger,
    )
    logger.debug(f"Sheet '{grid.title}' {decision_id.code}: {layout}")
    return layout


def resolve_sheet_layouts(grid):
    """Resolve every decision table on the sheet.

    Any :class:`LayoutError` propagates so the caller can drop the whole sheet.
    """
    return [resolve_decision_layout(grid, row, col)
            for row, col in find_decision_tables(grid)]


@dataclass(frozen=True)
class IndicatorLayout:
    header_row: int
    code_col: int

    def column(self, field_name):
        return self.code_col + INDICATOR_COLUMN_OFFSETS[field_name]


def resolve_indicator_layout(grid):
    """Locate the ``Indicator Code`` header of an indicator table."""
    for row, col in grid.find_label(INDICATOR_CODE_LABEL):
        return IndicatorLayout(header_row=row, code_col=col)
    raise LayoutNotFoundError(
        f"Could not find an '{INDICATOR_CODE_LABEL}' header in sheet '{grid.title}'"
    )
