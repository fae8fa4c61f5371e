"""
Folds the rows of a decision table into rule groups.

Each data row contributes one condition: its input clauses ANDed together
left to right.  Rows that share the same action text form one rule group
whose condition is the OR of its rows' conditions.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .cql_expression import BinaryOperator, Expression, combine, parse_clause
from .errors import ClauseError
from .worksheet import cell_name

logger = logging.getLogger(__name__)

ACTION_SEPARATOR = " then "


def _add_unique(values, value):
    if value and value not in values:
        values.append(value)


@dataclass
class DecisionRuleGroup:
    """All rows of one table that lead to the same action."""
    action: str
    annotations: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    references: List[str] = field(default_factory=list)
    expression: Optional[Expression] = None

    def add_row(self, expression, output="", annotation="", reference=""):
        """OR the row's condition into the group and collect its texts."""
        self.expression = combine(BinaryOperator.OR, self.expression, expression)
        _add_unique(self.outputs, output)
        _add_unique(self.annotations, annotation)
        _add_unique(self.references, reference)


def row_action(grid, layout, row):
    """Join the non-empty action cells of *row* with ``" then "``."""
    values = [grid.effective_value(row, col) for col in layout.action_columns]
    return ACTION_SEPARATOR.join(v for v in values if v)


def row_expression(grid, layout, row):
    """AND together the clauses of the input cells of *row*.

    A cell that does not parse is logged and left out; the rest of the row
    still combines.  Returns ``None`` when no input cell contributes.
    """
    expression = None
    for col in layout.input_columns:
        value = grid.effective_value(row, col)
        if not value:
            continue
        try:
            clause = parse_clause(value)
        except ClauseError as e:
            logger.warning(f"Cell {grid.title}!{cell_name(row, col)} - {e}")
            continue
        expression = combine(BinaryOperator.AND, expression, clause)
    return expression


def is_table_row(grid, layout, row):
    """A data row continues the table while its first input cell has a value."""
    return bool(grid.effective_value(row, layout.input_start))


def extract_rule_groups(grid, layout):
    """Walk the data rows below the header and return rule groups in first-seen order."""
    groups = {}
    row = layout.first_data_row
    while row <= grid.max_row and is_table_row(grid, layout, row):
        action = row_action(grid, layout, row)
        group = groups.get(action)
        if group is None:
            group = groups[action] = DecisionRuleGroup(action=action)

        group.add_row(
            row_expression(grid, layout, row),
            output=grid.effective_value(row, layout.output_start),
            annotation=grid.effective_value(row, layout.annotation_start),
            reference=grid.effective_value(row, layout.reference_col),
        )
        row += 1

    logger.info(
        f"  {layout.decision_id.code}: {row - layout.first_data_row} rows "
        f"-> {len(groups)} rule groups"
    )
    return list(groups.values())
