"""Tests for worksheet merge resolution and table layout discovery."""

import os
import sys
import unittest

from openpyxl import Workbook

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tests.create_sample_workbook import (
    MEASLES_ROWS,
    add_decision_table,
    build_decision_workbook,
    build_indicator_workbook,
)
from xls2cql.errors import BadDecisionIdError, LayoutNotFoundError
from xls2cql.table_layout import (
    find_decision_tables,
    parse_decision_id,
    resolve_decision_layout,
    resolve_indicator_layout,
    resolve_sheet_layouts,
)
from xls2cql.worksheet import SheetGrid, cell_name, iter_grids


class TestSheetGrid(unittest.TestCase):
    def setUp(self):
        wb = Workbook()
        ws = wb.active
        ws.title = "Grid"
        ws["A1"] = "  Origin  "
        ws.merge_cells("A1:B2")
        ws["C1"] = 5.0
        ws["C2"] = True
        ws["D1"] = 2.5
        self.grid = SheetGrid(ws)

    def test_text_trims_and_formats(self):
        self.assertEqual(self.grid.text(1, 1), "Origin")
        self.assertEqual(self.grid.text(1, 3), "5")
        self.assertEqual(self.grid.text(2, 3), "TRUE")
        self.assertEqual(self.grid.text(1, 4), "2.5")

    def test_raw_text_of_merged_non_origin_is_empty(self):
        self.assertEqual(self.grid.text(2, 2), "")

    def test_effective_value_follows_merge(self):
        for row, col in [(1, 1), (1, 2), (2, 1), (2, 2)]:
            self.assertTrue(self.grid.is_merged(row, col))
            self.assertEqual(self.grid.merge_origin(row, col), (1, 1))
            self.assertEqual(self.grid.effective_value(row, col), "Origin")

    def test_unmerged_cell(self):
        self.assertFalse(self.grid.is_merged(1, 3))
        self.assertEqual(self.grid.merge_origin(1, 3), (1, 3))
        self.assertEqual(self.grid.effective_value(1, 3), "5")

    def test_out_of_bounds_is_empty_and_does_not_grow(self):
        self.assertEqual(self.grid.text(100, 100), "")
        self.assertEqual(self.grid.text(0, 1), "")
        self.assertEqual(self.grid.max_row, 2)
        self.assertEqual(self.grid.max_column, 4)

    def test_find_label_skips_merged(self):
        self.assertEqual(list(self.grid.find_label("origin")), [])
        self.assertEqual(list(self.grid.find_label("TRUE")), [(2, 3)])

    def test_cell_name(self):
        self.assertEqual(cell_name(5, 28), "AB5")


class TestIterGrids(unittest.TestCase):
    def test_skips_ignored_and_hidden(self):
        wb = build_decision_workbook()
        titles = [g.title for g in iter_grids(wb, ["cover", "README"])]
        self.assertEqual(titles, ["IMMZ.DT.01", "IMMZ.DT.02", "IMMZ.DT.03"])


class TestDecisionId(unittest.TestCase):
    def test_parse(self):
        did = parse_decision_id("IMMZ.DT.01.Some-Description-Of-The-Decision")
        self.assertEqual(did.code, "IMMZ.DT.01")
        self.assertEqual(did.mnemonic, ".Some-Description-Of-The-Decision")
        self.assertEqual(did.library_name, "IMMZDT01")
        self.assertEqual(str(did), "IMMZ.DT.01.Some-Description-Of-The-Decision")

    def test_code_only(self):
        did = parse_decision_id(" ANC.DT.12 ")
        self.assertEqual(did.code, "ANC.DT.12")
        self.assertEqual(did.mnemonic, "")

    def test_bad(self):
        for bad in ("", "IMMZ.DT", "IMMZ.DT.XX.Desc", "not a decision id"):
            with self.subTest(bad=bad):
                with self.assertRaises(BadDecisionIdError):
                    parse_decision_id(bad)


class TestResolveDecisionLayout(unittest.TestCase):
    def setUp(self):
        self.wb = build_decision_workbook()

    def test_measles_layout(self):
        grid = SheetGrid(self.wb["IMMZ.DT.01"])
        anchors = list(find_decision_tables(grid))
        self.assertEqual(anchors, [(2, 1)])

        layout = resolve_decision_layout(grid, *anchors[0])
        self.assertEqual(layout.header_row, 5)
        self.assertEqual(layout.first_data_row, 6)
        self.assertEqual(list(layout.input_columns), [1, 2, 3])
        self.assertEqual(layout.output_start, 4)
        self.assertEqual(layout.action_start, 5)
        self.assertEqual(list(layout.action_columns), [5])
        self.assertEqual(layout.annotation_start, 6)
        self.assertEqual(layout.reference_col, 7)
        self.assertEqual(layout.decision_id.library_name, "IMMZDT01")
        self.assertEqual(layout.description, "Determine if a measles dose is due")
        self.assertEqual(layout.trigger, "IMMZ.B3 Determine required vaccinations")

    def test_offset_anchor_and_multiple_actions(self):
        wb = Workbook()
        ws = wb.active
        rows = [(['"A"', '"B"'], "out", ["Act 1", "Act 2"], "note", "ref")]
        add_decision_table(ws, "ANC.DT.02.Test", rows, anchor_row=4, anchor_col=3,
                           input_count=2, action_count=2)
        layout = resolve_decision_layout(SheetGrid(ws), 4, 3)
        self.assertEqual(list(layout.input_columns), [3, 4])
        self.assertEqual(list(layout.action_columns), [6, 7])
        self.assertEqual(layout.annotation_start, 8)
        self.assertEqual(layout.reference_col, 9)

    def test_table_without_action_column(self):
        wb = Workbook()
        ws = wb.active
        rows = [(['"A"'], "out", [], "note", "ref"),
                (['"B"'], "out", [], "note", "ref")]
        add_decision_table(ws, "IMMZ.DT.04.NoAction", rows,
                           input_count=1, action_count=0)
        with self.assertRaises(LayoutNotFoundError) as ctx:
            resolve_decision_layout(SheetGrid(ws), 2, 1)
        self.assertIn("actions=3", str(ctx.exception))

    def test_bad_decision_id(self):
        grid = SheetGrid(self.wb["IMMZ.DT.02"])
        with self.assertRaises(BadDecisionIdError):
            resolve_sheet_layouts(grid)

    def test_missing_landmark_is_bounded(self):
        grid = SheetGrid(self.wb["IMMZ.DT.03"])
        with self.assertRaises(LayoutNotFoundError) as ctx:
            resolve_sheet_layouts(grid)
        self.assertIn("Reference(s)", str(ctx.exception))

    def test_missing_inputs_label(self):
        wb = Workbook()
        ws = wb.active
        add_decision_table(ws, "IMMZ.DT.01.X", MEASLES_ROWS)
        ws.unmerge_cells("A5:C5")
        ws["A5"] = "Conditions"
        with self.assertRaises(LayoutNotFoundError) as ctx:
            resolve_decision_layout(SheetGrid(ws), 2, 1)
        self.assertIn("A5", str(ctx.exception))

    def test_sheet_without_table(self):
        wb = Workbook()
        self.assertEqual(resolve_sheet_layouts(SheetGrid(wb.active)), [])


class TestIndicatorLayout(unittest.TestCase):
    def test_finds_header(self):
        grid = SheetGrid(build_indicator_workbook()["Indicator table"])
        layout = resolve_indicator_layout(grid)
        self.assertEqual((layout.header_row, layout.code_col), (2, 2))
        self.assertEqual(layout.column("name"), 3)
        self.assertEqual(layout.column("references"), 10)

    def test_missing_header(self):
        wb = Workbook()
        with self.assertRaises(LayoutNotFoundError):
            resolve_indicator_layout(SheetGrid(wb.active))


if __name__ == "__main__":
    unittest.main()
