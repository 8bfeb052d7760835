"""
End-to-end classification of in-memory grids through TableAnalyzer.
"""
import dataclasses

import pytest

from sheet_intel.config import AnalysisConfig
from sheet_intel.excel_analyzer.table_builder import EMPTY_SUMMARY, TableAnalyzer, generate_summary
from sheet_intel.excel_analyzer.table_schema import (
    ROW_SUBTOTAL, TABLE_KIND_EMPTY, TABLE_KIND_FINANCIAL, WorkbookObjects,
)


QUARTERS = ["1Q21", "2Q21", "3Q21", "4Q21", "1Q22", "2Q22", "3Q22", "4Q22", "1Q23"]


def _large_grid(rows=30):
    grid = [["Metric"] + QUARTERS]
    for r in range(1, rows - 1):
        grid.append([f"Item {r}"] + [r * 10 + c for c in range(9)])
    grid.append(["Total Revenue"] + [1000 + c for c in range(9)])
    return grid


@pytest.fixture
def analyzer():
    return TableAnalyzer()


def test_quarterly_table(analyzer, quarterly_grid, quarterly_formulas, quarterly_formats):
    table = analyzer.analyze(quarterly_grid, quarterly_formulas, quarterly_formats)

    assert table.kind == TABLE_KIND_FINANCIAL
    assert table.header_row_index == 0
    assert table.headers == ("($M)", "1Q23", "2Q23", "3Q23", "4Q23")
    assert len(table.rows) == 6
    assert [r.label for r in table.key_rows] == [
        "Revenue", "Cost of Sales", "Gross Margin %", "Total Revenue",
    ]
    assert [r.label for r in table.total_rows] == ["Total Revenue"]
    assert [r.category for r in table.rows if r.label == "Subtotal"] == [ROW_SUBTOTAL]
    assert len(table.quarterly_series) == 5
    assert table.formula_stats.formula_count == 12
    assert table.format_stats.distinct_formats == ("$#,##0", "#,##0", "0.0%")
    assert table.classified_cells == 35
    assert table.type_histogram["currency"] == 8


def test_key_and_total_rows_are_subsets_of_rows(analyzer, quarterly_grid):
    table = analyzer.analyze(quarterly_grid)
    assert set(table.key_rows) <= set(table.rows)
    assert set(table.total_rows) <= set(table.key_rows)


def test_analysis_is_repeatable(analyzer, quarterly_grid, quarterly_formulas, quarterly_formats):
    first = analyzer.analyze(quarterly_grid, quarterly_formulas, quarterly_formats)
    second = analyzer.analyze(quarterly_grid, quarterly_formulas, quarterly_formats)
    assert first.to_dict() == second.to_dict()


def test_results_are_immutable(analyzer, quarterly_grid):
    table = analyzer.analyze(quarterly_grid)
    with pytest.raises(TypeError):
        table.type_histogram["text"] = 0
    with pytest.raises(dataclasses.FrozenInstanceError):
        table.rows[0].label = "changed"


@pytest.mark.parametrize('values', [None, [], [[], []]])
def test_empty_input(analyzer, values):
    table = analyzer.analyze(values)
    assert table.kind == TABLE_KIND_EMPTY
    assert table.is_empty
    assert table.rows == ()
    assert table.to_dict()["type"] == "empty"


def test_empty_grid_summary(analyzer):
    analysis = analyzer.analyze_grids([])
    assert analysis.table.is_empty
    assert analysis.summary == EMPTY_SUMMARY


def test_formats_grid_absent(analyzer, quarterly_grid):
    table = analyzer.analyze(quarterly_grid, None, None)
    assert not table.format_stats.has_formatting
    assert not table.formula_stats.has_formulas
    assert table.type_histogram["currency"] == 0


def test_worksheet_summary(analyzer, quarterly_grid):
    analysis = analyzer.analyze_grids(quarterly_grid, worksheet_name="P&L")
    assert analysis.summary == (
        'Worksheet "P&L" contains 7 rows and 5 columns. '
        'Found 4 key financial rows, 5 quarterly data series.'
    )


def test_selection_summary(analyzer, quarterly_grid):
    analysis = analyzer.analyze_grids(quarterly_grid, address="A1:E7", is_selection=True)
    assert analysis.summary.startswith('Selected range "A1:E7" contains 7 rows and 5 columns.')


def test_summary_lists_workbook_objects(analyzer, quarterly_grid):
    table = analyzer.analyze(quarterly_grid)
    objects = WorkbookObjects(tables=("Sales",), charts=("Chart 1", "Chart 2"))
    summary = generate_summary("P&L", "A1:E7", 7, 5, table, objects=objects)
    assert summary.endswith(
        'Found 4 key financial rows, 5 quarterly data series, 1 Excel table, 2 charts.'
    )


def test_summary_without_findings(analyzer):
    analysis = analyzer.analyze_grids([["a", "b"], ["c", "d"]], worksheet_name="Notes")
    assert analysis.summary == 'Worksheet "Notes" contains 2 rows and 2 columns.'


def test_oversized_grid_is_sampled():
    analyzer = TableAnalyzer(AnalysisConfig(max_analysis_cells=100))
    analysis = analyzer.analyze_grids(_large_grid(), worksheet_name="Big")
    table = analysis.table

    assert analysis.is_sampled
    assert (analysis.original_rows, analysis.original_cols) == (30, 10)
    assert (analysis.row_count, analysis.col_count) == (10, 10)
    assert table.classified_cells == 100
    assert [r.index for r in table.rows] == [0, 1, 2, 3, 4, 5, 16, 27, 28, 29]
    assert [r.index for r in table.total_rows] == [29]
    assert len(table.quarterly_series) == 9
    assert analysis.summary == (
        'Worksheet "Big" contains 10 rows and 10 columns (sampled from 30 × 10). '
        'Found 1 key financial row, 9 quarterly data series.'
    )


def test_grid_within_budget_is_not_sampled(analyzer):
    analysis = analyzer.analyze_grids(_large_grid())
    assert not analysis.is_sampled
    assert analysis.table.classified_cells == 300
    assert analysis.to_dict()["original_size"] is None


def test_analysis_to_dict(analyzer, quarterly_grid, quarterly_formulas, quarterly_formats):
    analysis = analyzer.analyze_grids(quarterly_grid, quarterly_formulas, quarterly_formats,
                                      worksheet_name="P&L", address="A1:E7")
    data = analysis.to_dict()
    assert data["worksheet_name"] == "P&L"
    assert (data["total_rows"], data["total_cols"]) == (7, 5)
    structured = data["structured_data"]
    assert structured["type"] == "financial_table"
    assert structured["key_rows"] == [1, 2, 4, 6]
    assert structured["total_rows"] == [6]
    assert structured["quarterly_series"][0]["points"][0] == {
        "quarter": "1Q23", "value": 100.0, "column_index": 1,
    }
    assert sum(structured["type_histogram"].values()) == 35


def test_missing_rows_do_not_break_grid_analysis(analyzer):
    analysis = analyzer.analyze_grids([["Revenue", 1], None, ["Total", 2]])
    assert (analysis.row_count, analysis.col_count) == (3, 2)
    assert analysis.table.classified_cells == 6
    assert [r.label for r in analysis.table.rows] == ["Revenue", "Total"]
    assert [r.index for r in analysis.table.total_rows] == [2]


def test_analyze_applies_the_cell_budget():
    analyzer = TableAnalyzer(AnalysisConfig(max_analysis_cells=100))
    grid = [[f"Item {r}"] + [r] * 10 for r in range(10)]
    table = analyzer.analyze(grid)
    assert table.classified_cells == 100
    assert len(table.headers) == 10
    assert [r.index for r in table.rows] == list(range(10))


def test_analyze_keeps_source_positions_when_sampling():
    analyzer = TableAnalyzer(AnalysisConfig(max_analysis_cells=100))
    table = analyzer.analyze(_large_grid())
    assert table.classified_cells == 100
    assert [r.index for r in table.total_rows] == [29]
