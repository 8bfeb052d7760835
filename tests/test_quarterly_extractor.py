"""
Quarterly series extraction from quarter-labelled columns.
"""
from sheet_intel.excel_analyzer.cell_classifier import classify_grid
from sheet_intel.excel_analyzer.quarterly_extractor import (
    extract_all_series, extract_quarterly_series, has_quarterly_pattern, quarter_columns,
)
from sheet_intel.excel_analyzer.row_classifier import classify_rows
from sheet_intel.excel_analyzer.table_schema import ROW_TOTAL


def _rows(grid):
    return classify_rows(classify_grid(grid))


def test_quarter_columns():
    headers = ["Label", "1Q23", "FY23", " 2q23 ", None]
    assert has_quarterly_pattern(headers)
    assert quarter_columns(headers) == [1, 3]
    assert not has_quarterly_pattern(["Label", "2023", "FY23"])


def test_series_for_one_row():
    headers = ["Label", "1Q23", "2Q23"]
    row = _rows([["Revenue", 100, 200]])[0]
    series = extract_quarterly_series(row, headers)
    assert series.row_label == "Revenue"
    assert [(p.quarter, p.value, p.column_index) for p in series.points] == [
        ("1Q23", 100.0, 1), ("2Q23", 200.0, 2),
    ]


def test_numeric_strings_parse_and_text_passes_through():
    headers = ["Label", "1Q23", "2Q23", "3Q23"]
    row = _rows([["Revenue", " 1.5 ", "n/m", None]])[0]
    series = extract_quarterly_series(row, headers)
    assert [p.value for p in series.points] == [1.5, "n/m"]


def test_row_without_quarter_values_has_no_series():
    headers = ["Label", "1Q23", "2Q23"]
    row = _rows([["Revenue", None, ""]])[0]
    assert extract_quarterly_series(row, headers) is None


def test_no_quarter_headers_gives_no_series():
    rows = _rows([["Label", "Jan", "Feb"], ["Revenue", 1, 2]])
    assert extract_all_series(rows, ["Label", "Jan", "Feb"], header_index=0) == []


def test_header_row_is_skipped(quarterly_grid):
    rows = _rows(quarterly_grid)
    series = extract_all_series(rows, quarterly_grid[0], header_index=0)
    assert [s.row_label for s in series] == [
        "Revenue", "Cost of Sales", "Subtotal", "Gross Margin %", "Total Revenue",
    ]
    assert series[-1].category == ROW_TOTAL
    assert series[-1].is_total
    assert all(len(s.points) == 4 for s in series)


def test_quarter_label_in_label_column_is_ignored():
    headers = ["1Q23", "2Q23"]
    row = _rows([["Revenue", 5]])[0]
    series = extract_quarterly_series(row, headers)
    assert [p.column_index for p in series.points] == [1]
