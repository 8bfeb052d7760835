from .table_schema import (
    Cell, Row, QuarterPoint, QuarterlySeries, FormulaStats, FormatStats,
    StructuredTable, WorkbookObjects, WorkbookStructure, SheetInfo,
    SheetSnapshot, SheetAnalysis, CELL_TYPES, ROW_CATEGORIES,
)
from .cell_classifier import detect_cell_type, classify_cell, classify_grid, type_histogram
from .formula_classifier import analyze_formulas
from .format_analyzer import analyze_number_formats
from .header_detector import find_header_row, extract_header_values
from .row_classifier import (
    ROW_CATEGORY_RULES, categorize_row_label, classify_rows,
    is_key_financial_row, is_likely_subtotal_row, is_likely_total_row,
)
from .quarterly_extractor import extract_quarterly_series, extract_all_series, has_quarterly_pattern
from .sampler import SamplePlan, plan_sample, apply_sample_plan, needs_sampling, sample_grids
from .sheet_reader import read_snapshot, read_sheet_snapshot, read_csv_snapshot, describe_workbook
from .table_builder import TableAnalyzer, generate_summary, analyze_workbook

__all__ = [
    'Cell', 'Row', 'QuarterPoint', 'QuarterlySeries', 'FormulaStats', 'FormatStats',
    'StructuredTable', 'WorkbookObjects', 'WorkbookStructure', 'SheetInfo',
    'SheetSnapshot', 'SheetAnalysis', 'CELL_TYPES', 'ROW_CATEGORIES',
    'detect_cell_type', 'classify_cell', 'classify_grid', 'type_histogram',
    'analyze_formulas', 'analyze_number_formats',
    'find_header_row', 'extract_header_values',
    'ROW_CATEGORY_RULES', 'categorize_row_label', 'classify_rows',
    'is_key_financial_row', 'is_likely_subtotal_row', 'is_likely_total_row',
    'extract_quarterly_series', 'extract_all_series', 'has_quarterly_pattern',
    'SamplePlan', 'plan_sample', 'apply_sample_plan', 'needs_sampling', 'sample_grids',
    'read_snapshot', 'read_sheet_snapshot', 'read_csv_snapshot', 'describe_workbook',
    'TableAnalyzer', 'generate_summary', 'analyze_workbook',
]
