"""
Assembles the StructuredTable for one grid snapshot and writes the one-line
summary shown to users and prompts.
"""
import logging
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Sequence

from ..config import AnalysisConfig
from .cell_classifier import classify_grid, type_histogram
from .format_analyzer import analyze_number_formats
from .formula_classifier import analyze_formulas
from .header_detector import extract_header_values, find_header_row
from .quarterly_extractor import extract_all_series
from .row_classifier import classify_rows
from .sampler import sample_grids
from .sheet_reader import describe_workbook, read_snapshot
from .table_schema import (
    TABLE_KIND_FINANCIAL, SheetAnalysis, SheetSnapshot, StructuredTable,
    WorkbookObjects,
)

logger = logging.getLogger(__name__)

EMPTY_SUMMARY = 'The current worksheet appears to be empty.'


class TableAnalyzer:
    """Runs the classification pipeline with a fixed AnalysisConfig.

    Every call builds a fresh StructuredTable from its inputs; nothing is
    cached between calls.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()

    def analyze(self, values: Optional[Sequence[Sequence[Any]]],
                formulas: Optional[Sequence[Sequence[Any]]] = None,
                formats: Optional[Sequence[Sequence[Any]]] = None,
                row_numbers: Optional[Sequence[int]] = None) -> StructuredTable:
        """
        Classify a (values, formulas, formats) grid triple.

        Without ``row_numbers`` the grids are taken as a whole range and are
        sampled here when they exceed the cell budget. With ``row_numbers``
        they are an already-sampled grid and are classified as given.
        """
        if not values:
            return StructuredTable.empty()
        if row_numbers is None:
            values, formulas, formats, plan = sample_grids(values, formulas, formats, self.config)
            if plan is not None:
                row_numbers = plan.row_indices
        col_count = max((len(r) for r in values if r is not None), default=0)
        if col_count == 0:
            return StructuredTable.empty()
        values = [r if r is not None else [] for r in values]

        histogram = type_histogram(values, formats, col_count)
        formula_stats = analyze_formulas(formulas)
        format_stats = analyze_number_formats(formats)

        cells = classify_grid(values, formulas, formats, col_count)
        header_idx = find_header_row(cells, self.config.header_scan_rows)
        headers = extract_header_values(cells, header_idx)
        if row_numbers is not None and header_idx < len(row_numbers):
            header_position = row_numbers[header_idx]
        else:
            header_position = header_idx
        logger.info(f"Header detection: found header at row {header_position}")

        rows = classify_rows(cells, row_numbers)
        key_rows = tuple(r for r in rows if r.is_key)
        total_rows = tuple(r for r in rows if r.is_total)
        series = extract_all_series(rows, headers, header_position)

        return StructuredTable(
            kind=TABLE_KIND_FINANCIAL,
            headers=tuple(headers),
            header_row_index=header_position,
            rows=tuple(rows),
            key_rows=key_rows,
            total_rows=total_rows,
            quarterly_series=tuple(series),
            formula_stats=formula_stats,
            format_stats=format_stats,
            type_histogram=MappingProxyType(histogram),
        )

    def analyze_snapshot(self, snapshot: SheetSnapshot) -> SheetAnalysis:
        table = self.analyze(snapshot.values, snapshot.formulas, snapshot.formats, snapshot.row_numbers)
        row_count = snapshot.row_count
        col_count = snapshot.col_count
        summary = generate_summary(
            worksheet_name=snapshot.worksheet_name,
            address=snapshot.address,
            row_count=row_count,
            col_count=col_count,
            table=table,
            is_selection=snapshot.is_selection,
            is_sampled=snapshot.is_sampled,
            original_rows=snapshot.original_rows,
            original_cols=snapshot.original_cols,
            objects=snapshot.objects,
        )
        return SheetAnalysis(
            worksheet_name=snapshot.worksheet_name,
            address=snapshot.address,
            row_count=row_count,
            col_count=col_count,
            table=table,
            summary=summary,
            is_selection=snapshot.is_selection,
            is_sampled=snapshot.is_sampled,
            original_rows=snapshot.original_rows,
            original_cols=snapshot.original_cols,
            objects=snapshot.objects,
            workbook=snapshot.workbook,
        )

    def analyze_grids(self, values: Sequence[Sequence[Any]],
                      formulas: Optional[Sequence[Sequence[Any]]] = None,
                      formats: Optional[Sequence[Sequence[Any]]] = None,
                      worksheet_name: str = 'Sheet1', address: str = '',
                      is_selection: bool = False,
                      objects: Optional[WorkbookObjects] = None) -> SheetAnalysis:
        """Sample in-memory grids if they exceed the budget, then analyse them."""
        values = values or []
        sampled_values, sampled_formulas, sampled_formats, plan = sample_grids(
            values, formulas, formats, self.config)
        snapshot = SheetSnapshot(
            worksheet_name=worksheet_name,
            address=address,
            values=sampled_values,
            formulas=sampled_formulas,
            formats=sampled_formats,
            row_numbers=plan.row_indices if plan else None,
            is_selection=is_selection,
            is_sampled=plan is not None,
            original_rows=plan.original_rows if plan else None,
            original_cols=plan.original_cols if plan else None,
            objects=objects or WorkbookObjects(),
        )
        return self.analyze_snapshot(snapshot)

    def analyze_file(self, filepath: str, sheet_name: Optional[str] = None,
                     cell_range: Optional[str] = None, include_workbook: bool = False) -> SheetAnalysis:
        snapshot = read_snapshot(filepath, sheet_name, cell_range, self.config, include_workbook)
        return self.analyze_snapshot(snapshot)


def _plural(count: int, singular: str, plural: str) -> str:
    return f'{count} {singular if count == 1 else plural}'


def generate_summary(worksheet_name: str, address: str, row_count: int, col_count: int,
                     table: StructuredTable, is_selection: bool = False, is_sampled: bool = False,
                     original_rows: Optional[int] = None, original_cols: Optional[int] = None,
                     objects: Optional[WorkbookObjects] = None) -> str:
    """
    One-sentence description of the analysed range, e.g.
    'Worksheet "P&L" contains 40 rows and 9 columns. Found 6 key financial rows, 12 quarterly data series.'
    """
    if table.is_empty:
        return EMPTY_SUMMARY

    source = f'Selected range "{address}"' if is_selection else f'Worksheet "{worksheet_name}"'
    summary = f'{source} contains {row_count} rows and {col_count} columns'

    if is_sampled:
        if original_rows is not None and original_cols is not None:
            summary += f' (sampled from {original_rows} × {original_cols})'
        else:
            summary += ' (intelligently sampled)'

    found = []
    if table.key_rows:
        found.append(_plural(len(table.key_rows), 'key financial row', 'key financial rows'))
    if table.quarterly_series:
        found.append(f'{len(table.quarterly_series)} quarterly data series')
    objects = objects or WorkbookObjects()
    if objects.tables:
        found.append(_plural(len(objects.tables), 'Excel table', 'Excel tables'))
    if objects.pivot_tables:
        found.append(_plural(len(objects.pivot_tables), 'pivot table', 'pivot tables'))
    if objects.charts:
        found.append(_plural(len(objects.charts), 'chart', 'charts'))

    if found:
        summary += '. Found ' + ', '.join(found)
    return summary + '.'


def analyze_workbook(filepath: str, config: Optional[AnalysisConfig] = None) -> Dict[str, Any]:
    """
    Analyse every worksheet in a workbook. A sheet that fails to read is
    reported as an error entry and does not stop the others.
    """
    analyzer = TableAnalyzer(config)
    structure = describe_workbook(filepath)
    sheets: List[Dict[str, Any]] = []
    for name in (s.name for s in structure.sheets):
        try:
            analysis = analyzer.analyze_snapshot(read_snapshot(filepath, sheet_name=name, config=analyzer.config))
            sheets.append(analysis.to_dict())
        except Exception as e:
            logger.warning(f"Error reading sheet {name}: {e}")
            sheets.append({'worksheet_name': name, 'error': str(e), 'structured_data': {'type': 'error'}})

    return {
        'workbook': structure.to_dict(),
        'sheets': sheets,
        'summary': f'Read {len(sheets)} worksheets from workbook',
    }
