"""
Dual-pass openpyxl reader: produces the values / formulas / number-format grids
for one worksheet range, plus the workbook objects found alongside it.

Oversized ranges are sampled here, before any cell is materialised.
"""
import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

import openpyxl
import pandas as pd
from openpyxl.cell.cell import MergedCell
from openpyxl.utils import get_column_letter
from openpyxl.utils.cell import range_boundaries

from ..config import AnalysisConfig
from .sampler import needs_sampling, plan_sample, sample_grids
from .table_schema import SheetInfo, SheetSnapshot, WorkbookObjects, WorkbookStructure

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = ('.xlsx', '.xlsm')
CSV_EXTENSIONS = ('.csv',)

# (min_col, min_row, max_col, max_row), 1-based inclusive
Bounds = Tuple[int, int, int, int]


def format_address(bounds: Bounds) -> str:
    min_col, min_row, max_col, max_row = bounds
    return f'{get_column_letter(min_col)}{min_row}:{get_column_letter(max_col)}{max_row}'


def _is_blank(val: Any) -> bool:
    return val is None or (isinstance(val, str) and val.strip() == '')


def _used_bounds(ws) -> Optional[Bounds]:
    if ws.max_row == 1 and ws.max_column == 1 and _is_blank(ws.cell(row=1, column=1).value):
        return None
    return ws.min_column, ws.min_row, ws.max_column, ws.max_row


def _resolve_bounds(ws, cell_range: Optional[str]) -> Tuple[Optional[Bounds], bool]:
    """
    Pick the range to analyse: the explicit selection when it is more than a
    single blank cell, otherwise the worksheet's used range.

    Returns (bounds, is_selection); bounds is None for an empty worksheet.
    """
    used = _used_bounds(ws)
    if cell_range:
        try:
            min_col, min_row, max_col, max_row = range_boundaries(cell_range.replace('$', ''))
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid range address '{cell_range}': {e}")
        if None in (min_col, min_row, max_col, max_row):
            raise ValueError(f"Range '{cell_range}' must name both rows and columns (e.g. A1:D20)")
        if not (min_col == max_col and min_row == max_row) or not _is_blank_cell(ws, used, min_col, min_row):
            return (min_col, min_row, max_col, max_row), True
        logger.info(f"Selection {cell_range} is a single empty cell, using the used range instead")
    return used, False


def _is_blank_cell(ws, used: Optional[Bounds], col: int, row: int) -> bool:
    # ws.cell() creates missing cells and would grow the used range
    if used is None or not (used[0] <= col <= used[2] and used[1] <= row <= used[3]):
        return True
    return _is_blank(ws.cell(row=row, column=col).value)


def _formula_text(val: Any) -> Any:
    # Array and data-table formulas arrive as objects carrying the formula text
    text = getattr(val, 'text', None)
    if isinstance(text, str):
        return text if text.startswith('=') else f'={text}'
    return val


def _collect_objects(wb, ws) -> WorkbookObjects:
    tables = tuple(ws.tables.keys())
    pivots = tuple(getattr(p, 'name', None) or f'PivotTable{i + 1}'
                   for i, p in enumerate(getattr(ws, '_pivots', [])))
    charts = tuple(getattr(c, 'name', None) or f'Chart {i + 1}'
                   for i, c in enumerate(getattr(ws, '_charts', [])))
    return WorkbookObjects(
        tables=tables,
        pivot_tables=pivots,
        charts=charts,
        has_named_ranges=_has_named_ranges(wb, ws),
    )


def _has_named_ranges(wb, ws) -> bool:
    try:
        if len(wb.defined_names) > 0:
            return True
        return len(getattr(ws, 'defined_names', {})) > 0
    except (TypeError, AttributeError) as e:
        logger.warning(f"Could not detect named ranges: {e}")
        return False


def _describe_loaded(wb) -> WorkbookStructure:
    sheets = []
    for position, ws in enumerate(wb.worksheets):
        bounds = _used_bounds(ws)
        if bounds is None:
            sheets.append(SheetInfo(name=ws.title, position=position, data_range='Empty',
                                    row_count=0, column_count=0))
            continue
        min_col, min_row, max_col, max_row = bounds
        sheets.append(SheetInfo(
            name=ws.title,
            position=position,
            data_range=format_address(bounds),
            row_count=max_row - min_row + 1,
            column_count=max_col - min_col + 1,
        ))
    return WorkbookStructure(sheets=tuple(sheets))


def describe_workbook(filepath: str) -> WorkbookStructure:
    """Per-sheet data ranges and sizes for every worksheet in the workbook."""
    wb = openpyxl.load_workbook(filepath, data_only=False)
    try:
        return _describe_loaded(wb)
    finally:
        wb.close()


def _read_formula_pass(ws, bounds: Bounds, positions: Sequence[int],
                       col_count: int) -> Tuple[List[List[Any]], List[List[Any]], List[List[Optional[str]]], Dict]:
    """
    Read raw cell contents and number formats for the planned rows.

    Returns (values, formulas, formats, formula_positions) where
    formula_positions maps (grid_row, grid_col) → True for formula cells whose
    computed value must come from the cached-values pass.
    """
    min_col, min_row = bounds[0], bounds[1]
    values, formulas, formats = [], [], []
    formula_positions = {}
    for grid_row, pos in enumerate(positions):
        row_cells = next(ws.iter_rows(min_row=min_row + pos, max_row=min_row + pos,
                                      min_col=min_col, max_col=min_col + col_count - 1))
        v_row, f_row, fmt_row = [], [], []
        for grid_col, cell in enumerate(row_cells):
            # MergedCell placeholders cover non-anchor positions of merged ranges
            if isinstance(cell, MergedCell):
                v_row.append(None)
                f_row.append(None)
                fmt_row.append(None)
                continue
            raw = _formula_text(cell.value)
            if isinstance(raw, str) and raw.startswith('='):
                formula_positions[(grid_row, grid_col)] = True
                v_row.append(None)
            else:
                v_row.append(raw)
            f_row.append(raw)
            fmt_row.append(cell.number_format)
        values.append(v_row)
        formulas.append(f_row)
        formats.append(fmt_row)
    return values, formulas, formats, formula_positions


def _fill_computed_values(v_ws, bounds: Bounds, positions: Sequence[int], col_count: int,
                          values: List[List[Any]], formula_positions: Dict) -> None:
    """Stream the cached-values worksheet once and drop computed results into formula cells."""
    if not formula_positions:
        return
    min_col, min_row, _, max_row = bounds
    grid_row_by_pos = {pos: i for i, pos in enumerate(positions)}
    last_pos = positions[-1]
    for pos, v_row in enumerate(v_ws.iter_rows(min_row=min_row, max_row=min(max_row, min_row + last_pos),
                                                min_col=min_col, max_col=min_col + col_count - 1,
                                                values_only=True)):
        grid_row = grid_row_by_pos.get(pos)
        if grid_row is None:
            continue
        for grid_col, computed in enumerate(v_row):
            if (grid_row, grid_col) in formula_positions:
                values[grid_row][grid_col] = computed


def read_sheet_snapshot(filepath: str, sheet_name: Optional[str] = None,
                        cell_range: Optional[str] = None,
                        config: Optional[AnalysisConfig] = None,
                        include_workbook: bool = False) -> SheetSnapshot:
    """
    Perform two openpyxl loads:
    1. data_only=False → raw contents, formulas and number formats
    2. data_only=True  → computed values cached by Excel for formula cells

    Only the rows and columns chosen by the sampling plan are read when the
    range exceeds ``config.max_analysis_cells``.
    """
    config = config or AnalysisConfig()
    formula_wb = openpyxl.load_workbook(filepath, data_only=False)
    value_wb = openpyxl.load_workbook(filepath, data_only=True, read_only=True)
    try:
        if sheet_name:
            if sheet_name not in formula_wb.sheetnames:
                raise ValueError(f"Worksheet '{sheet_name}' not found. Available: {formula_wb.sheetnames}")
            ws = formula_wb[sheet_name]
        else:
            ws = formula_wb.active
        v_ws = value_wb[ws.title]

        objects = _collect_objects(formula_wb, ws)
        workbook = _describe_loaded(formula_wb) if include_workbook else None
        bounds, is_selection = _resolve_bounds(ws, cell_range)

        if bounds is None:
            logger.info(f"Worksheet '{ws.title}' is empty")
            return SheetSnapshot(worksheet_name=ws.title, address='', values=[],
                                 objects=objects, workbook=workbook)

        min_col, min_row, max_col, max_row = bounds
        total_rows = max_row - min_row + 1
        total_cols = max_col - min_col + 1
        address = format_address(bounds)

        is_sampled = needs_sampling(total_rows, total_cols, config)
        if is_sampled:
            logger.info(f"Range {address} too large ({total_rows * total_cols} cells), applying smart sampling")
            plan = plan_sample(total_rows, total_cols, config)
            positions, col_count = plan.row_indices, plan.col_count
        else:
            logger.info(f"Using {'selection' if is_selection else 'used range'}: {address} "
                        f"({total_rows * total_cols} cells)")
            positions, col_count = tuple(range(total_rows)), total_cols

        values, formulas, formats, formula_positions = _read_formula_pass(ws, bounds, positions, col_count)
        _fill_computed_values(v_ws, bounds, positions, col_count, values, formula_positions)

        return SheetSnapshot(
            worksheet_name=ws.title,
            address=address,
            values=values,
            formulas=formulas,
            formats=formats,
            row_numbers=tuple(positions) if is_sampled else None,
            is_selection=is_selection,
            is_sampled=is_sampled,
            original_rows=total_rows if is_sampled else None,
            original_cols=total_cols if is_sampled else None,
            objects=objects,
            workbook=workbook,
        )
    finally:
        formula_wb.close()
        value_wb.close()


def read_csv_snapshot(filepath: str, config: Optional[AnalysisConfig] = None) -> SheetSnapshot:
    """Load a CSV file as a values-only grid (no formulas, no number formats)."""
    config = config or AnalysisConfig()
    name = os.path.splitext(os.path.basename(filepath))[0]
    try:
        df = pd.read_csv(filepath, header=None, dtype=object, keep_default_na=False,
                         skip_blank_lines=False)
    except pd.errors.EmptyDataError:
        return SheetSnapshot(worksheet_name=name, address='', values=[])
    grid = [[None if v == '' else v for v in row] for row in df.values.tolist()]
    if not grid or df.shape[1] == 0:
        return SheetSnapshot(worksheet_name=name, address='', values=[])

    total_rows, total_cols = df.shape
    address = format_address((1, 1, total_cols, total_rows))
    values, _, _, plan = sample_grids(grid, None, None, config)
    return SheetSnapshot(
        worksheet_name=name,
        address=address,
        values=values,
        row_numbers=plan.row_indices if plan else None,
        is_sampled=plan is not None,
        original_rows=total_rows if plan else None,
        original_cols=total_cols if plan else None,
    )


def read_snapshot(filepath: str, sheet_name: Optional[str] = None, cell_range: Optional[str] = None,
                  config: Optional[AnalysisConfig] = None, include_workbook: bool = False) -> SheetSnapshot:
    """Dispatch on file extension to the Excel or CSV reader."""
    ext = os.path.splitext(filepath)[1].lower()
    if ext in EXCEL_EXTENSIONS:
        return read_sheet_snapshot(filepath, sheet_name, cell_range, config, include_workbook)
    if ext in CSV_EXTENSIONS:
        return read_csv_snapshot(filepath, config)
    raise ValueError(f"Unsupported file type '{ext}'. Supported: {EXCEL_EXTENSIONS + CSV_EXTENSIONS}")
