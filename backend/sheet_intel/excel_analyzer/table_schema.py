"""
Immutable records produced by the financial-table classification pipeline.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


CELL_EMPTY = 'empty'
CELL_BOOLEAN = 'boolean'
CELL_NUMBER = 'number'
CELL_CURRENCY = 'currency'
CELL_PERCENTAGE = 'percentage'
CELL_DATE = 'date'
CELL_TEXT = 'text'

CELL_TYPES = (CELL_EMPTY, CELL_BOOLEAN, CELL_NUMBER, CELL_CURRENCY,
              CELL_PERCENTAGE, CELL_DATE, CELL_TEXT)

ROW_TOTAL = 'total'
ROW_SUBTOTAL = 'subtotal'
ROW_KEY = 'key'
ROW_PLAIN = 'plain'

ROW_CATEGORIES = (ROW_TOTAL, ROW_SUBTOTAL, ROW_KEY, ROW_PLAIN)
KEY_CATEGORIES = frozenset({ROW_TOTAL, ROW_KEY})

TABLE_KIND_FINANCIAL = 'financial_table'
TABLE_KIND_EMPTY = 'empty'


def jsonable(val: Any) -> Any:
    """Make a raw cell value safe for JSON responses."""
    if isinstance(val, (datetime, date, time)):
        return val.isoformat()
    if isinstance(val, float) and val != val:
        return None
    return val


@dataclass(frozen=True)
class Cell:
    raw_value: Any
    type: str
    format: Optional[str] = None
    is_formula: bool = False

    @property
    def value(self) -> Any:
        """Raw value with surrounding whitespace stripped from strings."""
        if isinstance(self.raw_value, str):
            return self.raw_value.strip()
        return self.raw_value

    def to_dict(self) -> Dict:
        return {
            'value': jsonable(self.raw_value),
            'type': self.type,
            'format': self.format,
            'is_formula': self.is_formula,
        }


@dataclass(frozen=True)
class Row:
    index: int
    label: str
    values: Tuple[Any, ...]
    category: str
    has_formulas: bool
    cell_types: Tuple[str, ...]
    is_subtotal: bool = False

    @property
    def is_total(self) -> bool:
        return self.category == ROW_TOTAL

    @property
    def is_key(self) -> bool:
        return self.category in KEY_CATEGORIES

    def to_dict(self) -> Dict:
        return {
            'index': self.index,
            'label': self.label,
            'values': [jsonable(v) for v in self.values],
            'category': self.category,
            'is_total': self.is_total,
            'is_subtotal': self.is_subtotal,
            'has_formulas': self.has_formulas,
            'cell_types': list(self.cell_types),
        }


@dataclass(frozen=True)
class QuarterPoint:
    quarter: str
    value: Any
    column_index: int

    def to_dict(self) -> Dict:
        return {'quarter': self.quarter, 'value': jsonable(self.value), 'column_index': self.column_index}


@dataclass(frozen=True)
class QuarterlySeries:
    row_label: str
    points: Tuple[QuarterPoint, ...]
    category: str = ROW_PLAIN

    @property
    def is_total(self) -> bool:
        return self.category == ROW_TOTAL

    def to_dict(self) -> Dict:
        return {
            'row_label': self.row_label,
            'category': self.category,
            'points': [p.to_dict() for p in self.points],
        }


@dataclass(frozen=True)
class FormulaStats:
    has_formulas: bool = False
    formula_count: int = 0
    function_names: Tuple[str, ...] = ()

    def to_dict(self) -> Dict:
        return {
            'has_formulas': self.has_formulas,
            'formula_count': self.formula_count,
            'function_names': list(self.function_names),
        }


@dataclass(frozen=True)
class FormatStats:
    has_formatting: bool = False
    distinct_formats: Tuple[str, ...] = ()

    def to_dict(self) -> Dict:
        return {'has_formatting': self.has_formatting, 'distinct_formats': list(self.distinct_formats)}


def _empty_histogram() -> Mapping[str, int]:
    return MappingProxyType({t: 0 for t in CELL_TYPES})


@dataclass(frozen=True)
class StructuredTable:
    kind: str
    headers: Tuple[Any, ...] = ()
    header_row_index: Optional[int] = None
    rows: Tuple[Row, ...] = ()
    key_rows: Tuple[Row, ...] = ()
    total_rows: Tuple[Row, ...] = ()
    quarterly_series: Tuple[QuarterlySeries, ...] = ()
    formula_stats: FormulaStats = field(default_factory=FormulaStats)
    format_stats: FormatStats = field(default_factory=FormatStats)
    type_histogram: Mapping[str, int] = field(default_factory=_empty_histogram)

    @classmethod
    def empty(cls) -> 'StructuredTable':
        return cls(kind=TABLE_KIND_EMPTY)

    @property
    def is_empty(self) -> bool:
        return self.kind == TABLE_KIND_EMPTY

    @property
    def classified_cells(self) -> int:
        return sum(self.type_histogram.values())

    def to_dict(self) -> Dict:
        return {
            'type': self.kind,
            'headers': [jsonable(h) for h in self.headers],
            'header_row_index': self.header_row_index,
            'rows': [r.to_dict() for r in self.rows],
            'key_rows': [r.index for r in self.key_rows],
            'total_rows': [r.index for r in self.total_rows],
            'quarterly_series': [s.to_dict() for s in self.quarterly_series],
            'formula_stats': self.formula_stats.to_dict(),
            'format_stats': self.format_stats.to_dict(),
            'type_histogram': dict(self.type_histogram),
        }


@dataclass(frozen=True)
class WorkbookObjects:
    tables: Tuple[str, ...] = ()
    pivot_tables: Tuple[str, ...] = ()
    charts: Tuple[str, ...] = ()
    has_named_ranges: bool = False

    def to_dict(self) -> Dict:
        return {
            'tables': list(self.tables),
            'pivot_tables': list(self.pivot_tables),
            'charts': list(self.charts),
            'has_named_ranges': self.has_named_ranges,
        }


@dataclass(frozen=True)
class SheetInfo:
    name: str
    position: int
    data_range: str
    row_count: int
    column_count: int

    @property
    def total_cells(self) -> int:
        return self.row_count * self.column_count

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'position': self.position,
            'data_range': self.data_range,
            'row_count': self.row_count,
            'column_count': self.column_count,
            'total_cells': self.total_cells,
        }


@dataclass(frozen=True)
class WorkbookStructure:
    sheets: Tuple[SheetInfo, ...] = ()

    @property
    def total_sheets(self) -> int:
        return len(self.sheets)

    @property
    def total_data_cells(self) -> int:
        return sum(s.total_cells for s in self.sheets)

    def to_dict(self) -> Dict:
        return {
            'total_sheets': self.total_sheets,
            'sheets': [s.to_dict() for s in self.sheets],
            'total_data_cells': self.total_data_cells,
        }


@dataclass(frozen=True)
class SheetSnapshot:
    """Grid snapshot handed over by the spreadsheet reader.

    ``values``, ``formulas`` and ``formats`` share one shape. When the range
    was sampled, ``row_numbers`` maps each grid row back to its 0-based
    position in the source range and ``original_rows``/``original_cols``
    keep the unsampled dimensions.
    """
    worksheet_name: str
    address: str
    values: List[List[Any]]
    formulas: Optional[List[List[Any]]] = None
    formats: Optional[List[List[Optional[str]]]] = None
    row_numbers: Optional[Tuple[int, ...]] = None
    is_selection: bool = False
    is_sampled: bool = False
    original_rows: Optional[int] = None
    original_cols: Optional[int] = None
    objects: WorkbookObjects = field(default_factory=WorkbookObjects)
    workbook: Optional[WorkbookStructure] = None

    @property
    def row_count(self) -> int:
        return len(self.values)

    @property
    def col_count(self) -> int:
        return max((len(r) for r in self.values if r is not None), default=0)


@dataclass(frozen=True)
class SheetAnalysis:
    worksheet_name: str
    address: str
    row_count: int
    col_count: int
    table: StructuredTable
    summary: str
    is_selection: bool = False
    is_sampled: bool = False
    original_rows: Optional[int] = None
    original_cols: Optional[int] = None
    objects: WorkbookObjects = field(default_factory=WorkbookObjects)
    workbook: Optional[WorkbookStructure] = None

    def to_dict(self) -> Dict:
        return {
            'worksheet_name': self.worksheet_name,
            'address': self.address,
            'total_rows': self.row_count,
            'total_cols': self.col_count,
            'is_selection': self.is_selection,
            'is_sampled': self.is_sampled,
            'original_size': {'rows': self.original_rows, 'cols': self.original_cols} if self.is_sampled else None,
            'objects': self.objects.to_dict(),
            'workbook': self.workbook.to_dict() if self.workbook else None,
            'structured_data': self.table.to_dict(),
            'summary': self.summary,
        }
