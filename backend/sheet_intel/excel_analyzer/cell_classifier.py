"""
Per-cell semantic typing (empty/boolean/number/currency/percentage/date/text)
and the grid-wide type histogram built from it.
"""
import math
import numbers
import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from .table_schema import (
    CELL_BOOLEAN, CELL_CURRENCY, CELL_DATE, CELL_EMPTY, CELL_NUMBER,
    CELL_PERCENTAGE, CELL_TEXT, CELL_TYPES, Cell,
)


QUARTER_PATTERN = re.compile(r'^[1-4]Q[0-9]{2}$', re.IGNORECASE)
NUMBER_PATTERN = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')

DATE_FORMATS = [
    '%Y-%m-%d', '%Y/%m/%d', '%Y-%m-%d %H:%M:%S', '%Y-%m-%dT%H:%M:%S',
    '%m/%d/%Y', '%d/%m/%Y', '%m-%d-%Y', '%d-%m-%Y', '%m/%d/%y', '%d/%m/%y',
    '%d %B %Y', '%d %b %Y', '%B %d %Y', '%b %d %Y', '%B %d, %Y', '%b %d, %Y',
    '%B %Y', '%b %Y', '%b-%y',
]

CURRENCY_MARKERS = ('$', '€', '£', '¥')
# Quoted literals, bracketed sections ([Red], [$-409]) and escaped characters
# carry no date/percent meaning in a number format.
_FORMAT_LITERALS = re.compile(r'"[^"]*"|\[[^\]]*\]|\\.')
_DATE_LETTERS = re.compile(r'[dmy]', re.IGNORECASE)


def is_quarter_label(val: Any) -> bool:
    return isinstance(val, str) and bool(QUARTER_PATTERN.match(val.strip()))


def is_numeric_string(val: Any) -> bool:
    return isinstance(val, str) and bool(NUMBER_PATTERN.match(val.strip()))


def is_real_number(val: Any) -> bool:
    # Decimal is not registered as numbers.Real
    return isinstance(val, (numbers.Real, Decimal)) and not isinstance(val, bool)


def parse_number(val: Any) -> Optional[float]:
    """Float for real numbers and numeric strings, None for anything else."""
    if isinstance(val, bool):
        return None
    if is_real_number(val):
        try:
            return float(val)
        except (TypeError, ValueError, OverflowError):
            return None
    if is_numeric_string(val):
        parsed = float(val.strip())
        return parsed if math.isfinite(parsed) else None
    return None


def is_date_string(val: Any) -> bool:
    if not isinstance(val, str):
        return False
    text = val.strip()
    if not text:
        return False
    for fmt in DATE_FORMATS:
        try:
            datetime.strptime(text, fmt)
            return True
        except ValueError:
            continue
    return False


def _format_kind(fmt: str) -> str:
    if any(marker in fmt for marker in CURRENCY_MARKERS) or 'currency' in fmt.lower():
        return CELL_CURRENCY
    bare = _FORMAT_LITERALS.sub('', fmt)
    if '%' in bare:
        return CELL_PERCENTAGE
    if _DATE_LETTERS.search(bare):
        return CELL_DATE
    return CELL_NUMBER


def detect_cell_type(value: Any, fmt: Optional[str] = None) -> str:
    """
    Classify one raw cell value against its number format.

    Returns one of CELL_TYPES; never raises.
    """
    if value is None or (isinstance(value, str) and value == ''):
        return CELL_EMPTY
    if isinstance(value, bool):
        return CELL_BOOLEAN
    if is_real_number(value):
        if isinstance(fmt, str) and fmt:
            return _format_kind(fmt)
        return CELL_NUMBER
    if isinstance(value, (datetime, date, time)):
        return CELL_DATE
    if isinstance(value, str):
        if is_date_string(value):
            return CELL_DATE
        if parse_number(value) is not None:
            return CELL_NUMBER
    return CELL_TEXT


def is_formula_text(formula: Any) -> bool:
    return isinstance(formula, str) and formula.startswith('=')


def _at(grid: Optional[Sequence[Sequence[Any]]], row_idx: int, col_idx: int) -> Any:
    if not grid or row_idx >= len(grid):
        return None
    row = grid[row_idx]
    if row is None or col_idx >= len(row):
        return None
    return row[col_idx]


def classify_cell(value: Any, formula: Any = None, fmt: Any = None) -> Cell:
    fmt = fmt if isinstance(fmt, str) else None
    return Cell(
        raw_value=value,
        type=detect_cell_type(value, fmt),
        format=fmt,
        is_formula=is_formula_text(formula),
    )


def classify_grid(values: Sequence[Sequence[Any]],
                  formulas: Optional[Sequence[Sequence[Any]]] = None,
                  formats: Optional[Sequence[Sequence[Any]]] = None,
                  col_count: Optional[int] = None) -> List[List[Cell]]:
    """
    Build the Cell grid from the raw (value, formula, format) triples.

    Short rows are padded with empty cells up to ``col_count`` (defaults to the
    widest row) so every classified row has the same width.
    """
    if col_count is None:
        col_count = max((len(r) for r in values), default=0)
    grid = []
    for r in range(len(values)):
        grid.append([
            classify_cell(_at(values, r, c), _at(formulas, r, c), _at(formats, r, c))
            for c in range(col_count)
        ])
    return grid


def type_histogram(values: Sequence[Sequence[Any]],
                   formats: Optional[Sequence[Sequence[Any]]] = None,
                   col_count: Optional[int] = None) -> Dict[str, int]:
    """Count every cell position by detected type, empty cells included."""
    if col_count is None:
        col_count = max((len(r) for r in values), default=0)
    counts = {t: 0 for t in CELL_TYPES}
    for r in range(len(values)):
        for c in range(col_count):
            fmt = _at(formats, r, c)
            counts[detect_cell_type(_at(values, r, c), fmt if isinstance(fmt, str) else None)] += 1
    return counts
