"""
Builds per-row quarterly time series from columns headed by quarter labels.
"""
from typing import Any, List, Optional, Sequence

from .cell_classifier import is_quarter_label, parse_number
from .table_schema import QuarterPoint, QuarterlySeries, Row


def has_quarterly_pattern(headers: Sequence[Any]) -> bool:
    return any(is_quarter_label(h) for h in headers)


def quarter_columns(headers: Sequence[Any]) -> List[int]:
    return [j for j, h in enumerate(headers) if is_quarter_label(h)]


def _is_present(val: Any) -> bool:
    return val is not None and val != ''


def extract_quarterly_series(row: Row, headers: Sequence[Any],
                             columns: Optional[Sequence[int]] = None) -> Optional[QuarterlySeries]:
    """
    Series for one row, or None when it has no value under any quarter column.

    Values are read from ``row.values[j - 1]`` since the label column is not
    part of ``values``. Numeric values become floats; anything unparseable is
    kept as-is.
    """
    if columns is None:
        columns = quarter_columns(headers)

    points = []
    for j in columns:
        if j < 1 or j - 1 >= len(row.values):
            continue
        val = row.values[j - 1]
        if not _is_present(val):
            continue
        parsed = parse_number(val)
        points.append(QuarterPoint(
            quarter=str(headers[j]).strip(),
            value=parsed if parsed is not None else val,
            column_index=j,
        ))

    if not points:
        return None
    return QuarterlySeries(row_label=row.label, points=tuple(points), category=row.category)


def extract_all_series(rows: Sequence[Row], headers: Sequence[Any],
                       header_index: Optional[int] = None) -> List[QuarterlySeries]:
    """Series for every row with quarter data; the header row itself is skipped."""
    # the header row holds the quarter labels themselves, not a metric series
    columns = quarter_columns(headers)
    if not columns:
        return []
    series = []
    for row in rows:
        if header_index is not None and row.index == header_index:
            continue
        s = extract_quarterly_series(row, headers, columns)
        if s is not None:
            series.append(s)
    return series
