"""
Locates the header row of a financial table within the first few rows.
"""
from typing import Any, List, Sequence

from .cell_classifier import is_numeric_string, is_quarter_label
from .table_schema import Cell


MIN_QUARTER_HEADERS = 2
MIN_TEXT_HEADERS = 3


def _is_text_header(val: Any) -> bool:
    return isinstance(val, str) and val.strip() != '' and not is_numeric_string(val)


def find_header_row(rows: Sequence[Sequence[Cell]], max_scan_rows: int = 5) -> int:
    """
    Return the index of the first scanned row that looks like a header.

    A row qualifies when it holds at least two quarter labels ("3Q24"), or
    failing that, at least three non-numeric text cells. The quarter rule is
    checked first on each row and the scan stops at the first match.
    Defaults to row 0 when nothing qualifies.
    """
    for i in range(min(max_scan_rows, len(rows))):
        values = [cell.value for cell in rows[i]]

        if sum(1 for v in values if is_quarter_label(v)) >= MIN_QUARTER_HEADERS:
            return i
        if sum(1 for v in values if _is_text_header(v)) >= MIN_TEXT_HEADERS:
            return i

    return 0


def extract_header_values(rows: Sequence[Sequence[Cell]], header_row: int) -> List[Any]:
    """Header cell values for the detected header row, one per grid column."""
    if header_row >= len(rows):
        return []
    return [cell.value for cell in rows[header_row]]
