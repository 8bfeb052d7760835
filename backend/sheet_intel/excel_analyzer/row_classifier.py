"""
Row labelling: total / subtotal / key financial / plain.

Categories come from an ordered rule table evaluated top to bottom; the first
rule with a matching pattern decides the category.
"""
import re
from typing import Any, List, Optional, Sequence, Tuple

from .table_schema import (
    ROW_KEY, ROW_PLAIN, ROW_SUBTOTAL, ROW_TOTAL, Cell, Row,
)


TOTAL_PATTERN = re.compile(r'^(total|sum|grand total|net|aggregate|consolidated)', re.IGNORECASE)
SUBTOTAL_PATTERN = re.compile(r'subtotal|sub-total|sub total', re.IGNORECASE)
KEY_FINANCIAL_PATTERNS = (
    re.compile(r'revenue|sales|income', re.IGNORECASE),
    re.compile(r'expense|cost|opex|capex', re.IGNORECASE),
    re.compile(r'profit|loss|ebitda|ebit', re.IGNORECASE),
    re.compile(r'cash|flow|fcf', re.IGNORECASE),
    re.compile(r'margin|ratio', re.IGNORECASE),
    re.compile(r'growth|change', re.IGNORECASE),
)

# (rule name, patterns, category), first match wins
ROW_CATEGORY_RULES: Tuple[Tuple[str, Tuple, str], ...] = (
    ('total', (TOTAL_PATTERN,), ROW_TOTAL),
    ('key_financial', KEY_FINANCIAL_PATTERNS, ROW_KEY),
    ('subtotal', (SUBTOTAL_PATTERN,), ROW_SUBTOTAL),
)


def is_likely_total_row(label: Any) -> bool:
    return isinstance(label, str) and bool(TOTAL_PATTERN.search(label.strip()))


def is_likely_subtotal_row(label: Any) -> bool:
    return isinstance(label, str) and bool(SUBTOTAL_PATTERN.search(label.strip()))


def is_key_financial_row(label: Any) -> bool:
    return isinstance(label, str) and any(p.search(label) for p in KEY_FINANCIAL_PATTERNS)


def match_rule(label: Any) -> Optional[str]:
    """Name of the first rule in ROW_CATEGORY_RULES that matches ``label``."""
    if not isinstance(label, str):
        return None
    text = label.strip()
    for name, patterns, _category in ROW_CATEGORY_RULES:
        if any(p.search(text) for p in patterns):
            return name
    return None


def categorize_row_label(label: Any) -> str:
    if not isinstance(label, str):
        return ROW_PLAIN
    text = label.strip()
    for _name, patterns, category in ROW_CATEGORY_RULES:
        if any(p.search(text) for p in patterns):
            return category
    return ROW_PLAIN


def row_label(cell: Optional[Cell]) -> Optional[str]:
    """Label text of a row's first cell, or None when the row has no usable label."""
    if cell is None:
        return None
    val = cell.value
    if val is None:
        return None
    if isinstance(val, str):
        return val or None
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val)


def classify_row(index: int, cells: Sequence[Cell]) -> Optional[Row]:
    """Build the Row record for one grid row; None when the label is blank."""
    label = row_label(cells[0] if cells else None)
    if label is None:
        return None

    return Row(
        index=index,
        label=label,
        values=tuple(cell.value for cell in cells[1:]),
        category=categorize_row_label(label),
        has_formulas=any(cell.is_formula for cell in cells),
        cell_types=tuple(cell.type for cell in cells),
        is_subtotal=is_likely_subtotal_row(label),
    )


def classify_rows(cell_grid: Sequence[Sequence[Cell]],
                  row_numbers: Optional[Sequence[int]] = None) -> List[Row]:
    """
    Classify every labelled row. ``row_numbers`` maps grid rows back to their
    source positions when the grid is a sample.
    """
    rows = []
    for i, cells in enumerate(cell_grid):
        index = row_numbers[i] if row_numbers is not None and i < len(row_numbers) else i
        row = classify_row(index, cells)
        if row is not None:
            rows.append(row)
    return rows
