"""
Collects the distinct non-default number formats present in a range.
"""
from typing import Any, Optional, Sequence

from .table_schema import FormatStats


DEFAULT_FORMAT = 'General'


def analyze_number_formats(format_grid: Optional[Sequence[Sequence[Any]]]) -> FormatStats:
    if not format_grid:
        return FormatStats()

    seen = {}
    for row in format_grid:
        if not row:
            continue
        for fmt in row:
            if isinstance(fmt, str) and fmt and fmt != DEFAULT_FORMAT:
                seen.setdefault(fmt, None)

    return FormatStats(has_formatting=bool(seen), distinct_formats=tuple(seen))
