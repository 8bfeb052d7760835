"""
Sub-grid selection for ranges larger than the analysis cell budget.

The sample keeps the leading rows (where headers live), the trailing rows
(where totals live) and evenly spaced rows from the middle, over the leftmost
columns that fit the budget.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from ..config import AnalysisConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplePlan:
    row_indices: Tuple[int, ...]  # 0-based positions in the source range, ascending
    col_count: int
    original_rows: int
    original_cols: int

    @property
    def row_count(self) -> int:
        return len(self.row_indices)

    @property
    def cell_count(self) -> int:
        return self.row_count * self.col_count


def needs_sampling(row_count: int, col_count: int, config: AnalysisConfig) -> bool:
    return row_count * col_count > config.max_analysis_cells


def _evenly_spaced(start: int, stop: int, count: int) -> List[int]:
    """``count`` distinct indices spread across [start, stop)."""
    span = stop - start
    if count <= 0 or span <= 0:
        return []
    if span <= count:
        return list(range(start, stop))
    step = span / count
    return [start + int(i * step) for i in range(count)]


def plan_sample(total_rows: int, total_cols: int, config: AnalysisConfig) -> SamplePlan:
    """
    Choose the rows and columns to classify for a ``total_rows × total_cols`` range.

    Row budget is floor(sqrt(budget)) capped at the row count; the column budget
    is whatever the remaining cell budget allows per row, capped at the column
    count. Up to ``sample_header_rows`` leading and ``sample_footer_rows``
    trailing rows are always kept.
    """
    budget = config.max_analysis_cells
    max_rows = min(math.isqrt(budget), total_rows)
    if max_rows <= 0 or total_cols <= 0:
        return SamplePlan((), 0, total_rows, total_cols)

    sample_cols = min(budget // max_rows, total_cols)

    header_rows = min(config.sample_header_rows, total_rows, max_rows)
    footer_rows = max(0, min(config.sample_footer_rows, total_rows - header_rows, max_rows - header_rows))
    middle_rows = max(0, max_rows - header_rows - footer_rows)

    footer_start = total_rows - footer_rows
    rows = list(range(header_rows))
    rows.extend(_evenly_spaced(header_rows, footer_start, middle_rows))
    rows.extend(range(footer_start, total_rows))

    logger.info(
        f"Smart sampling: {len(rows)} rows × {sample_cols} cols from {total_rows} × {total_cols} "
        f"({header_rows} header, {len(rows) - header_rows - footer_rows} middle, {footer_rows} footer)"
    )
    return SamplePlan(tuple(rows), sample_cols, total_rows, total_cols)


def apply_sample_plan(grid: Optional[Sequence[Sequence[Any]]], plan: SamplePlan) -> Optional[List[List[Any]]]:
    """Cut the planned rows and leading columns out of an in-memory grid."""
    if grid is None:
        return None
    sampled = []
    for r in plan.row_indices:
        row = list(grid[r]) if r < len(grid) and grid[r] is not None else []
        row = row[:plan.col_count]
        row.extend([None] * (plan.col_count - len(row)))
        sampled.append(row)
    return sampled


def sample_grids(values: Sequence[Sequence[Any]],
                 formulas: Optional[Sequence[Sequence[Any]]],
                 formats: Optional[Sequence[Sequence[Any]]],
                 config: AnalysisConfig) -> Tuple[Any, Any, Any, Optional[SamplePlan]]:
    """
    Apply the sampling plan to in-memory grids when they exceed the budget.

    Returns (values, formulas, formats, plan); grids are passed through
    untouched and plan is None when no sampling is needed.
    """
    total_rows = len(values)
    total_cols = max((len(r) for r in values if r is not None), default=0)
    if not needs_sampling(total_rows, total_cols, config):
        return values, formulas, formats, None

    plan = plan_sample(total_rows, total_cols, config)
    return (
        apply_sample_plan(values, plan),
        apply_sample_plan(formulas, plan),
        apply_sample_plan(formats, plan),
        plan,
    )
