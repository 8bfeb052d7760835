"""
Scans a formula grid for formula cells and the worksheet functions they call.
"""
import re
from typing import Any, List, Optional, Sequence

from .cell_classifier import is_formula_text
from .table_schema import FormulaStats


FUNCTION_CALL = re.compile(r'([A-Z]+)\(')


def extract_function_names(formula: str) -> List[str]:
    """Function names in call order, e.g. '=SUM(A1:A3)/COUNT(B1:B3)' → ['SUM', 'COUNT']."""
    return FUNCTION_CALL.findall(formula)


def analyze_formulas(formula_grid: Optional[Sequence[Sequence[Any]]]) -> FormulaStats:
    """
    Count formula cells (strings starting with '=') and collect the distinct
    function names they invoke, in order of first appearance.
    """
    if not formula_grid:
        return FormulaStats()

    formula_count = 0
    seen = {}
    for row in formula_grid:
        if not row:
            continue
        for cell in row:
            if not is_formula_text(cell):
                continue
            formula_count += 1
            for name in extract_function_names(cell):
                seen.setdefault(name, None)

    return FormulaStats(
        has_formulas=formula_count > 0,
        formula_count=formula_count,
        function_names=tuple(seen),
    )
