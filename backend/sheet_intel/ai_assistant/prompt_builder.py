"""
Builds the financial-analyst prompts from a SheetAnalysis.
"""
from typing import Any, List, Optional

from ..config import AnalysisConfig
from ..excel_analyzer.cell_classifier import is_real_number, parse_number
from ..excel_analyzer.table_schema import SheetAnalysis
from .chat_history import ChatHistory


SYSTEM_PROMPT_ANALYST = """You are an Excel financial data assistant analysing workbooks and financial models.

You understand:
- Financial statements (P&L, balance sheet, cash flow), metrics, ratios and KPIs
- Quarterly and annual trends
- The difference between raw inputs and formula-calculated values
- Number formatting (currency, percentages, dates)
- Sampled views of very large ranges

Response guidelines:
- Be concise by default; expand only when asked
- Always name the exact row labels and column headers you took values from
- When the data is sampled, say so and caveat conclusions accordingly
- Use tables or bullet points for multi-value answers
- Ask a clarifying question when the request is ambiguous
"""

ANALYSIS_INSTRUCTIONS = """ANALYSIS INSTRUCTIONS:
1. Keep the answer brief unless the user asks for detail
2. Cite exact row labels and column headers for every value used
3. {sampling}
4. Distinguish raw inputs from calculated (formula) values
5. Consider time trends and ratios where relevant
"""


def format_value(value: Any) -> str:
    """Compact display form: 'N/A', '1.2M', '3.4K', or up to 20 characters of text."""
    if value is None or value == '':
        return 'N/A'
    number = parse_number(value) if is_real_number(value) else None
    if number is not None:
        if abs(number) >= 1_000_000:
            return f'{number / 1_000_000:.1f}M'
        if abs(number) >= 1_000:
            return f'{number / 1_000:.1f}K'
        return str(value)
    return str(value)[:20]


def _non_empty(values) -> List[Any]:
    return [v for v in values if v is not None and v != '']


def _row_tags(row) -> str:
    tags = ''
    if row.is_total:
        tags += ' [TOTAL]'
    if row.has_formulas:
        tags += ' [CALCULATED]'
    return tags


def _overview_section(analysis: SheetAnalysis) -> str:
    text = f"""WORKSHEET OVERVIEW:
- Name: "{analysis.worksheet_name}"
- Range: {analysis.address} ({analysis.row_count} rows × {analysis.col_count} columns)
- Data Source: {'Selected Range' if analysis.is_selection else 'Full Worksheet'}"""
    if analysis.is_sampled:
        text += """
- IMPORTANT: This is SAMPLED data (header, footer and evenly spaced middle rows)"""
        if analysis.original_rows is not None:
            text += f"""
- Original size: {analysis.original_rows} rows × {analysis.original_cols} columns"""
    return text + '\n\n'


def _objects_section(analysis: SheetAnalysis) -> str:
    objects = analysis.objects
    if not (objects.tables or objects.pivot_tables or objects.charts or objects.has_named_ranges):
        return ''
    text = 'EXCEL OBJECTS DETECTED:'
    if objects.tables:
        text += f"\n- Excel Tables: {', '.join(objects.tables)}"
    if objects.pivot_tables:
        text += f"\n- Pivot Tables: {', '.join(objects.pivot_tables)}"
    if objects.charts:
        text += f"\n- Charts: {', '.join(objects.charts)}"
    if objects.has_named_ranges:
        text += '\n- Named Ranges: Present'
    return text + '\n\n'


def _workbook_section(analysis: SheetAnalysis) -> str:
    wb = analysis.workbook
    if wb is None:
        return ''
    others = ', '.join(f'{s.name} ({s.total_cells} cells)' for s in wb.sheets if s.name != analysis.worksheet_name)
    return f"""WORKBOOK STRUCTURE:
- Total Sheets: {wb.total_sheets}
- Total Data Cells: {wb.total_data_cells:,}
- Other Sheets: {others or 'None'}

"""


def _structure_section(analysis: SheetAnalysis, config: AnalysisConfig) -> str:
    table = analysis.table
    headers = ' | '.join(str(h) for h in table.headers if h is not None and h != '')
    text = f"""TABLE STRUCTURE ANALYSIS:
- Data Type: {table.kind}
- Column Headers: {headers or 'Not detected'}
- Data Rows: {len(table.rows)}
- Key Financial Rows: {len(table.key_rows)}
- Total/Summary Rows: {len(table.total_rows)}

"""
    formulas = table.formula_stats
    if formulas.has_formulas:
        text += f"""FORMULA ANALYSIS:
- Total Formulas: {formulas.formula_count}
- Formula Types: {', '.join(formulas.function_names) or 'cell arithmetic only'}

"""
    formats = table.format_stats
    if formats.has_formatting:
        more = '...' if len(formats.distinct_formats) > 5 else ''
        text += f"""NUMBER FORMATTING:
- Custom Formats: {', '.join(formats.distinct_formats[:5])}{more}

"""
    total_cells = table.classified_cells
    if total_cells:
        text += 'DATA TYPE DISTRIBUTION:'
        for cell_type, count in table.type_histogram.items():
            if count:
                text += f'\n- {cell_type}: {count} cells ({count / total_cells * 100:.1f}%)'
        text += '\n\n'

    limit = config.max_prompt_quarterly_series
    if table.quarterly_series:
        text += 'QUARTERLY/TIME-SERIES DATA:\n'
        for series in table.quarterly_series[:limit]:
            points = ', '.join(f'{p.quarter}={format_value(p.value)}' for p in series.points)
            text += f"{series.row_label}{' [TOTAL]' if series.is_total else ''}: {points}\n"
        if len(table.quarterly_series) > limit:
            text += f'... and {len(table.quarterly_series) - limit} more quarterly series\n'
        text += '\n'

    limit = config.max_prompt_key_rows
    if table.key_rows:
        text += 'KEY FINANCIAL METRICS:\n'
        for row in table.key_rows[:limit]:
            values = _non_empty(row.values)
            text += f'"{row.label}"{_row_tags(row)}: ' + ', '.join(format_value(v) for v in values[:8])
            if len(values) > 8:
                text += f', ... ({len(values) - 8} more)'
            text += '\n'
        if len(table.key_rows) > limit:
            text += f'... and {len(table.key_rows) - limit} more key rows\n'
        text += '\n'

    key_indexes = {r.index for r in table.key_rows}
    other_rows = [r for r in table.rows if r.index not in key_indexes][:config.max_prompt_other_rows]
    if other_rows:
        text += 'OTHER DATA ROWS (sample):\n'
        for row in other_rows:
            values = _non_empty(row.values)
            text += f'"{row.label}"{" [CALCULATED]" if row.has_formulas else ""}: '
            text += ', '.join(format_value(v) for v in values[:4])
            if len(values) > 4:
                text += f', ... ({len(values) - 4} more)'
            text += '\n'
        text += '\n'
    return text


def _history_section(history: Optional[ChatHistory]) -> str:
    if history is None or len(history) <= 2:
        return ''
    text = 'CONVERSATION HISTORY:\n'
    for i, msg in enumerate(history.recent(6), start=1):
        if msg['role'] == 'user':
            text += f'[{i}] User: "{msg["content"]}"\n'
        else:
            content = msg['content']
            truncated = content[:120] + '...' if len(content) > 120 else content
            text += f'[{i}] Assistant: "{truncated}"\n'
    return text + '\n'


def build_context_prompt(question: str, analysis: SheetAnalysis,
                         history: Optional[ChatHistory] = None,
                         config: Optional[AnalysisConfig] = None) -> str:
    """Full analysis prompt: worksheet context, detected structure, history, then the question."""
    config = config or AnalysisConfig()
    prompt = 'EXCEL DATA ANALYSIS REQUEST:\n\n'
    prompt += _overview_section(analysis)
    prompt += _objects_section(analysis)
    prompt += _workbook_section(analysis)
    if not analysis.table.is_empty:
        prompt += _structure_section(analysis, config)
    else:
        prompt += f'{analysis.summary}\n\n'
    prompt += _history_section(history)

    sampling = ('Remember this is sampled data - provide appropriate caveats' if analysis.is_sampled
                else 'You have access to the complete dataset')
    prompt += f'CURRENT USER QUESTION: "{question}"\n\n'
    prompt += ANALYSIS_INSTRUCTIONS.format(sampling=sampling)
    return prompt


def build_compressed_prompt(question: str, analysis: SheetAnalysis,
                            history: Optional[ChatHistory] = None) -> str:
    """Short form used when the full prompt would exceed the context budget."""
    table = analysis.table
    prompt = (f'COMPRESSED EXCEL ANALYSIS (Large Dataset):\n\n'
              f'WORKSHEET: "{analysis.worksheet_name}" | Range: {analysis.address} '
              f'({analysis.row_count}×{analysis.col_count})')
    if analysis.is_sampled:
        prompt += ' | SAMPLED DATA'

    headers = ' | '.join(str(h) for h in table.headers[:10]) or 'N/A'
    prompt += f'\n\nKEY STRUCTURE:\n- Headers: {headers}\n- Key Rows: {len(table.key_rows)} | Data Rows: {len(table.rows)}'

    if table.key_rows:
        prompt += '\n\nTOP METRICS:'
        for row in table.key_rows[:5]:
            values = _non_empty(row.values)[:4]
            prompt += f"\n{row.label}: {', '.join(format_value(v) for v in values)}"

    if table.quarterly_series:
        prompt += (f'\n\nQUARTERLY: {len(table.quarterly_series)} series | '
                   f'Example: {table.quarterly_series[0].row_label}')

    if history is not None and len(history) > 0:
        recent = ' | '.join(f"{m['role']}: {m['content'][:50]}..." for m in history.recent(2))
        prompt += f'\n\nRECENT: {recent}'

    prompt += (f'\n\nQUESTION: "{question}"\n\n'
               'Note: Provide focused analysis due to large dataset. Request specific details if needed.')
    return prompt
