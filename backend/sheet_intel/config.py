"""
Analysis limits passed into the classification pipeline at construction.
"""
import os
from dataclasses import dataclass, fields
from typing import Dict, Optional


ENV_PREFIX = 'SHEET_INTEL_'

# field name → environment variable suffix
_ENV_NAMES = {
    'max_analysis_cells': 'MAX_CELLS',
    'header_scan_rows': 'HEADER_SCAN_ROWS',
    'sample_header_rows': 'SAMPLE_HEADER_ROWS',
    'sample_footer_rows': 'SAMPLE_FOOTER_ROWS',
    'max_prompt_quarterly_series': 'PROMPT_QUARTERLY_SERIES',
    'max_prompt_key_rows': 'PROMPT_KEY_ROWS',
    'max_prompt_other_rows': 'PROMPT_OTHER_ROWS',
    'max_context_chars': 'MAX_CONTEXT_CHARS',
    'max_chat_history': 'MAX_CHAT_HISTORY',
}


@dataclass(frozen=True)
class AnalysisConfig:
    max_analysis_cells: int = 100_000
    header_scan_rows: int = 5
    sample_header_rows: int = 5
    sample_footer_rows: int = 3
    max_prompt_quarterly_series: int = 8
    max_prompt_key_rows: int = 10
    max_prompt_other_rows: int = 6
    max_context_chars: int = 96_000  # ~32k tokens at 3 chars/token
    max_chat_history: int = 12

    def __post_init__(self):
        if self.max_analysis_cells < 1:
            raise ValueError(f"max_analysis_cells must be positive, got {self.max_analysis_cells}")
        if self.header_scan_rows < 1:
            raise ValueError(f"header_scan_rows must be positive, got {self.header_scan_rows}")
        for name in ('sample_header_rows', 'sample_footer_rows', 'max_prompt_quarterly_series',
                     'max_prompt_key_rows', 'max_prompt_other_rows', 'max_chat_history'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")
        if self.max_context_chars < 1:
            raise ValueError(f"max_context_chars must be positive, got {self.max_context_chars}")

    def to_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'AnalysisConfig':
        """Build a config from SHEET_INTEL_* environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        overrides = {}
        for name, suffix in _ENV_NAMES.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is None or raw.strip() == '':
                continue
            try:
                overrides[name] = int(raw)
            except ValueError:
                raise ValueError(f"{ENV_PREFIX + suffix} must be an integer, got '{raw}'")
        return cls(**overrides)
