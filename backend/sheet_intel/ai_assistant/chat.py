"""
Asks the configured AI provider a question about the analysed worksheet.
"""
import logging
from typing import Optional

from ..config import AnalysisConfig
from ..excel_analyzer.table_schema import SheetAnalysis
from .chat_history import ChatHistory
from .prompt_builder import SYSTEM_PROMPT_ANALYST, build_compressed_prompt, build_context_prompt
from .provider_factory import AIServiceError, BaseAIProvider, describe_provider_error

logger = logging.getLogger(__name__)


def ask_with_context(provider: BaseAIProvider, question: str, analysis: Optional[SheetAnalysis],
                     history: ChatHistory, config: Optional[AnalysisConfig] = None) -> str:
    """
    Send ``question`` with the worksheet context and record both turns in ``history``.

    Raises AIServiceError with a user-facing message when there is no
    analysis to ground the question in or the provider call fails.
    """
    config = config or AnalysisConfig()
    if analysis is None:
        raise AIServiceError('No Excel data available. Analyse a worksheet first.')

    prompt = build_context_prompt(question, analysis, history, config)
    if len(prompt) > config.max_context_chars:
        logger.info(f"Large prompt detected ({len(prompt)} chars), applying compression")
        prompt = build_compressed_prompt(question, analysis, history)

    try:
        answer = provider.complete(SYSTEM_PROMPT_ANALYST, prompt)
    except Exception as e:
        logger.warning(f"AI provider call failed: {e}")
        raise AIServiceError(describe_provider_error(e)) from e

    if not answer or not answer.strip():
        raise AIServiceError('Empty response from AI')

    answer = answer.strip()
    history.add('user', question)
    history.add('assistant', answer)
    return answer
