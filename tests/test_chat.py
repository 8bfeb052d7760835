"""
Asking the AI provider about an analysed worksheet.
"""
from types import SimpleNamespace

import pytest

from sheet_intel.ai_assistant.chat import ask_with_context
from sheet_intel.ai_assistant.chat_history import ChatHistory
from sheet_intel.ai_assistant.prompt_builder import SYSTEM_PROMPT_ANALYST
from sheet_intel.ai_assistant.provider_factory import (
    AIProviderFactory, AIServiceError, AnthropicProvider, GeminiProvider, GenerationSettings,
    describe_provider_error,
)
from sheet_intel.config import AnalysisConfig
from sheet_intel.excel_analyzer.table_builder import TableAnalyzer


@pytest.fixture
def analysis(quarterly_grid):
    return TableAnalyzer().analyze_grids(quarterly_grid, worksheet_name="P&L")


def test_answer_recorded_in_history(fake_provider, analysis):
    history = ChatHistory()
    answer = ask_with_context(fake_provider, "How did revenue trend?", analysis, history)

    assert answer == "Revenue grew 30% across the year."
    assert history.turns == 1
    assert [m['role'] for m in history.to_list()] == ['user', 'assistant']
    call = fake_provider.calls[0]
    assert call['system'] == SYSTEM_PROMPT_ANALYST
    assert call['user'].startswith('EXCEL DATA ANALYSIS REQUEST:')


def test_large_prompt_is_compressed(fake_provider, analysis):
    config = AnalysisConfig(max_context_chars=200)
    ask_with_context(fake_provider, "Summarise", analysis, ChatHistory(), config)
    assert fake_provider.calls[0]['user'].startswith('COMPRESSED EXCEL ANALYSIS (Large Dataset):')


def test_no_analysis(fake_provider):
    with pytest.raises(AIServiceError, match="No Excel data available"):
        ask_with_context(fake_provider, "q", None, ChatHistory())
    assert fake_provider.calls == []


@pytest.mark.parametrize('error,message', [
    (RuntimeError("401 Unauthorized"), 'Invalid API key. Please check your AI provider configuration.'),
    (RuntimeError("Invalid API key provided"), 'Invalid API key. Please check your AI provider configuration.'),
    (RuntimeError("429 RESOURCE_EXHAUSTED: quota"), 'API quota exceeded. Please try again later.'),
    (RuntimeError("connection reset"), 'AI service error: connection reset'),
])
def test_provider_errors_are_translated(provider_class, analysis, error, message):
    history = ChatHistory()
    with pytest.raises(AIServiceError) as excinfo:
        ask_with_context(provider_class(error=error), "q", analysis, history)
    assert str(excinfo.value) == message
    assert len(history) == 0


def test_describe_provider_error():
    assert describe_provider_error(ValueError("rate limit reached")) == 'API quota exceeded. Please try again later.'


@pytest.mark.parametrize('reply', ["", "   ", None])
def test_empty_reply(provider_class, analysis, reply):
    with pytest.raises(AIServiceError, match="Empty response from AI"):
        ask_with_context(provider_class(reply=reply), "q", analysis, ChatHistory())


def test_reply_is_stripped(provider_class, analysis):
    assert ask_with_context(provider_class(reply="  ok \n"), "q", analysis, ChatHistory()) == "ok"


def test_factory_defaults():
    provider = AIProviderFactory.get_provider(AIProviderFactory.DEFAULT_PROVIDER, "key")
    assert isinstance(provider, GeminiProvider)
    assert provider.model == 'gemini-2.5-flash'

    provider = AIProviderFactory.get_provider("Anthropic", "key", "claude-sonnet-4-6")
    assert isinstance(provider, AnthropicProvider)
    assert provider.model == "claude-sonnet-4-6"


def test_factory_rejects_unknown_provider():
    with pytest.raises(ValueError, match="Unsupported provider"):
        AIProviderFactory.get_provider("mistral", "key")


def test_list_providers():
    providers = AIProviderFactory.list_providers()
    assert set(providers) == {'gemini', 'anthropic', 'openai'}
    assert providers['gemini']['default_model'] == 'gemini-2.5-flash'


class _Recorder:
    """Minimal SDK client double: records create() kwargs and returns a canned response."""

    def __init__(self, response):
        self.response = response
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        return self.response


def test_anthropic_reply_joins_text_blocks():
    provider = AIProviderFactory.get_provider("anthropic", "key")
    recorder = _Recorder(SimpleNamespace(content=[
        SimpleNamespace(type='text', text='Revenue '),
        SimpleNamespace(type='tool_use', id='t1'),
        SimpleNamespace(type='text', text='rose.'),
    ]))
    provider._client = SimpleNamespace(messages=recorder)

    assert provider.complete("system", "question") == 'Revenue rose.'
    assert recorder.kwargs['max_tokens'] == 3072
    assert recorder.kwargs['temperature'] == 0.7


def test_openai_reply_without_choices_is_empty():
    settings = GenerationSettings(temperature=0.2, max_output_tokens=500)
    provider = AIProviderFactory.get_provider("openai", "key", settings=settings)
    recorder = _Recorder(SimpleNamespace(choices=[]))
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=recorder))

    assert provider.complete("system", "question") == ''
    assert recorder.kwargs['max_tokens'] == 500
    assert recorder.kwargs['temperature'] == 0.2
    assert not provider.test_connection()
