"""
Multi-provider AI abstraction layer for the worksheet analyst chat.
Supports Google Gemini (default), Anthropic and OpenAI; the SDK of each
provider is imported only when that provider is first used.
Keys are passed per-request and never stored.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """Provider failure translated into a message safe to show the user."""


def describe_provider_error(error: Exception) -> str:
    message = str(error)
    lowered = message.lower()
    if 'api key' in lowered or 'api_key' in lowered or 'unauthorized' in lowered:
        return 'Invalid API key. Please check your AI provider configuration.'
    if 'quota' in lowered or 'rate limit' in lowered or 'resource exhausted' in lowered:
        return 'API quota exceeded. Please try again later.'
    return f'AI service error: {message}'


@dataclass(frozen=True)
class GenerationSettings:
    temperature: float = 0.7
    top_p: float = 0.8
    top_k: int = 40
    max_output_tokens: int = 3072


DEFAULT_SETTINGS = GenerationSettings()


class BaseAIProvider(ABC):
    name = ''

    def __init__(self, api_key: str, model: str, settings: Optional[GenerationSettings] = None):
        self.api_key = api_key
        self.model = model
        self.settings = settings or DEFAULT_SETTINGS
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = self._create_client()
        return self._client

    @abstractmethod
    def _create_client(self) -> Any:
        ...

    @abstractmethod
    def complete(self, system: str, user: str, max_tokens: Optional[int] = None) -> str:
        """Send one system + user exchange and return the reply text ('' when the model sent none)."""
        ...

    def _max_tokens(self, max_tokens: Optional[int]) -> int:
        return max_tokens if max_tokens is not None else self.settings.max_output_tokens

    def test_connection(self) -> bool:
        """Test the API key works by sending a minimal request."""
        try:
            result = self.complete("You are a test assistant.", "Say 'ok'", max_tokens=5)
            return bool(result)
        except Exception as e:
            logger.warning(f"{self.name} provider test failed: {e}")
            return False


class GeminiProvider(BaseAIProvider):
    name = 'gemini'

    def _create_client(self):
        from google import genai
        return genai.Client(api_key=self.api_key)

    def complete(self, system: str, user: str, max_tokens: Optional[int] = None) -> str:
        from google.genai import types
        response = self.client.models.generate_content(
            model=self.model,
            config=types.GenerateContentConfig(
                system_instruction=system,
                max_output_tokens=self._max_tokens(max_tokens),
                temperature=self.settings.temperature,
                top_p=self.settings.top_p,
                top_k=self.settings.top_k,
            ),
            contents=user,
        )
        # .text is None when the candidate was blocked or carried no text part
        return response.text or ''


class AnthropicProvider(BaseAIProvider):
    name = 'anthropic'

    def _create_client(self):
        import anthropic
        return anthropic.Anthropic(api_key=self.api_key)

    def complete(self, system: str, user: str, max_tokens: Optional[int] = None) -> str:
        message = self.client.messages.create(
            model=self.model,
            max_tokens=self._max_tokens(max_tokens),
            temperature=self.settings.temperature,
            system=system,
            messages=[{'role': 'user', 'content': user}],
        )
        return ''.join(block.text for block in message.content if getattr(block, 'type', '') == 'text')


class OpenAIProvider(BaseAIProvider):
    name = 'openai'

    def _create_client(self):
        from openai import OpenAI
        return OpenAI(api_key=self.api_key)

    def complete(self, system: str, user: str, max_tokens: Optional[int] = None) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            max_tokens=self._max_tokens(max_tokens),
            temperature=self.settings.temperature,
            top_p=self.settings.top_p,
            messages=[
                {'role': 'system', 'content': system},
                {'role': 'user', 'content': user},
            ],
        )
        if not response.choices:
            return ''
        return response.choices[0].message.content or ''


class AIProviderFactory:
    DEFAULT_PROVIDER = 'gemini'
    SUPPORTED_PROVIDERS: Dict[str, Dict[str, Any]] = {
        'gemini': {
            'class': GeminiProvider,
            'models': ['gemini-2.5-flash', 'gemini-2.5-pro'],
            'default_model': 'gemini-2.5-flash',
        },
        'anthropic': {
            'class': AnthropicProvider,
            'models': ['claude-haiku-4-5-20251001', 'claude-sonnet-4-6'],
            'default_model': 'claude-haiku-4-5-20251001',
        },
        'openai': {
            'class': OpenAIProvider,
            'models': ['gpt-4o-mini', 'gpt-4o'],
            'default_model': 'gpt-4o-mini',
        },
    }

    @staticmethod
    def get_provider(provider: str, api_key: str, model: Optional[str] = None,
                     settings: Optional[GenerationSettings] = None) -> BaseAIProvider:
        provider = (provider or AIProviderFactory.DEFAULT_PROVIDER).lower()
        if provider not in AIProviderFactory.SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported provider '{provider}'. Supported: {list(AIProviderFactory.SUPPORTED_PROVIDERS)}")

        cfg = AIProviderFactory.SUPPORTED_PROVIDERS[provider]
        return cfg['class'](api_key=api_key, model=model or cfg['default_model'], settings=settings)

    @staticmethod
    def list_providers() -> dict:
        return {
            name: {'models': cfg['models'], 'default_model': cfg['default_model']}
            for name, cfg in AIProviderFactory.SUPPORTED_PROVIDERS.items()
        }
