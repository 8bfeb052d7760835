from .provider_factory import (
    AIProviderFactory, BaseAIProvider, AIServiceError, GenerationSettings, describe_provider_error,
)
from .prompt_builder import (
    build_context_prompt, build_compressed_prompt, format_value,
    SYSTEM_PROMPT_ANALYST,
)
from .chat_history import ChatHistory
from .chat import ask_with_context

__all__ = [
    'AIProviderFactory', 'BaseAIProvider', 'AIServiceError', 'GenerationSettings',
    'describe_provider_error',
    'build_context_prompt', 'build_compressed_prompt', 'format_value',
    'SYSTEM_PROMPT_ANALYST', 'ChatHistory', 'ask_with_context',
]
