"""LLM provider abstraction layer."""

from notecopilot.llm.base import LLMProvider, TokenStream, resolve_model_id
from notecopilot.llm.bedrock import BedrockProvider
from notecopilot.llm.connection import (
    ConnectionCache,
    ConnectionState,
    get_connection_cache,
    reset_connection_cache,
)
from notecopilot.llm.errors import (
    CancellationError,
    ConfigurationError,
    LLMError,
    TransportError,
    VendorError,
)
from notecopilot.llm.gemini import GeminiProvider
from notecopilot.llm.groq import GroqProvider
from notecopilot.llm.manager import ProviderManager, create_llm_provider
from notecopilot.llm.models import ConnectionTestResult, LLMResponse, Message, TokenUsage

__all__ = [
    "BedrockProvider",
    "CancellationError",
    "ConfigurationError",
    "ConnectionCache",
    "ConnectionState",
    "ConnectionTestResult",
    "GeminiProvider",
    "GroqProvider",
    "LLMError",
    "LLMProvider",
    "LLMResponse",
    "Message",
    "ProviderManager",
    "TokenStream",
    "TokenUsage",
    "TransportError",
    "VendorError",
    "create_llm_provider",
    "get_connection_cache",
    "reset_connection_cache",
    "resolve_model_id",
]
