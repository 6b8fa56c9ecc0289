"""ProviderManager: provider selection, credential gating and telemetry."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Iterable
from contextlib import aclosing
from datetime import timedelta

from notecopilot.config.models import AssistantConfig
from notecopilot.llm.base import LLMProvider, TokenStream
from notecopilot.llm.bedrock import BedrockProvider
from notecopilot.llm.connection import ConnectionCache, ConnectionState, get_connection_cache
from notecopilot.llm.errors import ConfigurationError, LLMError
from notecopilot.llm.gemini import GeminiProvider
from notecopilot.llm.groq import GroqProvider
from notecopilot.llm.models import ConnectionTestResult, LLMResponse, Message, TokenUsage
from notecopilot.telemetry import TelemetrySink

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "bedrock"

_PROVIDER_MAP: dict[str, type[LLMProvider]] = {
    "bedrock": BedrockProvider,
    "gemini": GeminiProvider,
    "groq": GroqProvider,
}


def create_llm_provider(name: str, config: AssistantConfig) -> LLMProvider:
    cls = _PROVIDER_MAP.get(name)
    if cls is None:
        raise ValueError(
            f"Unsupported LLM provider: {name!r}. Supported: {', '.join(_PROVIDER_MAP)}"
        )
    return cls(config)


class ProviderManager:
    """Routes calls to the configured provider.

    Calls against an unconfigured provider fail with ConfigurationError
    before touching the network. Every call that reaches a provider is
    reported to the telemetry sink exactly once, however it ends.
    """

    def __init__(
        self,
        config: AssistantConfig,
        telemetry: TelemetrySink | None = None,
        connection_cache: ConnectionCache | None = None,
        providers: dict[str, LLMProvider] | None = None,
    ) -> None:
        self.config = config
        self._telemetry = telemetry
        self._connection = connection_cache or get_connection_cache(
            timedelta(seconds=config.connection.cache_duration_seconds)
        )
        self._providers = providers or {
            name: create_llm_provider(name, config) for name in _PROVIDER_MAP
        }
        self._active = self._resolve_active(config.provider)

    def _resolve_active(self, name: str) -> str:
        if name in self._providers:
            return name
        logger.warning("unknown provider %r, falling back to %s", name, DEFAULT_PROVIDER)
        return DEFAULT_PROVIDER

    def reinitialize(self, config: AssistantConfig) -> None:
        previous = self._active
        self.config = config
        for provider in self._providers.values():
            provider.reinitialize(config)
        self._active = self._resolve_active(config.provider)
        if self._active != previous:
            self._connection.clear_cache()

    # -- introspection -------------------------------------------------------

    @property
    def current_provider(self) -> str:
        return self._active

    @property
    def active_provider(self) -> LLMProvider:
        return self._providers[self._active]

    @property
    def provider_display_name(self) -> str:
        return self.active_provider.display_name

    @property
    def current_model_id(self) -> str:
        return self.active_provider.model_id

    @property
    def connection_cache(self) -> ConnectionCache:
        return self._connection

    def get_provider(self, name: str) -> LLMProvider | None:
        return self._providers.get(name)

    def is_initialized(self) -> bool:
        return self.active_provider.is_initialized()

    def providers_status(self) -> dict[str, dict[str, bool]]:
        return {
            name: {"configured": provider.is_initialized(), "active": name == self._active}
            for name, provider in self._providers.items()
        }

    # -- connection checks ---------------------------------------------------

    async def test_connection(self) -> ConnectionTestResult:
        return await self.test_provider_connection(self._active)

    async def test_provider_connection(self, name: str) -> ConnectionTestResult:
        provider = self._providers.get(name)
        if provider is None:
            return ConnectionTestResult(success=False, message="Unknown provider")
        if not provider.is_initialized():
            return ConnectionTestResult(
                success=False,
                message=f"{provider.display_name} is not configured. Please add your credentials.",
            )
        return await provider.test_connection()

    async def check_connection(self, force_refresh: bool = False) -> ConnectionState:
        """Connection status of the active provider, served from cache when fresh."""

        async def attempt() -> tuple[bool, str | None]:
            result = await self.test_connection()
            return result.success, None if result.success else result.message

        return await self._connection.check_connection(
            attempt, provider=self._active, force_refresh=force_refresh
        )

    # -- messaging -----------------------------------------------------------

    async def send_message(self, messages: Iterable[Message], system_prompt: str) -> LLMResponse:
        provider = self._require_initialized("send_message")
        start = time.monotonic()
        usage: TokenUsage | None = None
        error: str | None = None
        try:
            response = await provider.send_message(messages, system_prompt)
            usage = response.usage
            return response
        except Exception as e:
            error = _error_message(e)
            raise
        finally:
            self._report(provider, start, usage, error)

    def send_message_stream(
        self,
        messages: Iterable[Message],
        system_prompt: str,
        cancel_event: asyncio.Event | None = None,
    ) -> TokenStream:
        provider = self._require_initialized("send_message_stream")
        stream = provider.send_message_stream(messages, system_prompt, cancel_event)
        return TokenStream(self._instrument(provider, stream), stream.usage, stream.model)

    async def _instrument(self, provider: LLMProvider, stream: TokenStream) -> AsyncIterator[str]:
        start = time.monotonic()
        error: str | None = "Stream closed before completion"
        try:
            async with aclosing(aiter(stream)) as chunks:
                async for text in chunks:
                    yield text
            error = None
        except Exception as e:
            error = _error_message(e)
            raise
        finally:
            self._report(provider, start, stream.usage, error)

    def _require_initialized(self, operation: str) -> LLMProvider:
        provider = self.active_provider
        if not provider.is_initialized():
            raise ConfigurationError(
                provider.name,
                operation,
                f"{provider.display_name} is not configured. Please add your credentials in settings.",
            )
        return provider

    def _report(
        self,
        provider: LLMProvider,
        start: float,
        usage: TokenUsage | None,
        error: str | None,
    ) -> None:
        if self._telemetry is None:
            return
        duration_ms = (time.monotonic() - start) * 1000
        try:
            self._telemetry.record_llm_call(
                provider=provider.name,
                model=provider.model_id,
                duration_ms=duration_ms,
                input_tokens=usage.input_tokens if usage else None,
                output_tokens=usage.output_tokens if usage else None,
                success=error is None,
                error_message=error,
            )
        except Exception as e:
            logger.warning("telemetry sink failed: %s", e)


def _error_message(error: Exception) -> str:
    if isinstance(error, LLMError):
        return error.message
    return str(error) or type(error).__name__
