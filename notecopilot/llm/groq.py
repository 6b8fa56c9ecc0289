"""Groq adapter, using the OpenAI SDK against Groq's compatible endpoint."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    NotFoundError,
    RateLimitError,
)

from notecopilot.config.models import DEFAULT_GROQ_MODEL, GroqSettings
from notecopilot.llm.base import LLMProvider
from notecopilot.llm.errors import LLMError, TransportError, VendorError
from notecopilot.llm.models import LLMResponse, Message, TokenUsage

_NETWORK_MESSAGE = "Network error. Please check your internet connection."


def _chunk_usage(chunk: Any) -> Any:
    """Usage block of a stream chunk: top-level `usage`, else `x_groq.usage`."""
    usage = getattr(chunk, "usage", None)
    if usage is not None:
        return usage
    x_groq = (getattr(chunk, "model_extra", None) or {}).get("x_groq") or {}
    return x_groq.get("usage")


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class GroqProvider(LLMProvider):
    """Groq chat completions via the OpenAI async SDK."""

    name = "groq"
    display_name = "Groq"
    default_model = DEFAULT_GROQ_MODEL
    vendor_errors = (APIError,)

    _client: AsyncOpenAI | None

    @property
    def settings(self) -> GroqSettings:
        return self.config.groq

    def _setup(self) -> None:
        if not self.is_initialized():
            self._client = None
            return
        self._client = AsyncOpenAI(
            api_key=self.settings.api_key,
            base_url=self.settings.base_url,
            max_retries=self.config.max_retries,
            timeout=float(self.config.timeout),
        )

    def is_initialized(self) -> bool:
        return bool(self.settings.api_key)

    def _messages(self, messages: list[Message], system_prompt: str) -> list[dict[str, str]]:
        payload = [{"role": m.role, "content": m.content} for m in messages]
        if system_prompt:
            payload.insert(0, {"role": "system", "content": system_prompt})
        return payload

    async def _complete(
        self, messages: list[Message], system_prompt: str, max_tokens: int, temperature: float
    ) -> LLMResponse:
        client = self._require_client("send_message")
        response = await client.chat.completions.create(
            model=self.model_id,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=self._messages(messages, system_prompt),
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise VendorError(self.name, "send_message", "Empty response from Groq")
        usage = TokenUsage()
        if response.usage is not None:
            usage.update(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
        return LLMResponse(content=content, usage=usage, model=response.model or self.model_id)

    async def _stream(
        self,
        messages: list[Message],
        system_prompt: str,
        usage: TokenUsage,
        cancel_event: asyncio.Event | None,
    ) -> AsyncIterator[str]:
        client = self._require_client("send_message_stream")
        stream = await client.chat.completions.create(
            model=self.model_id,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            messages=self._messages(messages, system_prompt),
            stream=True,
        )
        async with aclosing(self._pull(stream, cancel_event, stream.close)) as chunks:
            async for chunk in chunks:
                reported = _chunk_usage(chunk)
                if reported is not None:
                    usage.update(
                        input_tokens=_field(reported, "prompt_tokens"),
                        output_tokens=_field(reported, "completion_tokens"),
                        total_tokens=_field(reported, "total_tokens"),
                    )
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content

    def _map_error(self, error: Exception, operation: str) -> LLMError:
        if isinstance(error, APITimeoutError):
            return TransportError(self.name, operation, _NETWORK_MESSAGE, error, category="timeout")
        if isinstance(error, APIConnectionError):
            return TransportError(self.name, operation, _NETWORK_MESSAGE, error)
        if isinstance(error, AuthenticationError):
            return VendorError(
                self.name, operation,
                "Authentication failed. Please check your Groq API key.",
                error, category="auth",
            )
        if isinstance(error, RateLimitError):
            return VendorError(
                self.name, operation,
                "Rate limit exceeded. Please wait and try again.",
                error, category="rate_limit",
            )
        if isinstance(error, NotFoundError):
            return VendorError(
                self.name, operation,
                "Model not found. Please check the model ID.",
                error, category="not_found",
            )
        if isinstance(error, BadRequestError):
            return VendorError(
                self.name, operation,
                "Invalid request. Please check your message format.",
                error, category="validation",
            )
        if isinstance(error, InternalServerError):
            return VendorError(
                self.name, operation,
                "Groq service error. Please try again later.",
                error, category="service",
            )
        detail = getattr(error, "message", None) or str(error)
        return VendorError(self.name, operation, detail, error)
