"""AWS Bedrock (Claude) adapter."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from anthropic import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AsyncAnthropicBedrock,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    UnprocessableEntityError,
)

from notecopilot.config.models import DEFAULT_BEDROCK_MODEL, BedrockSettings
from notecopilot.llm.base import LLMProvider
from notecopilot.llm.errors import ErrorCategory, LLMError, TransportError, VendorError
from notecopilot.llm.models import LLMResponse, Message, TokenUsage

logger = logging.getLogger(__name__)

_NETWORK_MESSAGE = "Network error. Please check your internet connection."

# AWS error type (x-amzn-errortype header) -> (category, message template)
_AWS_ERRORS: dict[str, tuple[ErrorCategory, str]] = {
    "AccessDeniedException": (
        "auth",
        "Access denied. Check your AWS credentials and model access permissions.",
    ),
    "ValidationException": ("validation", "Validation error: {detail}"),
    "ThrottlingException": ("rate_limit", "Request throttled. Please wait and try again."),
    "ServiceQuotaExceededException": (
        "quota",
        "Service quota exceeded. Please check your Bedrock limits.",
    ),
    "ModelNotReadyException": ("not_ready", "Model is not ready. Please wait and try again."),
    "ModelTimeoutException": ("timeout", "Model request timed out. Please try again."),
    "ModelErrorException": ("service", "Model error: {detail}"),
    "ResourceNotFoundException": (
        "not_found",
        "Model not found. Ensure the model is enabled in your AWS region.",
    ),
    "UnauthorizedException": ("auth", "Authentication failed. Please check your AWS credentials."),
}

# Fallback when the error type header is missing, in lookup order.
_STATUS_ERRORS: list[tuple[type[APIError], str]] = [
    (AuthenticationError, "UnauthorizedException"),
    (PermissionDeniedError, "AccessDeniedException"),
    (RateLimitError, "ThrottlingException"),
    (NotFoundError, "ResourceNotFoundException"),
    (BadRequestError, "ValidationException"),
    (UnprocessableEntityError, "ValidationException"),
    (InternalServerError, "ModelErrorException"),
]


def _aws_error_type(error: Exception) -> str | None:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers is None:
        return None
    value = headers.get("x-amzn-errortype")
    if not isinstance(value, str) or not value:
        return None
    # Sometimes suffixed with ":http://internal.amazon.com/coral/..."
    return value.split(":", 1)[0]


class BedrockProvider(LLMProvider):
    """Claude on Bedrock via the Anthropic async SDK."""

    name = "bedrock"
    display_name = "AWS Bedrock (Claude)"
    default_model = DEFAULT_BEDROCK_MODEL
    vendor_errors = (APIError,)

    _client: AsyncAnthropicBedrock | None

    @property
    def settings(self) -> BedrockSettings:
        return self.config.bedrock

    def _setup(self) -> None:
        if not self.is_initialized():
            self._client = None
            return
        s = self.settings
        self._client = AsyncAnthropicBedrock(
            aws_access_key=s.access_key_id,
            aws_secret_key=s.secret_access_key,
            aws_session_token=s.session_token or None,
            aws_region=s.region,
            max_retries=self.config.max_retries,
            timeout=float(self.config.timeout),
        )

    def is_initialized(self) -> bool:
        s = self.settings
        return bool(s.access_key_id and s.secret_access_key)

    def _request(
        self, messages: list[Message], system_prompt: str, max_tokens: int, temperature: float
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self.model_id,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if system_prompt:
            request["system"] = system_prompt
        return request

    async def _complete(
        self, messages: list[Message], system_prompt: str, max_tokens: int, temperature: float
    ) -> LLMResponse:
        client = self._require_client("send_message")
        message = await client.messages.create(
            **self._request(messages, system_prompt, max_tokens, temperature)
        )
        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        if not text:
            raise VendorError(self.name, "send_message", "Empty response from Bedrock")
        usage = TokenUsage()
        usage.update(
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
        )
        return LLMResponse(content=text, usage=usage, model=message.model or self.model_id)

    async def _stream(
        self,
        messages: list[Message],
        system_prompt: str,
        usage: TokenUsage,
        cancel_event: asyncio.Event | None,
    ) -> AsyncIterator[str]:
        client = self._require_client("send_message_stream")
        stream = await client.messages.create(
            **self._request(messages, system_prompt, self.config.max_tokens, self.config.temperature),
            stream=True,
        )
        async with aclosing(self._pull(stream, cancel_event, stream.close)) as events:
            async for event in events:
                kind = getattr(event, "type", None)
                if kind == "message_start":
                    usage.update(input_tokens=event.message.usage.input_tokens)
                elif kind == "content_block_delta":
                    if getattr(event.delta, "type", None) == "text_delta" and event.delta.text:
                        yield event.delta.text
                elif kind == "message_delta":
                    usage.update(output_tokens=event.usage.output_tokens)
                elif kind == "message_stop":
                    metrics = (getattr(event, "model_extra", None) or {}).get(
                        "amazon-bedrock-invocationMetrics"
                    )
                    if metrics:
                        usage.update(
                            input_tokens=metrics.get("inputTokenCount"),
                            output_tokens=metrics.get("outputTokenCount"),
                        )

    def _map_error(self, error: Exception, operation: str) -> LLMError:
        detail = getattr(error, "message", None) or str(error) or "An unknown error occurred"
        if isinstance(error, APITimeoutError):
            return TransportError(self.name, operation, _NETWORK_MESSAGE, error, category="timeout")
        if isinstance(error, APIConnectionError):
            return TransportError(self.name, operation, _NETWORK_MESSAGE, error)

        error_type = _aws_error_type(error)
        if error_type not in _AWS_ERRORS:
            error_type = next(
                (name for cls, name in _STATUS_ERRORS if isinstance(error, cls)), None
            )
        if error_type is None:
            logger.debug("unmapped bedrock error %s: %s", type(error).__name__, detail)
            return VendorError(self.name, operation, detail, error)

        category, template = _AWS_ERRORS[error_type]
        return VendorError(
            self.name, operation, template.format(detail=detail), error, category=category
        )
