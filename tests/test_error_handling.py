"""Error mapping tests for every provider adapter."""

from __future__ import annotations

from types import SimpleNamespace as NS
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest
from anthropic import APIConnectionError as AnthropicConnectionError
from anthropic import APIError as AnthropicAPIError
from anthropic import APITimeoutError as AnthropicTimeoutError
from anthropic import BadRequestError as AnthropicBadRequestError
from anthropic import RateLimitError as AnthropicRateLimitError
from openai import APIConnectionError as OpenAIConnectionError
from openai import AuthenticationError as OpenAIAuthenticationError
from openai import InternalServerError as OpenAIInternalServerError
from openai import NotFoundError as OpenAINotFoundError
from openai import RateLimitError as OpenAIRateLimitError

from notecopilot.llm import (
    BedrockProvider,
    CancellationError,
    ConfigurationError,
    GeminiProvider,
    GroqProvider,
    LLMError,
    Message,
    TransportError,
    VendorError,
)

MESSAGES = [Message(role="user", content="Hello")]
_REQUEST = httpx.Request("POST", "https://bedrock-runtime.us-east-1.amazonaws.com/model/x/invoke")


def _aws_response(status: int, error_type: str) -> httpx.Response:
    return httpx.Response(status, headers={"x-amzn-errortype": error_type}, request=_REQUEST)


# ========================================================================
# Error types
# ========================================================================


class TestErrorTypes:
    def test_str_includes_provider_and_operation(self):
        err = VendorError("groq", "send_message", "Model not found", category="not_found")
        assert str(err) == "groq send_message failed: Model not found"
        assert err.message == "Model not found"

    @pytest.mark.parametrize(
        "category, retryable",
        [
            ("rate_limit", True),
            ("not_ready", True),
            ("service", True),
            ("auth", False),
            ("quota", False),
            ("validation", False),
            ("unknown", False),
        ],
    )
    def test_vendor_retryable_by_category(self, category, retryable):
        assert VendorError("bedrock", "op", "m", category=category).retryable is retryable

    def test_transport_errors_are_retryable(self):
        err = TransportError("gemini", "op", "down", category="timeout")
        assert err.retryable
        assert err.category == "timeout"

    def test_configuration_and_cancellation(self):
        assert not ConfigurationError("groq", "op", "missing").retryable
        cancelled = CancellationError("groq", "send_message_stream")
        assert cancelled.message == "Request cancelled"
        assert isinstance(cancelled, LLMError)

    def test_cause_is_chained(self):
        cause = RuntimeError("boom")
        assert VendorError("groq", "op", "m", cause).__cause__ is cause


# ========================================================================
# Bedrock
# ========================================================================


class TestBedrockErrors:
    @pytest.mark.parametrize(
        "status, error_type, category, message",
        [
            (
                403,
                "AccessDeniedException",
                "auth",
                "Access denied. Check your AWS credentials and model access permissions.",
            ),
            (429, "ThrottlingException", "rate_limit", "Request throttled. Please wait and try again."),
            (
                400,
                "ServiceQuotaExceededException",
                "quota",
                "Service quota exceeded. Please check your Bedrock limits.",
            ),
            (429, "ModelNotReadyException", "not_ready", "Model is not ready. Please wait and try again."),
            (
                404,
                "ResourceNotFoundException:http://internal.amazon.com/coral/com.amazon.bedrock/",
                "not_found",
                "Model not found. Ensure the model is enabled in your AWS region.",
            ),
        ],
    )
    def test_aws_error_type_header(self, configured_config, status, error_type, category, message):
        provider = BedrockProvider(configured_config)
        error = AnthropicBadRequestError("raw", response=_aws_response(status, error_type), body=None)
        mapped = provider._map_error(error, "send_message")
        assert isinstance(mapped, VendorError)
        assert mapped.category == category
        assert mapped.message == message

    def test_validation_message_carries_detail(self, configured_config):
        provider = BedrockProvider(configured_config)
        error = AnthropicBadRequestError(
            "max_tokens too large", response=_aws_response(400, "ValidationException"), body=None
        )
        assert provider._map_error(error, "send_message").message == "Validation error: max_tokens too large"

    @pytest.mark.asyncio
    async def test_rate_limit_without_header_falls_back_to_class(self, configured_config):
        provider = BedrockProvider(configured_config)
        with patch.object(
            provider._client.messages,
            "create",
            side_effect=AnthropicRateLimitError(message="rate limit", response=Mock(), body=None),
        ):
            with pytest.raises(VendorError) as exc_info:
                await provider.send_message(MESSAGES, "sys")

        assert exc_info.value.provider == "bedrock"
        assert exc_info.value.operation == "send_message"
        assert exc_info.value.category == "rate_limit"
        assert exc_info.value.retryable
        assert isinstance(exc_info.value.__cause__, AnthropicRateLimitError)

    @pytest.mark.asyncio
    async def test_unmapped_error_keeps_vendor_message(self, configured_config):
        provider = BedrockProvider(configured_config)
        with patch.object(
            provider._client.messages,
            "create",
            side_effect=AnthropicAPIError(message="test error", request=Mock(), body=None),
        ):
            with pytest.raises(VendorError) as exc_info:
                await provider.send_message(MESSAGES, "sys")

        assert exc_info.value.message == "test error"
        assert exc_info.value.category == "unknown"
        assert not exc_info.value.retryable

    @pytest.mark.parametrize(
        "error, category",
        [
            (AnthropicConnectionError(request=_REQUEST), "network"),
            (AnthropicTimeoutError(request=_REQUEST), "timeout"),
        ],
    )
    def test_transport_failures(self, configured_config, error, category):
        mapped = BedrockProvider(configured_config)._map_error(error, "send_message")
        assert isinstance(mapped, TransportError)
        assert mapped.category == category
        assert mapped.message == "Network error. Please check your internet connection."

    @pytest.mark.asyncio
    async def test_stream_error_surfaces_on_iteration(self, configured_config):
        provider = BedrockProvider(configured_config)
        error = AnthropicBadRequestError(
            "denied", response=_aws_response(403, "AccessDeniedException"), body=None
        )
        with patch.object(provider._client.messages, "create", side_effect=error):
            stream = provider.send_message_stream(MESSAGES, "sys")
            with pytest.raises(VendorError) as exc_info:
                await stream.collect()
        assert exc_info.value.operation == "send_message_stream"
        assert exc_info.value.category == "auth"

    @pytest.mark.asyncio
    async def test_empty_response(self, configured_config):
        provider = BedrockProvider(configured_config)
        message = NS(content=[], usage=NS(input_tokens=1, output_tokens=0), model="m")
        with patch.object(provider._client.messages, "create", new=AsyncMock(return_value=message)):
            with pytest.raises(VendorError, match="Empty response from Bedrock"):
                await provider.send_message(MESSAGES, "sys")


# ========================================================================
# Groq
# ========================================================================


class TestGroqErrors:
    @pytest.mark.parametrize(
        "error_cls, category, message",
        [
            (OpenAIAuthenticationError, "auth", "Authentication failed. Please check your Groq API key."),
            (OpenAIRateLimitError, "rate_limit", "Rate limit exceeded. Please wait and try again."),
            (OpenAINotFoundError, "not_found", "Model not found. Please check the model ID."),
            (OpenAIInternalServerError, "service", "Groq service error. Please try again later."),
        ],
    )
    @pytest.mark.asyncio
    async def test_status_errors(self, configured_config, error_cls, category, message):
        provider = GroqProvider(configured_config)
        with patch.object(
            provider._client.chat.completions,
            "create",
            side_effect=error_cls(message="raw", response=Mock(), body=None),
        ):
            with pytest.raises(VendorError) as exc_info:
                await provider.send_message(MESSAGES, "sys")

        assert exc_info.value.category == category
        assert exc_info.value.message == message
        assert isinstance(exc_info.value.__cause__, error_cls)

    def test_connection_error(self, configured_config):
        error = OpenAIConnectionError(request=httpx.Request("POST", "https://api.groq.com"))
        mapped = GroqProvider(configured_config)._map_error(error, "send_message")
        assert isinstance(mapped, TransportError)
        assert mapped.retryable

    @pytest.mark.asyncio
    async def test_connection_test_reports_mapped_message(self, configured_config):
        provider = GroqProvider(configured_config)
        with patch.object(
            provider._client.chat.completions,
            "create",
            side_effect=OpenAIAuthenticationError(message="bad key", response=Mock(), body=None),
        ):
            result = await provider.test_connection()
        assert not result.success
        assert result.message == "Authentication failed. Please check your Groq API key."
        assert result.error

    @pytest.mark.asyncio
    async def test_empty_response(self, configured_config):
        provider = GroqProvider(configured_config)
        response = NS(choices=[NS(message=NS(content=""))], usage=None, model="m")
        with patch.object(provider._client.chat.completions, "create", new=AsyncMock(return_value=response)):
            with pytest.raises(VendorError, match="Empty response from Groq"):
                await provider.send_message(MESSAGES, "sys")


# ========================================================================
# Gemini
# ========================================================================


def _gemini_failing(config, status, body=None):
    def handler(request):
        return httpx.Response(status, json=body or {"error": {"message": "upstream says no"}})

    return GeminiProvider(config, transport=httpx.MockTransport(handler))


class TestGeminiErrors:
    @pytest.mark.parametrize(
        "status, category, retryable",
        [
            (401, "auth", False),
            (403, "auth", False),
            (404, "not_found", False),
            (429, "rate_limit", True),
            (500, "service", True),
            (503, "service", True),
        ],
    )
    @pytest.mark.asyncio
    async def test_status_mapping(self, configured_config, status, category, retryable):
        provider = _gemini_failing(configured_config, status)
        with pytest.raises(VendorError) as exc_info:
            await provider.send_message(MESSAGES, "sys")
        assert exc_info.value.category == category
        assert exc_info.value.retryable is retryable
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_unlisted_status_uses_vendor_detail(self, configured_config):
        provider = _gemini_failing(configured_config, 400)
        with pytest.raises(VendorError) as exc_info:
            await provider.send_message(MESSAGES, "sys")
        assert exc_info.value.message == "upstream says no"
        assert exc_info.value.category == "unknown"

    @pytest.mark.asyncio
    async def test_stream_status_error(self, configured_config):
        provider = _gemini_failing(configured_config, 429)
        with pytest.raises(VendorError) as exc_info:
            await provider.send_message_stream(MESSAGES, "sys").collect()
        assert exc_info.value.category == "rate_limit"
        assert exc_info.value.operation == "send_message_stream"

    @pytest.mark.parametrize(
        "error, category",
        [
            (httpx.ConnectError("connection refused"), "network"),
            (httpx.ReadTimeout("timed out"), "timeout"),
        ],
    )
    @pytest.mark.asyncio
    async def test_transport_failures(self, configured_config, error, category):
        def handler(request):
            raise error

        provider = GeminiProvider(configured_config, transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError) as exc_info:
            await provider.send_message(MESSAGES, "sys")
        assert exc_info.value.category == category
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_empty_response(self, configured_config):
        def handler(request):
            return httpx.Response(200, json={"candidates": []})

        provider = GeminiProvider(configured_config, transport=httpx.MockTransport(handler))
        with pytest.raises(VendorError, match="Empty response from Gemini"):
            await provider.send_message(MESSAGES, "sys")
