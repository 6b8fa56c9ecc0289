"""Google Gemini adapter using the REST API via httpx."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import httpx

from notecopilot.config.models import DEFAULT_GEMINI_MODEL, AssistantConfig, GeminiSettings
from notecopilot.llm.base import LLMProvider
from notecopilot.llm.errors import ErrorCategory, LLMError, TransportError, VendorError
from notecopilot.llm.models import LLMResponse, Message, TokenUsage

logger = logging.getLogger(__name__)

_NETWORK_MESSAGE = "Network error. Please check your internet connection."

_STATUS_ERRORS: dict[int, tuple[ErrorCategory, str]] = {
    401: ("auth", "Authentication failed. Please check your Gemini API key."),
    403: ("auth", "Authentication failed. Please check your Gemini API key."),
    429: ("rate_limit", "Rate limit exceeded. Please wait and try again."),
    404: ("not_found", "Model not found. Please check the model ID."),
    500: ("service", "Gemini service error. Please try again later."),
    503: ("service", "Gemini service error. Please try again later."),
}


def _candidate_text(data: dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


def _error_detail(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return response.text or f"HTTP {response.status_code}"


def _apply_usage_metadata(usage: TokenUsage, metadata: dict[str, Any]) -> None:
    usage.update(
        input_tokens=metadata.get("promptTokenCount"),
        output_tokens=metadata.get("candidatesTokenCount"),
        total_tokens=metadata.get("totalTokenCount"),
    )


class GeminiProvider(LLMProvider):
    """Gemini adapter speaking generateContent / streamGenerateContent over SSE."""

    name = "gemini"
    display_name = "Google Gemini"
    default_model = DEFAULT_GEMINI_MODEL
    vendor_errors = (httpx.HTTPError,)

    _client: httpx.AsyncClient | None

    def __init__(
        self, config: AssistantConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._transport = transport
        super().__init__(config)

    @property
    def settings(self) -> GeminiSettings:
        return self.config.gemini

    def _setup(self) -> None:
        if not self.is_initialized():
            self._client = None
            return
        self._client = httpx.AsyncClient(
            base_url=self.settings.base_url.rstrip("/"),
            headers={"x-goog-api-key": self.settings.api_key},
            timeout=float(self.config.timeout),
            transport=self._transport,
        )

    def is_initialized(self) -> bool:
        return bool(self.settings.api_key)

    def _payload(
        self, messages: list[Message], system_prompt: str, max_tokens: int, temperature: float
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if m.role == "assistant" else "user",
                    "parts": [{"text": m.content}],
                }
                for m in messages
            ],
            "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        return payload

    async def _complete(
        self, messages: list[Message], system_prompt: str, max_tokens: int, temperature: float
    ) -> LLMResponse:
        client = self._require_client("send_message")
        resp = await client.post(
            f"/models/{self.model_id}:generateContent",
            json=self._payload(messages, system_prompt, max_tokens, temperature),
        )
        resp.raise_for_status()
        data = resp.json()

        text = _candidate_text(data)
        if not text:
            raise VendorError(self.name, "send_message", "Empty response from Gemini")
        usage = TokenUsage()
        if data.get("usageMetadata"):
            _apply_usage_metadata(usage, data["usageMetadata"])
        else:
            usage.update(output_tokens=len(text.split()), estimated=True)
        return LLMResponse(content=text, usage=usage, model=data.get("modelVersion") or self.model_id)

    async def _stream(
        self,
        messages: list[Message],
        system_prompt: str,
        usage: TokenUsage,
        cancel_event: asyncio.Event | None,
    ) -> AsyncIterator[str]:
        client = self._require_client("send_message_stream")
        payload = self._payload(
            messages, system_prompt, self.config.max_tokens, self.config.temperature
        )
        reported = False
        emitted = ""
        async with client.stream(
            "POST",
            f"/models/{self.model_id}:streamGenerateContent",
            params={"alt": "sse"},
            json=payload,
        ) as resp:
            if resp.is_error:
                await resp.aread()
                resp.raise_for_status()
            async with aclosing(self._pull(resp.aiter_lines(), cancel_event, resp.aclose)) as lines:
                async for line in lines:
                    if not line.startswith("data:"):
                        continue
                    chunk = line[len("data:"):].strip()
                    if not chunk or chunk == "[DONE]":
                        continue
                    try:
                        data = json.loads(chunk)
                    except json.JSONDecodeError as e:
                        logger.debug("skipping malformed gemini chunk: %s", e)
                        continue
                    if not isinstance(data, dict):
                        continue
                    if data.get("usageMetadata"):
                        _apply_usage_metadata(usage, data["usageMetadata"])
                        reported = reported or "candidatesTokenCount" in data["usageMetadata"]
                    text = _candidate_text(data)
                    if not text:
                        continue
                    if not reported:
                        # Approximation until the vendor reports real counts.
                        emitted += text
                        usage.update(output_tokens=len(emitted.split()), estimated=True)
                    yield text

    def _map_error(self, error: Exception, operation: str) -> LLMError:
        if isinstance(error, httpx.TimeoutException):
            return TransportError(self.name, operation, _NETWORK_MESSAGE, error, category="timeout")
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            if status in _STATUS_ERRORS:
                category, message = _STATUS_ERRORS[status]
                return VendorError(self.name, operation, message, error, category=category)
            detail = _error_detail(error.response)
            logger.debug("unmapped gemini status %d: %s", status, detail)
            return VendorError(self.name, operation, detail, error)
        if isinstance(error, httpx.TransportError):
            return TransportError(self.name, operation, _NETWORK_MESSAGE, error)
        return VendorError(self.name, operation, str(error), error)
