"""Abstract LLM interface and the streaming result type."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import aclosing
from typing import Any, ClassVar, TypeVar

from notecopilot.config.models import CUSTOM_MODEL_SENTINEL, AssistantConfig
from notecopilot.llm.errors import CancellationError, ConfigurationError, LLMError
from notecopilot.llm.models import ConnectionTestResult, LLMResponse, Message, TokenUsage

T = TypeVar("T")


def resolve_model_id(model_id: str, custom_model_id: str, default: str) -> str:
    """Resolve the effective model id, honouring the "other" sentinel."""
    if model_id == CUSTOM_MODEL_SENTINEL:
        return custom_model_id or default
    return model_id or default


def conversation(messages: Iterable[Message]) -> list[Message]:
    """Drop system-role turns; system intent travels only via the system prompt."""
    return [m for m in messages if m.role != "system"]


class TokenStream:
    """Single-pass async iterator over response text deltas.

    `usage` is filled in by the producer while the stream is consumed and is
    final once iteration finishes.
    """

    def __init__(self, chunks: AsyncIterator[str], usage: TokenUsage, model: str) -> None:
        self._chunks = chunks
        self.usage = usage
        self.model = model
        self.finished = False
        self._started = False

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("TokenStream can only be iterated once")
        self._started = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        async with aclosing(self._chunks):
            async for text in self._chunks:
                yield text
        self.finished = True

    async def aclose(self) -> None:
        """Stop the stream early and release the underlying connection."""
        await self._chunks.aclose()

    async def collect(self) -> str:
        """Drain the stream and return the full text."""
        return "".join([text async for text in self])


class LLMProvider(ABC):
    """Provider-agnostic chat interface.

    Adapters implement `_complete` for one-shot calls and `_stream` for
    token streaming; this class handles credential checks, message
    normalisation and mapping vendor exceptions through `_map_error`.
    """

    name: ClassVar[str]
    display_name: ClassVar[str]
    default_model: ClassVar[str]
    # Vendor exception types routed through _map_error.
    vendor_errors: ClassVar[tuple[type[Exception], ...]] = ()

    def __init__(self, config: AssistantConfig) -> None:
        self.config = config
        self._setup()

    def reinitialize(self, config: AssistantConfig) -> None:
        """Rebuild vendor clients after a settings change."""
        self.config = config
        self._setup()

    @property
    @abstractmethod
    def settings(self) -> Any:
        """The vendor-specific settings block of the config."""
        ...

    @property
    def model_id(self) -> str:
        s = self.settings
        return resolve_model_id(s.model_id, s.custom_model_id, self.default_model)

    @abstractmethod
    def _setup(self) -> None:
        """Create (or drop) the vendor client from the current config."""
        ...

    @abstractmethod
    def is_initialized(self) -> bool:
        ...

    @abstractmethod
    async def _complete(
        self,
        messages: list[Message],
        system_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        ...

    @abstractmethod
    def _stream(
        self,
        messages: list[Message],
        system_prompt: str,
        usage: TokenUsage,
        cancel_event: asyncio.Event | None,
    ) -> AsyncIterator[str]:
        """Yield text deltas, updating `usage` in place as the vendor reports it."""
        ...

    @abstractmethod
    def _map_error(self, error: Exception, operation: str) -> LLMError:
        ...

    # -- public API ----------------------------------------------------------

    async def send_message(self, messages: Iterable[Message], system_prompt: str) -> LLMResponse:
        self._require_initialized("send_message")
        try:
            return await self._complete(
                conversation(messages),
                system_prompt,
                self.config.max_tokens,
                self.config.temperature,
            )
        except self.vendor_errors as e:
            raise self._map_error(e, "send_message") from e

    def send_message_stream(
        self,
        messages: Iterable[Message],
        system_prompt: str,
        cancel_event: asyncio.Event | None = None,
    ) -> TokenStream:
        self._require_initialized("send_message_stream")
        usage = TokenUsage()
        chunks = self._stream(conversation(messages), system_prompt, usage, cancel_event)
        return TokenStream(self._relay(chunks), usage, self.model_id)

    async def test_connection(self) -> ConnectionTestResult:
        """Send a minimal request; any non-empty reply counts as success."""
        if not self.is_initialized():
            return ConnectionTestResult(
                success=False,
                message=f"{self.display_name} client not initialized. Please configure credentials.",
            )
        try:
            response = await self._complete(
                [Message(role="user", content="Test")], "Reply with 'OK'", 10, 0.0
            )
        except LLMError as e:
            return ConnectionTestResult(success=False, message=e.message, error=str(e))
        except self.vendor_errors as e:
            mapped = self._map_error(e, "test_connection")
            return ConnectionTestResult(success=False, message=mapped.message, error=str(e))
        if response.content:
            return ConnectionTestResult(success=True, message="Connection successful")
        return ConnectionTestResult(success=False, message="Unexpected response format")

    # -- helpers for adapters ------------------------------------------------

    def _require_initialized(self, operation: str) -> None:
        if not self.is_initialized():
            raise ConfigurationError(
                self.name,
                operation,
                f"{self.display_name} is not configured. Please add your credentials in settings.",
            )

    def _require_client(self, operation: str) -> Any:
        """Return the vendor client, or raise when `_setup` left none behind."""
        client = getattr(self, "_client", None)
        if client is None:
            raise ConfigurationError(
                self.name,
                operation,
                f"{self.display_name} client not initialized. Please configure credentials.",
            )
        return client

    async def _relay(self, chunks: AsyncIterator[str]) -> AsyncIterator[str]:
        async with aclosing(chunks):
            try:
                async for text in chunks:
                    yield text
            except self.vendor_errors as e:
                raise self._map_error(e, "send_message_stream") from e

    async def _pull(
        self,
        source: AsyncIterator[T],
        cancel_event: asyncio.Event | None,
        close: Callable[[], Awaitable[Any]],
    ) -> AsyncIterator[T]:
        """Read vendor events one at a time, honouring `cancel_event`.

        The event is checked before every read. `close` always runs when
        reading stops, so the vendor connection is released on cancel, on
        error and on early close alike.
        """
        it = aiter(source)
        try:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    raise CancellationError(self.name, "send_message_stream")
                try:
                    item = await anext(it)
                except StopAsyncIteration:
                    return
                except Exception as e:
                    if cancel_event is not None and cancel_event.is_set():
                        raise CancellationError(self.name, "send_message_stream", cause=e) from e
                    raise
                yield item
        finally:
            await close()
