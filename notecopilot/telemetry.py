"""In-process telemetry for LLM calls."""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class TelemetryEvent(BaseModel):
    name: str
    timestamp: float = Field(default_factory=time.time)
    properties: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class TelemetrySink(Protocol):
    """Anything that can receive LLM call reports."""

    def record_llm_call(
        self,
        provider: str,
        model: str,
        duration_ms: float,
        input_tokens: int | None,
        output_tokens: int | None,
        success: bool,
        error_message: str | None = None,
    ) -> None: ...


class TelemetryManager:
    """Logs events at debug level and keeps the most recent ones in memory."""

    def __init__(self, max_events: int = 500) -> None:
        self._events: deque[TelemetryEvent] = deque(maxlen=max_events)
        self._enabled = False

    def init(self, enabled: bool = True) -> None:
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def events(self) -> list[TelemetryEvent]:
        return list(self._events)

    def record_event(self, name: str, **properties: Any) -> None:
        if not self._enabled:
            return
        event = TelemetryEvent(name=name, properties=properties)
        self._events.append(event)
        logger.debug("telemetry %s %s", name, properties)

    def record_llm_call(
        self,
        provider: str,
        model: str,
        duration_ms: float,
        input_tokens: int | None,
        output_tokens: int | None,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        self.record_event(
            "llm_call",
            provider=provider,
            model=model,
            duration_ms=round(duration_ms, 1),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            success=success,
            error_message=error_message,
        )

    def clear(self) -> None:
        self._events.clear()
