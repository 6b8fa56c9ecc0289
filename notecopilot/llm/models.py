"""Pydantic models for the LLM subsystem."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class Message(BaseModel):
    """One turn of a provider-neutral conversation."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str


class TokenUsage(BaseModel):
    """Token usage stats from a single LLM call.

    A field left as None means the vendor never reported it; it is not zero.
    `estimated` stays true while `output_tokens` is a word-count approximation.
    """

    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None
    estimated: bool = False

    def update(
        self,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        total_tokens: int | None = None,
        *,
        estimated: bool = False,
    ) -> None:
        """Overwrite the reported fields in place and recompute the total."""
        if input_tokens is not None:
            self.input_tokens = input_tokens
        if output_tokens is not None:
            self.output_tokens = output_tokens
            self.estimated = estimated
        if total_tokens is not None:
            self.total_tokens = total_tokens
        elif self.input_tokens is not None and self.output_tokens is not None:
            self.total_tokens = self.input_tokens + self.output_tokens


class LLMResponse(BaseModel):
    """Structured response from an LLM provider."""

    content: str
    usage: TokenUsage
    model: str


class ConnectionTestResult(BaseModel):
    success: bool
    message: str
    error: str | None = None
