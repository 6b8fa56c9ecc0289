"""Exception hierarchy shared by every provider adapter."""

from __future__ import annotations

from typing import Literal

ErrorCategory = Literal[
    "auth",
    "rate_limit",
    "quota",
    "not_ready",
    "timeout",
    "not_found",
    "validation",
    "service",
    "unknown",
]

RETRYABLE_CATEGORIES: frozenset[str] = frozenset({"rate_limit", "not_ready", "service"})


class LLMError(Exception):
    """Wraps provider-specific exceptions with context."""

    def __init__(
        self,
        provider: str,
        operation: str,
        message: str,
        cause: BaseException | None = None,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        self.operation = operation
        self.message = message
        self.retryable = retryable
        super().__init__(f"{provider} {operation} failed: {message}")
        if cause is not None:
            self.__cause__ = cause


class ConfigurationError(LLMError):
    """Provider credentials are missing; raised before any network call."""

    def __init__(self, provider: str, operation: str, message: str) -> None:
        super().__init__(provider, operation, message)


class TransportError(LLMError):
    """The request never got a vendor answer: connection failure or timeout."""

    def __init__(
        self,
        provider: str,
        operation: str,
        message: str,
        cause: BaseException | None = None,
        category: Literal["network", "timeout"] = "network",
    ) -> None:
        super().__init__(provider, operation, message, cause, retryable=True)
        self.category = category


class VendorError(LLMError):
    """An error reported by the vendor, normalised to a category."""

    def __init__(
        self,
        provider: str,
        operation: str,
        message: str,
        cause: BaseException | None = None,
        category: ErrorCategory = "unknown",
    ) -> None:
        super().__init__(
            provider, operation, message, cause, retryable=category in RETRYABLE_CATEGORIES
        )
        self.category = category


class CancellationError(LLMError):
    """The caller aborted an in-flight stream."""

    def __init__(
        self,
        provider: str,
        operation: str,
        message: str = "Request cancelled",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(provider, operation, message, cause)
