"""Time-bounded cache of the last provider connection check."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DURATION = timedelta(minutes=5)


class ConnectionState(BaseModel):
    is_connected: bool = False
    last_check_time: datetime | None = None
    last_error: str | None = None
    provider: str | None = None


class ConnectionCache:
    """Remembers whether the active provider answered, for `cache_duration`.

    The state is only changed through `update_connection_state` and
    `clear_cache`; readers get copies.
    """

    def __init__(
        self,
        cache_duration: timedelta = DEFAULT_CACHE_DURATION,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if cache_duration < timedelta(0):
            raise ValueError("cache_duration must not be negative")
        self._cache_duration = cache_duration
        self._clock = clock
        self._state = ConnectionState()

    @property
    def cache_duration(self) -> timedelta:
        return self._cache_duration

    def set_cache_duration(self, duration: timedelta) -> None:
        if duration < timedelta(0):
            raise ValueError("cache_duration must not be negative")
        self._cache_duration = duration

    def is_cache_valid(self) -> bool:
        checked = self._state.last_check_time
        return checked is not None and self._clock() - checked < self._cache_duration

    def get_cache_time_remaining(self) -> timedelta:
        """Time left before the cached state expires; zero when invalid."""
        checked = self._state.last_check_time
        if checked is None:
            return timedelta(0)
        remaining = self._cache_duration - (self._clock() - checked)
        return max(remaining, timedelta(0))

    def get_connection_state(self) -> ConnectionState:
        return self._state.model_copy()

    @property
    def is_connected(self) -> bool:
        return self._state.is_connected

    @property
    def last_error(self) -> str | None:
        return self._state.last_error

    @property
    def provider(self) -> str | None:
        return self._state.provider

    def update_connection_state(
        self, is_connected: bool, provider: str | None = None, error: str | None = None
    ) -> None:
        self._state = ConnectionState(
            is_connected=is_connected,
            last_check_time=self._clock(),
            last_error=error,
            provider=provider if provider is not None else self._state.provider,
        )
        logger.debug(
            "connection state: connected=%s provider=%s error=%s",
            is_connected, self._state.provider, error,
        )

    def clear_cache(self) -> None:
        self._state = ConnectionState()

    async def check_connection(
        self,
        check: Callable[[], Awaitable[tuple[bool, str | None]]],
        provider: str | None = None,
        force_refresh: bool = False,
    ) -> ConnectionState:
        """Return the cached state, or run `check` when stale or forced.

        `check` returns `(is_connected, error_message)`. An exception raised
        by it is recorded as a failed check.
        """
        if not force_refresh and self.is_cache_valid() and (
            provider is None or provider == self._state.provider
        ):
            return self.get_connection_state()
        try:
            connected, error = await check()
        except Exception as e:
            logger.warning("connection check failed: %s", e)
            connected, error = False, str(e) or type(e).__name__
        self.update_connection_state(connected, provider, error)
        return self.get_connection_state()

    async def refresh_connection(
        self,
        check: Callable[[], Awaitable[tuple[bool, str | None]]],
        provider: str | None = None,
    ) -> ConnectionState:
        return await self.check_connection(check, provider, force_refresh=True)


_cache: ConnectionCache | None = None


def get_connection_cache(
    cache_duration: timedelta = DEFAULT_CACHE_DURATION,
    clock: Callable[[], datetime] = datetime.now,
) -> ConnectionCache:
    """Process-wide cache; arguments only apply on first construction."""
    global _cache
    if _cache is None:
        _cache = ConnectionCache(cache_duration, clock)
    return _cache


def reset_connection_cache() -> None:
    global _cache
    _cache = None
