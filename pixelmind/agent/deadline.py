from __future__ import annotations

from typing import Awaitable, Optional, TypeVar
import asyncio
import time

T = TypeVar("T")


class DeadlineExceeded(TimeoutError):
    """The caller-supplied time budget for a tool call ran out."""


class Deadline:
    """
    Absolute, monotonic time budget shared by every await in a tool call.

    `Deadline(None)` never expires, so callers can guard unconditionally.
    """

    def __init__(self, seconds: Optional[float] = None) -> None:
        self._expires_at = None if seconds is None else time.monotonic() + seconds

    @classmethod
    def coerce(cls, value) -> "Deadline":
        if isinstance(value, Deadline):
            return value
        return cls(value)

    @property
    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining
        return remaining is not None and remaining <= 0

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable`, cancelling it when the deadline passes."""
        remaining = self.remaining

        if remaining is None:
            return await awaitable

        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise DeadlineExceeded("Deadline exceeded")

        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError as e:
            raise DeadlineExceeded("Deadline exceeded") from e

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await self.guard(asyncio.sleep(seconds))
