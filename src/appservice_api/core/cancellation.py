"""
Per-request cancellation signal.

Every generated handler creates one CancellationToken and passes it as the
last argument of the service method. Services observe it with
``await ct.raise_if_cancelled()`` between suspension points.
"""

from __future__ import annotations

import asyncio
from typing import Any

from appservice_api.core.errors import OperationCancelledError


class CancellationToken:
    """Cancellation signal threaded from the HTTP request to the service call."""

    def __init__(self, request: Any | None = None):
        self._request = request
        self._event = asyncio.Event()
        self.reason: str | None = None

    @classmethod
    def none(cls) -> CancellationToken:
        """A token that is never cancelled by a client disconnect."""
        return cls()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def is_cancelled(self) -> bool:
        """Check the flag, then the client connection of the bound request."""
        if self._event.is_set():
            return True
        if self._request is not None and await self._request.is_disconnected():
            self.cancel("client disconnected")
            return True
        return False

    async def raise_if_cancelled(self) -> None:
        if await self.is_cancelled():
            raise OperationCancelledError(self.reason or "cancelled")

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    def __repr__(self) -> str:
        state = f"cancelled: {self.reason}" if self.cancelled else "active"
        return f"<CancellationToken {state}>"
