# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Best-effort notification dispatch."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from storefront.infrastructure.observability import record_notification_failure
from storefront.shared.logging import logger


class NotificationDispatcher:
    """Runs notification calls as background tasks after the state change is stored.

    A call that fails or outlives ``timeout`` is logged and dropped; it never
    reaches the caller of the workflow operation.
    """

    def __init__(self, *, timeout: float) -> None:
        self._timeout = timeout
        self._tasks: set[asyncio.Task[None]] = set()

    def dispatch(self, label: str, send: Callable[[], Awaitable[None]]) -> None:
        task = asyncio.get_running_loop().create_task(self._guarded(label, send))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _guarded(self, label: str, send: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.wait_for(send(), timeout=self._timeout)
            logger.debug(f"notify:{label} delivered")
        except TimeoutError:
            record_notification_failure(label, "timeout")
            logger.warning(f"notify:{label} timed out after {self._timeout}s")
        except Exception as exc:
            record_notification_failure(label, "error")
            logger.opt(exception=exc).warning(f"notify:{label} failed error={type(exc).__name__}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown and tests)."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = ["NotificationDispatcher"]
