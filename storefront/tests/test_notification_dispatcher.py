from __future__ import annotations

import asyncio

from storefront.application.services import NotificationDispatcher


def test_failures_and_timeouts_are_dropped() -> None:
    dispatcher = NotificationDispatcher(timeout=0.05)
    delivered: list[str] = []

    async def ok() -> None:
        delivered.append("ok")

    async def broken() -> None:
        raise RuntimeError("gateway exploded")

    async def slow() -> None:
        await asyncio.sleep(1)
        delivered.append("slow")

    async def scenario() -> int:
        dispatcher.dispatch("ok", ok)
        dispatcher.dispatch("broken", broken)
        dispatcher.dispatch("slow", slow)
        pending = dispatcher.pending
        await dispatcher.drain()
        return pending

    assert asyncio.run(scenario()) == 3
    assert delivered == ["ok"]
    assert dispatcher.pending == 0


def test_dispatch_returns_before_the_notification_runs() -> None:
    dispatcher = NotificationDispatcher(timeout=1)
    order: list[str] = []

    async def notify() -> None:
        order.append("notified")

    async def scenario() -> None:
        dispatcher.dispatch("gift", notify)
        order.append("returned")
        await dispatcher.drain()

    asyncio.run(scenario())

    assert order == ["returned", "notified"]
