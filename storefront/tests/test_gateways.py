from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from decimal import Decimal

import httpx
import pytest

from storefront.application.interfaces import CaptureRequest, CaptureStatus, ReleaseNotice
from storefront.domain import Money
from storefront.infrastructure.gateways import (
    HttpCatalogGateway,
    HttpEntitlementGateway,
    HttpIdentityGateway,
    HttpNotificationGateway,
    HttpPaymentGateway,
)
from storefront.infrastructure.resilience import CircuitOpenError
from storefront.shared.config import ResilienceConfig
from storefront.shared.logging import correlation_scope

FAST = ResilienceConfig(
    default_timeout=1.0,
    max_retries=2,
    backoff_base=0.01,
    backoff_cap=0.02,
    circuit_fail_threshold=2,
    circuit_reset_timeout=60.0,
)


def _client(handler, base_url: str = "http://svc.test") -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)


def test_catalog_parses_items_and_maps_404() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/items/item-x":
            return httpx.Response(
                200,
                json={
                    "item_id": "item-x",
                    "title": "Castle Run",
                    "price": "29.99",
                    "currency": "usd",
                    "release_at": "2025-03-01T00:00:00",
                    "pre_order_eligible": False,
                },
            )
        return httpx.Response(404)

    gateway = HttpCatalogGateway("http://svc.test", client=_client(handler), resilience=FAST)

    async def scenario():
        with correlation_scope("test") as correlation_id:
            item = await gateway.get_item("item-x")
        missing = await gateway.get_item("nope")
        await gateway.aclose()
        return correlation_id, item, missing

    correlation_id, item, missing = asyncio.run(scenario())

    assert item.price == Money.of("29.99", "USD")
    assert item.release_at == datetime(2025, 3, 1, tzinfo=UTC)
    assert not item.pre_order_eligible
    assert missing is None
    assert seen[0].headers["X-Correlation-ID"] == correlation_id
    assert "X-Correlation-ID" not in seen[1].headers


def test_identity_lookups() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/users/alice":
            return httpx.Response(200, json={"user_id": "alice", "username": "alice_w"})
        if path == "/users/alice/connections/bob":
            return httpx.Response(200, json={"connected": True})
        return httpx.Response(404)

    gateway = HttpIdentityGateway("http://svc.test", client=_client(handler), resilience=FAST)

    async def scenario():
        return (
            await gateway.user_exists("alice"),
            await gateway.user_exists("ghost"),
            await gateway.are_connected("alice", "bob"),
            await gateway.are_connected("alice", "carol"),
            await gateway.get_profile("alice"),
        )

    exists, ghost, connected, stranger, profile = asyncio.run(scenario())

    assert exists and not ghost
    assert connected and not stranger
    assert profile.shown_name == "alice_w"


def test_grant_is_retried_on_transport_errors() -> None:
    calls: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(json.loads(request.content))
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(204)

    gateway = HttpEntitlementGateway("http://svc.test", client=_client(handler), resilience=FAST)

    asyncio.run(gateway.grant("bob", "item-x", "tx-1"))

    assert len(calls) == 2
    assert calls[1] == {"user_id": "bob", "item_id": "item-x", "source_transaction_id": "tx-1"}


def test_breaker_opens_after_repeated_outages() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gateway = HttpEntitlementGateway("http://svc.test", client=_client(handler), resilience=FAST)

    async def scenario() -> None:
        for _ in range(2):
            with pytest.raises(httpx.ConnectError):
                await gateway.user_owns("bob", "item-x")
        with pytest.raises(CircuitOpenError):
            await gateway.user_owns("bob", "item-x")

    asyncio.run(scenario())


def test_capture_is_single_attempt_and_never_raises() -> None:
    attempts: list[dict] = []
    replies = iter(
        [
            httpx.Response(200, json={"status": "success", "transaction_id": "tx-7"}),
            httpx.Response(503),
            httpx.Response(200, json={"status": "FAILED", "error_message": "card declined"}),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(json.loads(request.content))
        try:
            return next(replies)
        except StopIteration:
            raise httpx.ReadTimeout("slow", request=request) from None

    gateway = HttpPaymentGateway("http://svc.test", client=_client(handler), resilience=FAST)
    request = CaptureRequest(
        user_id="alice",
        amount=Decimal("29.99"),
        currency="USD",
        item_id="item-x",
        description="Gift",
    )

    async def scenario():
        return [await gateway.capture(request) for _ in range(4)]

    ok, unavailable, declined, unreachable = asyncio.run(scenario())

    assert ok.status is CaptureStatus.SUCCESS and ok.transaction_id == "tx-7"
    assert unavailable.status is CaptureStatus.FAILED
    assert declined.error_message == "card declined"
    assert unreachable.status is CaptureStatus.FAILED
    assert len(attempts) == 4
    assert attempts[0]["amount"] == "29.99"


def test_notification_payload_is_json() -> None:
    bodies: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append((request.url.path, json.loads(request.content)))
        return httpx.Response(202)

    gateway = HttpNotificationGateway("http://svc.test", client=_client(handler), resilience=FAST)
    notice = ReleaseNotice(
        user_id="carol",
        item_title="Sequel",
        download_link="https://store.test/download/item-y",
        release_notes="Day one patch included",
    )

    asyncio.run(gateway.send_release_notice(notice))

    assert bodies == [
        (
            "/notifications/release",
            {
                "user_id": "carol",
                "item_title": "Sequel",
                "download_link": "https://store.test/download/item-y",
                "release_notes": "Day one patch included",
            },
        )
    ]


def test_ids_are_quoted_as_single_path_segments() -> None:
    raw_paths: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        raw_paths.append(request.url.raw_path)
        if request.url.raw_path == b"/users/bob/connections/alice":
            return httpx.Response(200, json={"connected": True})
        return httpx.Response(404)

    identity = HttpIdentityGateway("http://svc.test", client=_client(handler), resilience=FAST)
    library = HttpEntitlementGateway("http://svc.test", client=_client(handler), resilience=FAST)
    catalog = HttpCatalogGateway("http://svc.test", client=_client(handler), resilience=FAST)

    async def scenario():
        return (
            await identity.user_exists("bob/connections/alice"),
            await library.user_owns("bob", "../x"),
            await catalog.get_item("item-x?debug=1"),
        )

    exists, owns, item = asyncio.run(scenario())

    assert exists is False
    assert owns is False
    assert item is None
    assert raw_paths == [
        b"/users/bob%2Fconnections%2Falice",
        b"/users/bob/items/..%2Fx",
        b"/items/item-x%3Fdebug%3D1",
    ]


def test_payment_status_maps_known_and_unknown_transactions() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/transactions/tx-7":
            return httpx.Response(
                200, json={"status": "SETTLED", "amount": "29.99", "currency": "USD"}
            )
        return httpx.Response(404)

    gateway = HttpPaymentGateway("http://svc.test", client=_client(handler), resilience=FAST)

    async def scenario():
        return await gateway.status("tx-7"), await gateway.status("tx-404")

    settled, unknown = asyncio.run(scenario())

    assert settled.status == "SETTLED"
    assert settled.amount == Decimal("29.99")
    assert settled.currency == "USD"
    assert unknown.transaction_id == "tx-404"
    assert unknown.status == "NOT_FOUND"
    assert unknown.amount == Decimal("0")
