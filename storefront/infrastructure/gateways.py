# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""HTTP adapters for the catalog, identity, library, payment and notification services."""

from __future__ import annotations

from dataclasses import asdict
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from urllib.parse import quote

import httpx

from storefront.application.interfaces import (
    CaptureRequest,
    CaptureResult,
    CaptureStatus,
    CatalogGateway,
    EntitlementGateway,
    GiftNotice,
    IdentityGateway,
    NotificationGateway,
    PaymentGateway,
    PaymentStatus,
    PreOrderNotice,
    ReleaseNotice,
    UserProfile,
)
from storefront.domain import CatalogItem, Money
from storefront.infrastructure.resilience import CircuitBreaker, resilient_call
from storefront.shared.config import ResilienceConfig, load_config
from storefront.shared.logging import get_correlation_id, logger

_RETRYABLE = (httpx.TransportError, TimeoutError)


def _seg(value: str) -> str:
    """Quote one URL path segment so an id can never address another resource."""

    return quote(str(value), safe="")


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class _HttpGateway:
    name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        resilience: ResilienceConfig | None = None,
    ) -> None:
        self._resilience = resilience or load_config().resilience
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=self._resilience.default_timeout
        )
        self._breaker = CircuitBreaker.from_config(self.name, self._resilience)

    def _headers(self) -> dict[str, str]:
        correlation_id = get_correlation_id()
        if not correlation_id or correlation_id == "-":
            return {}
        return {"X-Correlation-ID": correlation_id}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send with retries on transport errors; 404 is returned to the caller."""

        response = await resilient_call(
            self._client.request,
            method,
            path,
            headers=self._headers(),
            breaker=self._breaker,
            retry_on=_RETRYABLE,
            config=self._resilience,
            **kwargs,
        )
        if response.status_code != httpx.codes.NOT_FOUND:
            response.raise_for_status()
        return response

    async def aclose(self) -> None:
        await self._client.aclose()


class HttpCatalogGateway(_HttpGateway, CatalogGateway):
    name = "catalog"

    async def get_item(self, item_id: str) -> CatalogItem | None:
        response = await self._request("GET", f"/items/{_seg(item_id)}")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        data = response.json()
        return CatalogItem(
            item_id=str(data["item_id"]),
            title=data.get("title") or "",
            price=Money.of(data["price"], data["currency"]),
            release_at=_parse_datetime(data["release_at"]),
            pre_order_eligible=bool(data.get("pre_order_eligible", False)),
        )


class HttpIdentityGateway(_HttpGateway, IdentityGateway):
    name = "identity"

    async def user_exists(self, user_id: str) -> bool:
        response = await self._request("GET", f"/users/{_seg(user_id)}")
        return response.status_code != httpx.codes.NOT_FOUND

    async def are_connected(self, user_id: str, other_id: str) -> bool:
        path = f"/users/{_seg(user_id)}/connections/{_seg(other_id)}"
        response = await self._request("GET", path)
        if response.status_code == httpx.codes.NOT_FOUND:
            return False
        return bool(response.json().get("connected", False))

    async def get_profile(self, user_id: str) -> UserProfile | None:
        response = await self._request("GET", f"/users/{_seg(user_id)}")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        data = response.json()
        return UserProfile(
            user_id=str(data.get("user_id", user_id)),
            username=data.get("username") or str(user_id),
            display_name=data.get("display_name"),
        )


class HttpEntitlementGateway(_HttpGateway, EntitlementGateway):
    name = "entitlement"

    async def user_owns(self, user_id: str, item_id: str) -> bool:
        response = await self._request("GET", f"/users/{_seg(user_id)}/items/{_seg(item_id)}")
        if response.status_code == httpx.codes.NOT_FOUND:
            return False
        return bool(response.json().get("owned", True))

    async def grant(self, user_id: str, item_id: str, source_transaction_id: str) -> None:
        # The library service deduplicates on source_transaction_id, so retries are safe.
        await self._request(
            "POST",
            "/grants",
            json={
                "user_id": user_id,
                "item_id": item_id,
                "source_transaction_id": source_transaction_id,
            },
        )


class HttpPaymentGateway(_HttpGateway, PaymentGateway):
    name = "payment"

    async def capture(self, request: CaptureRequest) -> CaptureResult:
        """Single attempt; a transport error is reported as a FAILED capture."""

        try:
            response = await self._client.post(
                "/captures",
                json={k: _json_default(v) for k, v in asdict(request).items()},
                headers=self._headers(),
            )
        except httpx.TransportError as exc:
            logger.warning(f"payment:capture transport error={type(exc).__name__}")
            return CaptureResult(status=CaptureStatus.FAILED, error_message="payment unreachable")

        if response.status_code >= 500:
            return CaptureResult(
                status=CaptureStatus.FAILED,
                error_message=f"payment service error {response.status_code}",
            )
        data = response.json()
        status = CaptureStatus(str(data.get("status", "FAILED")).upper())
        return CaptureResult(
            status=status,
            transaction_id=data.get("transaction_id"),
            error_message=data.get("error_message"),
        )

    async def refund(self, transaction_id: str) -> None:
        await self._request("POST", f"/refunds/{_seg(transaction_id)}")

    async def status(self, transaction_id: str) -> PaymentStatus:
        response = await self._request("GET", f"/transactions/{_seg(transaction_id)}")
        if response.status_code == httpx.codes.NOT_FOUND:
            return PaymentStatus(
                transaction_id=transaction_id, status="NOT_FOUND", amount=Decimal("0"), currency=""
            )
        data = response.json()
        return PaymentStatus(
            transaction_id=transaction_id,
            status=str(data.get("status", "UNKNOWN")),
            amount=Decimal(str(data.get("amount", "0"))),
            currency=str(data.get("currency", "")),
        )


class HttpNotificationGateway(_HttpGateway, NotificationGateway):
    name = "notification"

    async def _post(self, kind: str, notice: Any) -> None:
        payload = {k: _json_default(v) for k, v in asdict(notice).items()}
        await self._request("POST", f"/notifications/{kind}", json=payload)

    async def send_gift_notice(self, notice: GiftNotice) -> None:
        await self._post("gift", notice)

    async def send_pre_order_confirmation(self, notice: PreOrderNotice) -> None:
        await self._post("pre-order", notice)

    async def send_release_notice(self, notice: ReleaseNotice) -> None:
        await self._post("release", notice)


__all__ = [
    "HttpCatalogGateway",
    "HttpEntitlementGateway",
    "HttpIdentityGateway",
    "HttpNotificationGateway",
    "HttpPaymentGateway",
]
