# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Call policies for the external collaborators used by the workflows."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from storefront.domain import CatalogItem
from storefront.infrastructure.observability import record_capture
from storefront.shared.errors import (
    AppError,
    GatewayUnavailableError,
    ItemNotFoundError,
    PaymentCaptureError,
    UserNotFoundError,
)
from storefront.shared.logging import logger

from ..interfaces import (
    CaptureRequest,
    CaptureResult,
    CatalogGateway,
    IdentityGateway,
    PaymentGateway,
)

T = TypeVar("T")


async def call_dependency(gateway: str, operation: str, call: Awaitable[T]) -> T:
    """Await a lookup; anything but an application error becomes a retryable DependencyError."""

    try:
        return await call
    except AppError:
        raise
    except Exception as exc:
        logger.opt(exception=exc).warning(
            f"gateway:{gateway} {operation} failed error={type(exc).__name__}"
        )
        raise GatewayUnavailableError(gateway, operation) from exc


async def require_item(catalog: CatalogGateway, item_id: str) -> CatalogItem:
    item = await call_dependency("catalog", "get_item", catalog.get_item(item_id))
    if item is None:
        raise ItemNotFoundError(item_id)
    return item


async def require_user(identity: IdentityGateway, user_id: str) -> None:
    exists = await call_dependency("identity", "user_exists", identity.user_exists(user_id))
    if not exists:
        raise UserNotFoundError(user_id)


async def capture_payment(
    payments: PaymentGateway, request: CaptureRequest, *, timeout: float
) -> CaptureResult:
    """Capture once, bounded by ``timeout``.

    Only a SUCCESS result counts; a timeout, a FAILED result or a transport
    error all raise :class:`PaymentCaptureError`. No retry happens here.
    """

    try:
        result = await asyncio.wait_for(payments.capture(request), timeout=timeout)
    except TimeoutError as exc:
        record_capture("timeout")
        logger.warning(
            f"payment:capture timeout user_id={request.user_id} item_id={request.item_id} "
            f"after={timeout}s"
        )
        raise PaymentCaptureError("capture timed out", timed_out=True) from exc
    except AppError:
        record_capture("error")
        raise
    except Exception as exc:
        record_capture("error")
        logger.opt(exception=exc).error(
            f"payment:capture error user_id={request.user_id} item_id={request.item_id}"
        )
        raise PaymentCaptureError(type(exc).__name__) from exc

    if not result.succeeded:
        record_capture("failed")
        logger.info(
            f"payment:capture declined user_id={request.user_id} item_id={request.item_id} "
            f"reason={result.error_message}"
        )
        raise PaymentCaptureError(result.error_message)

    record_capture("success")
    logger.info(
        f"payment:capture ok user_id={request.user_id} item_id={request.item_id} "
        f"amount={request.amount} {request.currency} tx={result.transaction_id}"
    )
    return result


async def refund_capture(
    payments: PaymentGateway, transaction_id: str | None, *, reason: str
) -> bool:
    """Refund a capture whose record could not be stored; False when the refund failed."""

    if not transaction_id:
        logger.error(f"payment:refund skipped, capture has no transaction id reason={reason}")
        return False
    try:
        await payments.refund(transaction_id)
    except Exception as exc:
        logger.opt(exception=exc).error(
            f"payment:refund failed tx={transaction_id} reason={reason} needs manual follow-up"
        )
        return False
    logger.warning(f"payment:refund ok tx={transaction_id} reason={reason}")
    return True


__all__ = ["call_dependency", "capture_payment", "refund_capture", "require_item", "require_user"]
