# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from decimal import Decimal

from storefront.domain import (
    CatalogItem,
    InvariantViolation,
    PreOrder,
    PreOrderEvent,
    Rejection,
    apply_pre_order_event,
)
from storefront.infrastructure.observability import record_grant_failure, record_transition
from storefront.shared.errors import (
    ConcurrentModificationError,
    DuplicatePreOrderError,
    GatewayUnavailableError,
    InvalidTransitionError,
    NotOwnerError,
    NotPreOrderableError,
    PreOrderNotFoundError,
    ValidationError,
)
from storefront.shared.logging import correlation_scope, logger

from ..interfaces import (
    CaptureRequest,
    CatalogGateway,
    EntitlementGateway,
    IdentityGateway,
    NotificationGateway,
    PaymentGateway,
    PreOrderNotice,
    PreOrderRepository,
    ReleaseNotice,
)
from ..services import (
    NotificationDispatcher,
    call_dependency,
    capture_payment,
    parse_amount,
    refund_capture,
    require_id,
    require_item,
    require_user,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class CreatePreOrderInput:
    item_id: str
    user_id: str
    amount: Decimal | int | float | str
    currency: str
    bonus_content: str | None = None


class PreOrderWorkflow:
    def __init__(
        self,
        *,
        pre_orders: PreOrderRepository,
        catalog: CatalogGateway,
        identity: IdentityGateway,
        entitlements: EntitlementGateway,
        payments: PaymentGateway,
        notifications: NotificationGateway,
        dispatcher: NotificationDispatcher,
        download_base_url: str,
        capture_timeout: float = 10.0,
        clock: Callable[[], datetime] | None = None,
    ):
        self._pre_orders = pre_orders
        self._catalog = catalog
        self._identity = identity
        self._entitlements = entitlements
        self._payments = payments
        self._notifications = notifications
        self._dispatcher = dispatcher
        self._download_base_url = download_base_url.rstrip("/")
        self._capture_timeout = capture_timeout
        self._clock = clock or _utcnow

    async def create(self, data: CreatePreOrderInput) -> PreOrder:
        """Reserve an unreleased item for a user and capture the payment.

        The active pre-order check runs before the capture so a repeated request
        is refused without charging twice. A concurrent create that slips past it
        is stopped by the store; its capture is then refunded.
        """

        with correlation_scope("preorder"):
            item_id = require_id(data.item_id, "item_id")
            user_id = require_id(data.user_id, "user_id")
            amount = parse_amount(data.amount, data.currency)

            item = await require_item(self._catalog, item_id)
            now = self._clock()
            if not item.is_pre_orderable(now):
                raise NotPreOrderableError(item_id)
            await require_user(self._identity, user_id)
            if self._pre_orders.has_active(user_id, item_id):
                raise DuplicatePreOrderError(user_id, item_id)

            try:
                candidate = PreOrder.place(
                    item=item,
                    user_id=user_id,
                    paid_amount=amount,
                    pre_ordered_at=now,
                    bonus_content=data.bonus_content,
                    transaction_id=None,
                )
            except InvariantViolation as exc:
                raise ValidationError("invalid_pre_order", context=exc.to_context()) from exc

            capture = await capture_payment(
                self._payments,
                CaptureRequest(
                    user_id=user_id,
                    amount=amount.amount,
                    currency=amount.currency,
                    item_id=item_id,
                    description=f"Pre-order: {item.title or item_id}",
                ),
                timeout=self._capture_timeout,
            )

            try:
                pre_order = self._pre_orders.add(
                    replace(candidate, transaction_id=capture.transaction_id)
                )
            except DuplicatePreOrderError:
                record_transition("pre_order", "create", "conflict")
                await refund_capture(
                    self._payments, capture.transaction_id, reason="duplicate pre-order"
                )
                raise
            except Exception:
                await refund_capture(
                    self._payments, capture.transaction_id, reason="pre-order not stored"
                )
                raise

            record_transition("pre_order", "create", "ok")
            logger.info(
                f"preorder:create ok pre_order_id={pre_order.id} item_id={item_id} "
                f"user_id={user_id} amount={amount} delivery={item.release_at:%Y-%m-%d}"
            )
            self._dispatcher.dispatch("pre_order", lambda: self._notify_confirmed(pre_order, item))
            return pre_order

    async def cancel(self, pre_order_id: str, user_id: str) -> None:
        with correlation_scope("preorder"):
            pre_order = self._load(require_id(pre_order_id, "pre_order_id"))
            user_id = require_id(user_id, "user_id")
            if pre_order.user_id != user_id:
                raise NotOwnerError("pre_order", pre_order.id, user_id)

            outcome = apply_pre_order_event(pre_order, PreOrderEvent.CANCEL, now=self._clock())
            cancelled = self._accept(pre_order, PreOrderEvent.CANCEL, outcome)
            self._store(cancelled, PreOrderEvent.CANCEL)
            logger.info(f"preorder:cancel ok pre_order_id={pre_order.id} user_id={user_id}")

    async def complete(self, pre_order_id: str) -> None:
        """Complete a pre-order once the catalog reports its item as released."""

        with correlation_scope("preorder"):
            pre_order = self._load(require_id(pre_order_id, "pre_order_id"))
            item = None
            if pre_order.is_active():
                item = await require_item(self._catalog, pre_order.item_id)
            await self.complete_released(pre_order, item)

    async def complete_released(self, pre_order: PreOrder, item: CatalogItem | None) -> PreOrder:
        """Complete ``pre_order`` against a catalog reading taken by the caller.

        The release date comes from ``item``, never from the stored delivery estimate.
        """

        release_at = item.release_at if item is not None else None
        outcome = apply_pre_order_event(
            pre_order, PreOrderEvent.COMPLETE, now=self._clock(), release_at=release_at
        )
        completed = self._store(
            self._accept(pre_order, PreOrderEvent.COMPLETE, outcome), PreOrderEvent.COMPLETE
        )
        logger.info(
            f"preorder:complete ok pre_order_id={pre_order.id} item_id={pre_order.item_id} "
            f"user_id={pre_order.user_id}"
        )
        completed = await self.redrive_grant(completed)
        if item is not None:
            self._dispatcher.dispatch("release", lambda: self._notify_released(completed, item))
        return completed

    async def redrive_grant(self, pre_order: PreOrder) -> PreOrder:
        if not pre_order.needs_grant():
            return pre_order
        try:
            await call_dependency(
                "entitlement",
                "grant",
                self._entitlements.grant(
                    pre_order.user_id, pre_order.item_id, pre_order.transaction_id or pre_order.id
                ),
            )
        except GatewayUnavailableError:
            record_grant_failure("pre_order")
            logger.warning(
                f"preorder:grant deferred pre_order_id={pre_order.id} user_id={pre_order.user_id}"
            )
            return pre_order

        try:
            granted = self._pre_orders.mark_granted(pre_order.id, self._clock())
        except GatewayUnavailableError:
            logger.warning(f"preorder:grant sent but not recorded pre_order_id={pre_order.id}")
            return pre_order
        logger.info(f"preorder:grant ok pre_order_id={pre_order.id} user_id={pre_order.user_id}")
        return granted or pre_order

    async def get(self, pre_order_id: str) -> PreOrder:
        return self._load(require_id(pre_order_id, "pre_order_id"))

    async def list_for_user(self, user_id: str) -> Sequence[PreOrder]:
        user_id = require_id(user_id, "user_id")
        await require_user(self._identity, user_id)
        return self._pre_orders.list_for_user(user_id)

    def download_link(self, item_id: str) -> str:
        return f"{self._download_base_url}/{item_id}"

    def _load(self, pre_order_id: str) -> PreOrder:
        pre_order = self._pre_orders.get(pre_order_id)
        if pre_order is None:
            raise PreOrderNotFoundError(pre_order_id)
        return pre_order

    def _accept(
        self, pre_order: PreOrder, event: PreOrderEvent, outcome: PreOrder | Rejection
    ) -> PreOrder:
        if isinstance(outcome, Rejection):
            record_transition("pre_order", event.value, "rejected")
            logger.warning(
                f"preorder:{event.value} refused pre_order_id={pre_order.id} "
                f"code={outcome.code} status={outcome.status}"
            )
            raise InvalidTransitionError(
                outcome.code, entity="pre_order", entity_id=pre_order.id, status=outcome.status
            )
        return outcome

    def _store(self, pre_order: PreOrder, event: PreOrderEvent) -> PreOrder:
        try:
            stored = self._pre_orders.save(pre_order)
        except ConcurrentModificationError:
            record_transition("pre_order", event.value, "conflict")
            logger.warning(f"preorder:{event.value} lost race pre_order_id={pre_order.id}")
            raise
        record_transition("pre_order", event.value, "ok")
        return stored

    async def _notify_confirmed(self, pre_order: PreOrder, item: CatalogItem) -> None:
        await self._notifications.send_pre_order_confirmation(
            PreOrderNotice(
                user_id=pre_order.user_id,
                item_title=item.title or item.item_id,
                release_at=pre_order.estimated_delivery_at,
                bonus_content=pre_order.bonus_content,
                pre_order_id=pre_order.id,
            )
        )

    async def _notify_released(self, pre_order: PreOrder, item: CatalogItem) -> None:
        notes = f"{item.title or item.item_id} is now available."
        if pre_order.bonus_content:
            notes = f"{notes} Bonus content: {pre_order.bonus_content}"
        await self._notifications.send_release_notice(
            ReleaseNotice(
                user_id=pre_order.user_id,
                item_title=item.title or item.item_id,
                download_link=self.download_link(pre_order.item_id),
                release_notes=notes,
            )
        )


__all__ = ["CreatePreOrderInput", "PreOrderWorkflow"]
