# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from storefront.domain import (
    GIFT_TTL,
    MESSAGE_MAX_LENGTH,
    CatalogItem,
    Gift,
    GiftEvent,
    InvariantViolation,
    Rejection,
    apply_gift_event,
)
from storefront.infrastructure.observability import record_grant_failure, record_transition
from storefront.shared.errors import (
    AlreadyOwnedError,
    ConcurrentModificationError,
    GatewayUnavailableError,
    GiftNotFoundError,
    InvalidTransitionError,
    NotOwnerError,
    SelfGiftError,
    ValidationError,
)
from storefront.shared.logging import correlation_scope, logger

from ..interfaces import (
    CaptureRequest,
    CatalogGateway,
    EntitlementGateway,
    GiftNotice,
    GiftRepository,
    IdentityGateway,
    NotificationGateway,
    PaymentGateway,
)
from ..services import (
    NotificationDispatcher,
    call_dependency,
    capture_payment,
    check_message,
    parse_amount,
    refund_capture,
    require_id,
    require_item,
    require_user,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class SendGiftInput:
    item_id: str
    sender_id: str
    recipient_id: str
    amount: Decimal | int | float | str
    currency: str
    message: str = ""


class GiftWorkflow:
    """Send, claim, cancel and expire gifts.

    Every state change is stored with a version check, so of two racing
    transitions on one gift exactly one is persisted; the other fails with a
    conflict. Notifications go out after the change is stored and never
    affect the result.
    """

    def __init__(
        self,
        *,
        gifts: GiftRepository,
        catalog: CatalogGateway,
        identity: IdentityGateway,
        entitlements: EntitlementGateway,
        payments: PaymentGateway,
        notifications: NotificationGateway,
        dispatcher: NotificationDispatcher,
        capture_timeout: float = 10.0,
        ttl: timedelta = GIFT_TTL,
        message_max: int = MESSAGE_MAX_LENGTH,
        clock: Callable[[], datetime] | None = None,
    ):
        self._gifts = gifts
        self._catalog = catalog
        self._identity = identity
        self._entitlements = entitlements
        self._payments = payments
        self._notifications = notifications
        self._dispatcher = dispatcher
        self._capture_timeout = capture_timeout
        self._ttl = ttl
        self._message_max = min(message_max, MESSAGE_MAX_LENGTH)
        self._clock = clock or _utcnow

    async def send(self, data: SendGiftInput) -> Gift:
        with correlation_scope("gift"):
            item_id = require_id(data.item_id, "item_id")
            sender_id = require_id(data.sender_id, "sender_id")
            recipient_id = require_id(data.recipient_id, "recipient_id")
            if sender_id == recipient_id:
                raise SelfGiftError(sender_id)
            amount = parse_amount(data.amount, data.currency)
            message = check_message(data.message, self._message_max)

            item = await require_item(self._catalog, item_id)
            await require_user(self._identity, sender_id)
            await require_user(self._identity, recipient_id)
            owns = await call_dependency(
                "entitlement", "user_owns", self._entitlements.user_owns(recipient_id, item_id)
            )
            if owns:
                raise AlreadyOwnedError(recipient_id, item_id)
            await self._warn_if_not_connected(sender_id, recipient_id)

            try:
                candidate = Gift.issue(
                    item_id=item_id,
                    sender_id=sender_id,
                    recipient_id=recipient_id,
                    amount=amount,
                    message=message,
                    sent_at=self._clock(),
                    transaction_id=None,
                    ttl=self._ttl,
                )
            except InvariantViolation as exc:
                raise ValidationError("invalid_gift", context=exc.to_context()) from exc

            capture = await capture_payment(
                self._payments,
                CaptureRequest(
                    user_id=sender_id,
                    amount=amount.amount,
                    currency=amount.currency,
                    item_id=item_id,
                    description=f"Gift: {item.title or item_id} for {recipient_id}",
                ),
                timeout=self._capture_timeout,
            )

            try:
                gift = self._gifts.add(replace(candidate, transaction_id=capture.transaction_id))
            except Exception:
                await refund_capture(
                    self._payments, capture.transaction_id, reason="gift not stored"
                )
                raise

            record_transition("gift", "send", "ok")
            logger.info(
                f"gift:send ok gift_id={gift.id} item_id={item_id} sender_id={sender_id} "
                f"recipient_id={recipient_id} amount={amount} expires_at={gift.expires_at:%Y-%m-%d}"
            )
            self._dispatcher.dispatch("gift", lambda: self._notify_recipient(gift, item))
            return gift

    async def claim(self, gift_id: str, recipient_id: str) -> Gift:
        with correlation_scope("gift"):
            gift = self._load(require_id(gift_id, "gift_id"))
            recipient_id = require_id(recipient_id, "recipient_id")
            if gift.recipient_id != recipient_id:
                raise NotOwnerError("gift", gift.id, recipient_id)

            claimed = self._transition(gift, GiftEvent.CLAIM)
            owns = await call_dependency(
                "entitlement",
                "user_owns",
                self._entitlements.user_owns(recipient_id, gift.item_id),
            )
            if owns:
                record_transition("gift", GiftEvent.CLAIM.value, "rejected")
                raise AlreadyOwnedError(recipient_id, gift.item_id)

            stored = self._store(claimed, GiftEvent.CLAIM)
            logger.info(f"gift:claim ok gift_id={gift.id} recipient_id={recipient_id}")
            return await self.redrive_grant(stored)

    async def cancel(self, gift_id: str, sender_id: str) -> None:
        with correlation_scope("gift"):
            gift = self._load(require_id(gift_id, "gift_id"))
            sender_id = require_id(sender_id, "sender_id")
            if gift.sender_id != sender_id:
                raise NotOwnerError("gift", gift.id, sender_id)

            self._store(self._transition(gift, GiftEvent.CANCEL), GiftEvent.CANCEL)
            logger.info(f"gift:cancel ok gift_id={gift.id} sender_id={sender_id}")

    def expire(self, gift: Gift) -> Gift:
        """Move an overdue PENDING gift to EXPIRED; any other gift comes back unchanged.

        On a version conflict the gift is reloaded and the check applied once more,
        so a racing claim or cancel wins and the sweep simply moves on.
        """

        with correlation_scope("sweep"):
            now = self._clock()
            expired = apply_gift_event(gift, GiftEvent.EXPIRE, now=now)
            if expired is gift:
                return gift
            try:
                stored = self._gifts.save(expired)
            except ConcurrentModificationError:
                current = self._load(gift.id)
                expired = apply_gift_event(current, GiftEvent.EXPIRE, now=now)
                if expired is current:
                    logger.debug(
                        f"gift:expire skipped gift_id={gift.id} status={current.status.value}"
                    )
                    return current
                stored = self._gifts.save(expired)

            record_transition("gift", GiftEvent.EXPIRE.value, "ok")
            logger.info(f"gift:expire ok gift_id={gift.id} expires_at={gift.expires_at:%Y-%m-%d}")
            return stored

    async def redrive_grant(self, gift: Gift) -> Gift:
        """Grant the item to the recipient of a CLAIMED gift that has no grant recorded yet.

        A failed grant is logged and left for the next sweep; the gift is returned as is.
        """

        if not gift.needs_grant():
            return gift
        try:
            await call_dependency(
                "entitlement",
                "grant",
                self._entitlements.grant(
                    gift.recipient_id, gift.item_id, gift.transaction_id or gift.id
                ),
            )
        except GatewayUnavailableError:
            record_grant_failure("gift")
            logger.warning(
                f"gift:grant deferred gift_id={gift.id} recipient_id={gift.recipient_id}"
            )
            return gift

        try:
            granted = self._gifts.mark_granted(gift.id, self._clock())
        except GatewayUnavailableError:
            logger.warning(f"gift:grant sent but not recorded gift_id={gift.id}")
            return gift
        logger.info(f"gift:grant ok gift_id={gift.id} recipient_id={gift.recipient_id}")
        return granted or gift

    async def pending_for(self, recipient_id: str) -> Sequence[Gift]:
        recipient_id = require_id(recipient_id, "recipient_id")
        await require_user(self._identity, recipient_id)
        return self._gifts.list_pending_for_recipient(recipient_id, self._clock())

    async def sent_by(self, sender_id: str) -> Sequence[Gift]:
        sender_id = require_id(sender_id, "sender_id")
        await require_user(self._identity, sender_id)
        return self._gifts.list_by_sender(sender_id)

    def _load(self, gift_id: str) -> Gift:
        gift = self._gifts.get(gift_id)
        if gift is None:
            raise GiftNotFoundError(gift_id)
        return gift

    def _transition(self, gift: Gift, event: GiftEvent) -> Gift:
        outcome = apply_gift_event(gift, event, now=self._clock())
        if isinstance(outcome, Rejection):
            record_transition("gift", event.value, "rejected")
            logger.warning(
                f"gift:{event.value} refused gift_id={gift.id} code={outcome.code} "
                f"status={outcome.status}"
            )
            raise InvalidTransitionError(
                outcome.code, entity="gift", entity_id=gift.id, status=outcome.status
            )
        return outcome

    def _store(self, gift: Gift, event: GiftEvent) -> Gift:
        try:
            stored = self._gifts.save(gift)
        except ConcurrentModificationError:
            record_transition("gift", event.value, "conflict")
            logger.warning(f"gift:{event.value} lost race gift_id={gift.id}")
            raise
        record_transition("gift", event.value, "ok")
        return stored

    async def _warn_if_not_connected(self, sender_id: str, recipient_id: str) -> None:
        try:
            connected = await call_dependency(
                "identity", "are_connected", self._identity.are_connected(sender_id, recipient_id)
            )
        except GatewayUnavailableError:
            return
        if not connected:
            logger.warning(
                f"gift:send users not connected sender_id={sender_id} recipient_id={recipient_id}"
            )

    async def _notify_recipient(self, gift: Gift, item: CatalogItem) -> None:
        profile = await self._identity.get_profile(gift.sender_id)
        sender_name = profile.shown_name if profile else gift.sender_id
        await self._notifications.send_gift_notice(
            GiftNotice(
                recipient_id=gift.recipient_id,
                sender_name=sender_name,
                item_title=item.title or item.item_id,
                message=gift.message,
                gift_id=gift.id,
            )
        )


__all__ = ["GiftWorkflow", "SendGiftInput"]
