# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Domain entities for gifting and pre-ordering catalog items."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum

from .exceptions import InvariantViolation
from .money import Money

GIFT_TTL = timedelta(days=30)
MESSAGE_MAX_LENGTH = 500


class GiftStatus(str, Enum):
    PENDING = "PENDING"
    CLAIMED = "CLAIMED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class PreOrderStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


def _require_id(value: str, name: str) -> None:
    if not value or not str(value).strip():
        raise InvariantViolation(f"{name} is required", field=name)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True, frozen=True)
class CatalogItem:
    """Read-only view of a catalog item as served by the catalog."""

    item_id: str
    title: str
    price: Money
    release_at: datetime
    pre_order_eligible: bool = False

    def is_released(self, now: datetime) -> bool:
        return self.release_at <= now

    def is_pre_orderable(self, now: datetime) -> bool:
        return self.pre_order_eligible and self.release_at > now


@dataclass(slots=True, frozen=True)
class Gift:
    """A paid item waiting for its recipient.

    ``amount`` is what was captured from the sender and never changes
    afterwards, whatever the catalog price does. ``version`` is bumped by the
    store on every persisted transition.
    """

    id: str
    item_id: str
    sender_id: str
    recipient_id: str
    amount: Money
    sent_at: datetime
    expires_at: datetime
    message: str = ""
    status: GiftStatus = GiftStatus.PENDING
    claimed_at: datetime | None = None
    transaction_id: str | None = None
    entitlement_granted_at: datetime | None = None
    version: int = field(default=0, compare=False)

    def __post_init__(self) -> None:
        for name in ("id", "item_id", "sender_id", "recipient_id"):
            _require_id(getattr(self, name), name)
        if self.sender_id == self.recipient_id:
            raise InvariantViolation("sender and recipient must differ", field="recipient_id")
        if self.expires_at < self.sent_at:
            raise InvariantViolation("expiry cannot precede sending", field="expires_at")
        if len(self.message or "") > MESSAGE_MAX_LENGTH:
            raise InvariantViolation(
                f"message exceeds {MESSAGE_MAX_LENGTH} characters", field="message"
            )
        if self.status is GiftStatus.CLAIMED and self.claimed_at is None:
            raise InvariantViolation("claimed gift needs claimed_at", field="claimed_at")

    @classmethod
    def issue(
        cls,
        *,
        item_id: str,
        sender_id: str,
        recipient_id: str,
        amount: Money,
        message: str,
        sent_at: datetime,
        transaction_id: str | None,
        ttl: timedelta = GIFT_TTL,
    ) -> Gift:
        return cls(
            id=new_id(),
            item_id=item_id,
            sender_id=sender_id,
            recipient_id=recipient_id,
            amount=amount,
            message=message or "",
            sent_at=sent_at,
            expires_at=sent_at + ttl,
            transaction_id=transaction_id,
        )

    def is_time_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_pending(self, now: datetime) -> bool:
        return self.status is GiftStatus.PENDING and not self.is_time_expired(now)

    def needs_grant(self) -> bool:
        return self.status is GiftStatus.CLAIMED and self.entitlement_granted_at is None

    def days_until_expiration(self, now: datetime) -> int:
        return (self.expires_at - now).days

    def with_grant(self, granted_at: datetime) -> Gift:
        return replace(self, entitlement_granted_at=granted_at)


@dataclass(slots=True, frozen=True)
class PreOrder:
    """A paid reservation of an unreleased item."""

    id: str
    item_id: str
    user_id: str
    paid_amount: Money
    pre_ordered_at: datetime
    estimated_delivery_at: datetime
    status: PreOrderStatus = PreOrderStatus.CONFIRMED
    bonus_content: str | None = None
    transaction_id: str | None = None
    entitlement_granted_at: datetime | None = None
    version: int = field(default=0, compare=False)

    def __post_init__(self) -> None:
        for name in ("id", "item_id", "user_id"):
            _require_id(getattr(self, name), name)

    @classmethod
    def place(
        cls,
        *,
        item: CatalogItem,
        user_id: str,
        paid_amount: Money,
        pre_ordered_at: datetime,
        bonus_content: str | None,
        transaction_id: str | None,
    ) -> PreOrder:
        return cls(
            id=new_id(),
            item_id=item.item_id,
            user_id=user_id,
            paid_amount=paid_amount,
            pre_ordered_at=pre_ordered_at,
            estimated_delivery_at=item.release_at,
            bonus_content=bonus_content,
            transaction_id=transaction_id,
        )

    def is_active(self) -> bool:
        return self.status is PreOrderStatus.CONFIRMED

    def needs_grant(self) -> bool:
        return self.status is PreOrderStatus.COMPLETED and self.entitlement_granted_at is None

    def days_until_delivery(self, now: datetime) -> int:
        return (self.estimated_delivery_at - now).days

    def with_grant(self, granted_at: datetime) -> PreOrder:
        return replace(self, entitlement_granted_at=granted_at)


__all__ = [
    "GIFT_TTL",
    "MESSAGE_MAX_LENGTH",
    "CatalogItem",
    "Gift",
    "GiftStatus",
    "PreOrder",
    "PreOrderStatus",
    "new_id",
]
