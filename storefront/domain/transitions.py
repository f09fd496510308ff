# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Pure state transitions for gifts and pre-orders.

Each function takes the current entity, an event and the clock reading and
returns either the next entity (a new instance) or a :class:`Rejection`
describing why the event does not apply. Nothing here touches storage or
raises for a refused transition.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from .entities import Gift, GiftStatus, PreOrder, PreOrderStatus

GIFT_TRANSITIONS: dict[GiftStatus, frozenset[GiftStatus]] = {
    GiftStatus.PENDING: frozenset(
        {GiftStatus.CLAIMED, GiftStatus.EXPIRED, GiftStatus.CANCELLED}
    ),
    GiftStatus.CLAIMED: frozenset(),
    GiftStatus.EXPIRED: frozenset(),
    GiftStatus.CANCELLED: frozenset(),
}

PRE_ORDER_TRANSITIONS: dict[PreOrderStatus, frozenset[PreOrderStatus]] = {
    PreOrderStatus.CONFIRMED: frozenset({PreOrderStatus.CANCELLED, PreOrderStatus.COMPLETED}),
    PreOrderStatus.CANCELLED: frozenset(),
    PreOrderStatus.COMPLETED: frozenset(),
}


class GiftEvent(str, Enum):
    CLAIM = "claim"
    CANCEL = "cancel"
    EXPIRE = "expire"


class PreOrderEvent(str, Enum):
    CANCEL = "cancel"
    COMPLETE = "complete"


@dataclass(slots=True, frozen=True)
class Rejection:
    code: str
    status: str
    reason: str


def can_transition(
    current: GiftStatus | PreOrderStatus, target: GiftStatus | PreOrderStatus
) -> bool:
    if isinstance(current, GiftStatus):
        return target in GIFT_TRANSITIONS[current]
    return target in PRE_ORDER_TRANSITIONS[current]


def apply_gift_event(gift: Gift, event: GiftEvent, *, now: datetime) -> Gift | Rejection:
    if event is GiftEvent.EXPIRE:
        # Idempotent: anything but an overdue PENDING gift is returned as is.
        if gift.status is GiftStatus.PENDING and gift.is_time_expired(now):
            return replace(gift, status=GiftStatus.EXPIRED)
        return gift

    if gift.status is not GiftStatus.PENDING:
        return Rejection(
            code="gift_not_pending",
            status=gift.status.value,
            reason=f"gift is {gift.status.value.lower()}",
        )
    if gift.is_time_expired(now):
        return Rejection(code="gift_expired", status=gift.status.value, reason="gift has expired")

    if event is GiftEvent.CLAIM:
        return replace(gift, status=GiftStatus.CLAIMED, claimed_at=now)
    if event is GiftEvent.CANCEL:
        return replace(gift, status=GiftStatus.CANCELLED)
    raise ValueError(f"unsupported gift event {event!r}")


def apply_pre_order_event(
    pre_order: PreOrder,
    event: PreOrderEvent,
    *,
    now: datetime,
    release_at: datetime | None = None,
) -> PreOrder | Rejection:
    """Apply ``event``; completion needs the item's current ``release_at`` from the catalog."""

    if pre_order.status is not PreOrderStatus.CONFIRMED:
        return Rejection(
            code="pre_order_not_confirmed",
            status=pre_order.status.value,
            reason=f"pre-order is {pre_order.status.value.lower()}",
        )

    if event is PreOrderEvent.CANCEL:
        if pre_order.estimated_delivery_at <= now:
            return Rejection(
                code="cancellation_window_closed",
                status=pre_order.status.value,
                reason="delivery date reached",
            )
        return replace(pre_order, status=PreOrderStatus.CANCELLED)

    if event is PreOrderEvent.COMPLETE:
        if release_at is None or release_at > now:
            return Rejection(
                code="item_not_released",
                status=pre_order.status.value,
                reason="item has not been released yet",
            )
        return replace(pre_order, status=PreOrderStatus.COMPLETED)

    raise ValueError(f"unsupported pre-order event {event!r}")


__all__ = [
    "GIFT_TRANSITIONS",
    "PRE_ORDER_TRANSITIONS",
    "GiftEvent",
    "PreOrderEvent",
    "Rejection",
    "apply_gift_event",
    "apply_pre_order_event",
    "can_transition",
]
