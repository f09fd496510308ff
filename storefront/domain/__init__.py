# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .entities import (
    GIFT_TTL,
    MESSAGE_MAX_LENGTH,
    CatalogItem,
    Gift,
    GiftStatus,
    PreOrder,
    PreOrderStatus,
)
from .exceptions import DomainError, InvariantViolation
from .money import Money, normalize_currency
from .transitions import (
    GiftEvent,
    PreOrderEvent,
    Rejection,
    apply_gift_event,
    apply_pre_order_event,
    can_transition,
)

__all__ = [
    "GIFT_TTL",
    "MESSAGE_MAX_LENGTH",
    "CatalogItem",
    "DomainError",
    "Gift",
    "GiftEvent",
    "GiftStatus",
    "InvariantViolation",
    "Money",
    "PreOrder",
    "PreOrderEvent",
    "PreOrderStatus",
    "Rejection",
    "apply_gift_event",
    "apply_pre_order_event",
    "can_transition",
    "normalize_currency",
]
