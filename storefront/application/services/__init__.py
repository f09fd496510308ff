# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .gateway_calls import (
    call_dependency,
    capture_payment,
    refund_capture,
    require_item,
    require_user,
)
from .notifications import NotificationDispatcher
from .validation import MAX_AMOUNT, check_message, parse_amount, require_id

__all__ = [
    "MAX_AMOUNT",
    "NotificationDispatcher",
    "call_dependency",
    "capture_payment",
    "check_message",
    "parse_amount",
    "refund_capture",
    "require_id",
    "require_item",
    "require_user",
]
