# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Input checks that run before any external call is made."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from storefront.domain import InvariantViolation, Money
from storefront.shared.errors import ValidationError

# Ids travel as URL path segments to the catalog, identity and library services.
_RESERVED = re.compile(r"[/?#%\\\s]")

# Largest value the Numeric(12, 2) amount columns hold.
MAX_AMOUNT = Decimal("9999999999.99")


def require_id(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("missing_id", context={"field": field})
    cleaned = str(value).strip()
    if _RESERVED.search(cleaned):
        raise ValidationError("invalid_id", context={"field": field})
    return cleaned


def parse_amount(amount: Decimal | int | float | str | None, currency: str | None) -> Money:
    """Build the captured amount; it must be a positive value in a known currency."""

    if not currency or not str(currency).strip():
        raise ValidationError("missing_currency", context={"field": "currency"})
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("invalid_amount", context={"amount": str(amount)}) from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError("non_positive_amount", context={"amount": str(amount)})
    if value > MAX_AMOUNT:
        raise ValidationError(
            "amount_too_large", context={"amount": str(amount), "max": str(MAX_AMOUNT)}
        )

    try:
        money = Money.of(value, currency)
    except InvariantViolation as exc:
        code = "invalid_currency" if exc.field == "currency" else "invalid_amount"
        raise ValidationError(code, context=exc.to_context()) from exc
    # 0.004 rounds down to zero.
    if not money.is_positive():
        raise ValidationError("non_positive_amount", context={"amount": str(amount)})
    if money.amount > MAX_AMOUNT:
        raise ValidationError(
            "amount_too_large", context={"amount": str(amount), "max": str(MAX_AMOUNT)}
        )
    return money


def check_message(message: str | None, limit: int) -> str:
    text = message or ""
    if len(text) > limit:
        raise ValidationError(
            "message_too_long", context={"length": len(text), "limit": limit}
        )
    return text


__all__ = ["MAX_AMOUNT", "check_message", "parse_amount", "require_id"]
