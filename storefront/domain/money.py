# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Money value object."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .exceptions import InvariantViolation

_CENTS = Decimal("0.01")

# Active ISO 4217 alphabetic codes.
ISO_4217_CODES = frozenset(
    """
    AED AFN ALL AMD ANG AOA ARS AUD AWG AZN BAM BBD BDT BGN BHD BIF BMD BND BOB
    BRL BSD BTN BWP BYN BZD CAD CDF CHF CLP CNY COP CRC CUP CVE CZK DJF DKK DOP
    DZD EGP ERN ETB EUR FJD FKP GBP GEL GHS GIP GMD GNF GTQ GYD HKD HNL HTG HUF
    IDR ILS INR IQD IRR ISK JMD JOD JPY KES KGS KHR KMF KPW KRW KWD KYD KZT LAK
    LBP LKR LRD LSL LYD MAD MDL MGA MKD MMK MNT MOP MRU MUR MVR MWK MXN MYR MZN
    NAD NGN NIO NOK NPR NZD OMR PAB PEN PGK PHP PKR PLN PYG QAR RON RSD RUB RWF
    SAR SBD SCR SDG SEK SGD SHP SLE SOS SRD SSP STN SVC SYP SZL THB TJS TMT TND
    TOP TRY TTD TWD TZS UAH UGX USD UYU UZS VES VND VUV WST XAF XCD XOF XPF YER
    ZAR ZMW ZWL
    """.split()
)


def normalize_currency(code: str | None) -> str:
    cleaned = (code or "").strip().upper()
    if not cleaned:
        raise InvariantViolation("currency is required", field="currency")
    if cleaned not in ISO_4217_CODES:
        raise InvariantViolation(f"unknown currency code {cleaned}", field="currency")
    return cleaned


@dataclass(slots=True, frozen=True)
class Money:
    """Non-negative amount in a single ISO 4217 currency, fixed at two decimals."""

    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        try:
            raw = self.amount if isinstance(self.amount, Decimal) else Decimal(str(self.amount))
        except (InvalidOperation, ValueError) as exc:
            raise InvariantViolation("amount is not a number", field="amount") from exc
        if not raw.is_finite():
            raise InvariantViolation("amount must be finite", field="amount")
        if raw < 0:
            raise InvariantViolation("amount cannot be negative", field="amount")
        object.__setattr__(self, "amount", raw.quantize(_CENTS, rounding=ROUND_HALF_UP))
        object.__setattr__(self, "currency", normalize_currency(self.currency))

    @classmethod
    def of(cls, amount: Decimal | int | float | str, currency: str) -> Money:
        return cls(amount=Decimal(str(amount)), currency=currency)

    @classmethod
    def free(cls, currency: str) -> Money:
        return cls(amount=Decimal(0), currency=currency)

    def _same_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise InvariantViolation(
                f"cannot {operation} {self.currency} and {other.currency}", field="currency"
            )

    def __add__(self, other: Money) -> Money:
        self._same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._same_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._same_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._same_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        self._same_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        self._same_currency(other, "compare")
        return self.amount >= other.amount

    def multiply(self, factor: int) -> Money:
        if factor < 0:
            raise InvariantViolation("factor cannot be negative", field="factor")
        return Money(self.amount * factor, self.currency)

    def apply_discount(self, percentage: Decimal | int | float) -> Money:
        pct = Decimal(str(percentage))
        if pct < 0 or pct > 100:
            raise InvariantViolation("discount must be between 0 and 100", field="percentage")
        return Money(self.amount * (1 - pct / 100), self.currency)

    def is_free(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def formatted(self) -> str:
        return f"{self.amount:.2f} {self.currency}"

    def __str__(self) -> str:
        return self.formatted()


__all__ = ["ISO_4217_CODES", "Money", "normalize_currency"]
