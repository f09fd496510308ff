from decimal import Decimal

import pytest

from storefront.domain import InvariantViolation, Money, normalize_currency


def test_money_rounds_half_up_to_cents() -> None:
    assert Money.of("10.005", "USD").amount == Decimal("10.01")
    assert Money.of("10.004", "USD").amount == Decimal("10.00")
    assert Money.of(3, "eur").currency == "EUR"


def test_money_rejects_negative_and_non_numeric_amounts() -> None:
    with pytest.raises(InvariantViolation):
        Money.of("-0.01", "USD")
    with pytest.raises(InvariantViolation):
        Money(amount="abc", currency="USD")  # type: ignore[arg-type]
    with pytest.raises(InvariantViolation):
        Money.of("Infinity", "USD")


def test_currency_must_be_a_known_iso_code() -> None:
    assert normalize_currency(" jpy ") == "JPY"
    with pytest.raises(InvariantViolation) as excinfo:
        Money.of(1, "ABC")
    assert excinfo.value.field == "currency"
    with pytest.raises(InvariantViolation):
        Money.of(1, "")


def test_arithmetic_and_comparison_require_same_currency() -> None:
    usd = Money.of("19.99", "USD")
    total = usd + Money.of("0.01", "USD")

    assert total == Money.of(20, "USD")
    assert total - usd == Money.of("0.01", "USD")
    assert usd < total
    with pytest.raises(InvariantViolation):
        usd + Money.of(1, "EUR")
    with pytest.raises(InvariantViolation):
        usd < Money.of(1, "EUR")  # noqa: B015


def test_subtracting_below_zero_fails() -> None:
    with pytest.raises(InvariantViolation):
        Money.of(1, "USD") - Money.of(2, "USD")


def test_helpers() -> None:
    price = Money.of("59.99", "USD")

    assert price.multiply(3) == Money.of("179.97", "USD")
    assert price.apply_discount(50) == Money.of("30.00", "USD")
    assert Money.free("USD").is_free()
    assert not price.is_free()
    assert price.formatted() == "59.99 USD"
    assert str(price) == "59.99 USD"
    with pytest.raises(InvariantViolation):
        price.apply_discount(150)
