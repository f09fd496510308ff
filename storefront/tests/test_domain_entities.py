from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from storefront.domain import (
    CatalogItem,
    Gift,
    GiftStatus,
    InvariantViolation,
    Money,
    PreOrder,
    PreOrderStatus,
)

NOW = datetime(2025, 1, 10, 9, 30, tzinfo=UTC)


def _gift(**overrides: object) -> Gift:
    gift = Gift.issue(
        item_id="item-1",
        sender_id="alice",
        recipient_id="bob",
        amount=Money.of("5", "USD"),
        message="hi",
        sent_at=NOW,
        transaction_id="tx-9",
    )
    return replace(gift, **overrides) if overrides else gift


def test_issued_gift_is_pending_for_thirty_days() -> None:
    gift = _gift()

    assert gift.status is GiftStatus.PENDING
    assert gift.expires_at == NOW + timedelta(days=30)
    assert gift.days_until_expiration(NOW) == 30
    assert gift.is_pending(NOW + timedelta(days=30))
    assert not gift.is_pending(NOW + timedelta(days=30, microseconds=1))


def test_gift_invariants() -> None:
    with pytest.raises(InvariantViolation):
        _gift(recipient_id="alice")
    with pytest.raises(InvariantViolation):
        _gift(expires_at=NOW - timedelta(seconds=1))
    with pytest.raises(InvariantViolation):
        _gift(message="m" * 501)
    with pytest.raises(InvariantViolation):
        _gift(status=GiftStatus.CLAIMED)
    with pytest.raises(InvariantViolation):
        _gift(sender_id="")


def test_gift_grant_bookkeeping() -> None:
    claimed = _gift(status=GiftStatus.CLAIMED, claimed_at=NOW)

    assert claimed.needs_grant()
    assert not claimed.with_grant(NOW).needs_grant()
    assert not _gift().needs_grant()


def test_version_does_not_take_part_in_equality() -> None:
    gift = _gift()

    assert replace(gift, version=7) == gift


def test_catalog_item_pre_order_window() -> None:
    item = CatalogItem(
        item_id="item-2",
        title="Sequel",
        price=Money.of(40, "USD"),
        release_at=NOW + timedelta(days=3),
        pre_order_eligible=True,
    )

    assert item.is_pre_orderable(NOW)
    assert not item.is_released(NOW)
    assert item.is_released(item.release_at)
    assert not item.is_pre_orderable(item.release_at)
    assert not replace(item, pre_order_eligible=False).is_pre_orderable(NOW)


def test_placed_pre_order_takes_release_date_as_delivery() -> None:
    item = CatalogItem(
        item_id="item-2",
        title="Sequel",
        price=Money.of(40, "USD"),
        release_at=NOW + timedelta(days=3),
        pre_order_eligible=True,
    )

    pre_order = PreOrder.place(
        item=item,
        user_id="carol",
        paid_amount=Money.of(40, "USD"),
        pre_ordered_at=NOW,
        bonus_content=None,
        transaction_id="tx-1",
    )

    assert pre_order.status is PreOrderStatus.CONFIRMED
    assert pre_order.is_active()
    assert pre_order.estimated_delivery_at == item.release_at
    assert pre_order.days_until_delivery(NOW) == 3
    assert not pre_order.needs_grant()
