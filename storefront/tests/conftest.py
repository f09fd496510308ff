from __future__ import annotations

import asyncio
import itertools
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from storefront.application import (
    CaptureRequest,
    CaptureResult,
    CaptureStatus,
    ExpirationSweep,
    GiftNotice,
    GiftWorkflow,
    PaymentStatus,
    PreOrderNotice,
    PreOrderWorkflow,
    ReleaseNotice,
    UserProfile,
)
from storefront.application.services import NotificationDispatcher
from storefront.domain import CatalogItem, Gift, GiftStatus, Money, PreOrder, PreOrderStatus
from storefront.shared.errors import ConcurrentModificationError, DuplicatePreOrderError

START = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


class InMemoryGiftRepository:
    def __init__(self) -> None:
        self.rows: dict[str, Gift] = {}

    def add(self, gift: Gift) -> Gift:
        stored = replace(gift, version=1)
        self.rows[gift.id] = stored
        return stored

    def get(self, gift_id: str) -> Gift | None:
        return self.rows.get(gift_id)

    def save(self, gift: Gift) -> Gift:
        current = self.rows.get(gift.id)
        if current is None or current.version != gift.version:
            raise ConcurrentModificationError("gift", gift.id)
        stored = replace(gift, version=gift.version + 1)
        self.rows[gift.id] = stored
        return stored

    def mark_granted(self, gift_id: str, granted_at: datetime) -> Gift | None:
        current = self.rows.get(gift_id)
        if current is None or current.entitlement_granted_at is not None:
            return current
        stored = replace(current, entitlement_granted_at=granted_at, version=current.version + 1)
        self.rows[gift_id] = stored
        return stored

    def list_overdue_pending(self, now: datetime, limit: int) -> Sequence[Gift]:
        found = [
            g for g in self.rows.values() if g.status is GiftStatus.PENDING and g.expires_at < now
        ]
        return sorted(found, key=lambda g: g.expires_at)[:limit]

    def list_ungranted_claims(self, limit: int) -> Sequence[Gift]:
        return [g for g in self.rows.values() if g.needs_grant()][:limit]

    def list_pending_for_recipient(self, recipient_id: str, now: datetime) -> Sequence[Gift]:
        return [
            g
            for g in self.rows.values()
            if g.recipient_id == recipient_id and g.is_pending(now)
        ]

    def list_by_sender(self, sender_id: str) -> Sequence[Gift]:
        return [g for g in self.rows.values() if g.sender_id == sender_id]


class InMemoryPreOrderRepository:
    def __init__(self) -> None:
        self.rows: dict[str, PreOrder] = {}

    def add(self, pre_order: PreOrder) -> PreOrder:
        if any(
            p.user_id == pre_order.user_id and p.item_id == pre_order.item_id and p.is_active()
            for p in self.rows.values()
        ):
            raise DuplicatePreOrderError(pre_order.user_id, pre_order.item_id)
        stored = replace(pre_order, version=1)
        self.rows[pre_order.id] = stored
        return stored

    def get(self, pre_order_id: str) -> PreOrder | None:
        return self.rows.get(pre_order_id)

    def save(self, pre_order: PreOrder) -> PreOrder:
        current = self.rows.get(pre_order.id)
        if current is None or current.version != pre_order.version:
            raise ConcurrentModificationError("pre_order", pre_order.id)
        stored = replace(pre_order, version=pre_order.version + 1)
        self.rows[pre_order.id] = stored
        return stored

    def mark_granted(self, pre_order_id: str, granted_at: datetime) -> PreOrder | None:
        current = self.rows.get(pre_order_id)
        if current is None or current.entitlement_granted_at is not None:
            return current
        stored = replace(current, entitlement_granted_at=granted_at, version=current.version + 1)
        self.rows[pre_order_id] = stored
        return stored

    def has_active(self, user_id: str, item_id: str) -> bool:
        return any(
            p.user_id == user_id and p.item_id == item_id and p.is_active()
            for p in self.rows.values()
        )

    def list_for_user(self, user_id: str) -> Sequence[PreOrder]:
        return [p for p in self.rows.values() if p.user_id == user_id]

    def active_item_ids(self) -> Sequence[str]:
        return sorted({p.item_id for p in self.rows.values() if p.is_active()})

    def list_active_for_item(self, item_id: str, limit: int) -> Sequence[PreOrder]:
        return [p for p in self.rows.values() if p.item_id == item_id and p.is_active()][:limit]

    def list_ungranted_completions(self, limit: int) -> Sequence[PreOrder]:
        return [
            p
            for p in self.rows.values()
            if p.status is PreOrderStatus.COMPLETED and p.entitlement_granted_at is None
        ][:limit]


class FakeCatalog:
    def __init__(self, items: Sequence[CatalogItem] = ()):
        self.items = {item.item_id: item for item in items}
        self.fail = False
        self.calls = 0

    async def get_item(self, item_id: str) -> CatalogItem | None:
        self.calls += 1
        if self.fail:
            raise RuntimeError("catalog down")
        return self.items.get(item_id)


class FakeIdentity:
    def __init__(self, users: Sequence[str] = ()):
        self.users = set(users)
        self.connections: set[frozenset[str]] = set()
        self.fail = False

    async def user_exists(self, user_id: str) -> bool:
        if self.fail:
            raise RuntimeError("identity down")
        return user_id in self.users

    async def are_connected(self, user_id: str, other_id: str) -> bool:
        return frozenset({user_id, other_id}) in self.connections

    async def get_profile(self, user_id: str) -> UserProfile | None:
        if user_id not in self.users:
            return None
        return UserProfile(user_id=user_id, username=user_id.lower(), display_name=user_id)


class FakeEntitlements:
    def __init__(self) -> None:
        self.owned: set[tuple[str, str]] = set()
        self.grants: list[tuple[str, str, str]] = []
        self.fail_grant = False

    async def user_owns(self, user_id: str, item_id: str) -> bool:
        # Yield so concurrent workflow calls interleave here.
        await asyncio.sleep(0)
        return (user_id, item_id) in self.owned

    async def grant(self, user_id: str, item_id: str, source_transaction_id: str) -> None:
        if self.fail_grant:
            raise RuntimeError("library unavailable")
        self.grants.append((user_id, item_id, source_transaction_id))
        self.owned.add((user_id, item_id))


class FakePayments:
    def __init__(self) -> None:
        self.captures: list[CaptureRequest] = []
        self.refunds: list[str] = []
        self.next_status = CaptureStatus.SUCCESS
        self.delay: float = 0.0
        self._ids = itertools.count(1)

    async def capture(self, request: CaptureRequest) -> CaptureResult:
        self.captures.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.next_status is CaptureStatus.FAILED:
            return CaptureResult(status=CaptureStatus.FAILED, error_message="card declined")
        return CaptureResult(status=CaptureStatus.SUCCESS, transaction_id=f"tx-{next(self._ids)}")

    async def refund(self, transaction_id: str) -> None:
        self.refunds.append(transaction_id)

    async def status(self, transaction_id: str) -> PaymentStatus:
        return PaymentStatus(transaction_id, "CAPTURED", amount=Decimal("0"), currency="USD")


class FakeNotifications:
    def __init__(self) -> None:
        self.gift_notices: list[GiftNotice] = []
        self.confirmations: list[PreOrderNotice] = []
        self.releases: list[ReleaseNotice] = []
        self.fail = False

    async def send_gift_notice(self, notice: GiftNotice) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.gift_notices.append(notice)

    async def send_pre_order_confirmation(self, notice: PreOrderNotice) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.confirmations.append(notice)

    async def send_release_notice(self, notice: ReleaseNotice) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.releases.append(notice)


GAME = CatalogItem(
    item_id="item-x",
    title="Star Voyager",
    price=Money.of("29.99", "USD"),
    release_at=START - timedelta(days=100),
)
UPCOMING = CatalogItem(
    item_id="item-y",
    title="Star Voyager II",
    price=Money.of("59.99", "USD"),
    release_at=START + timedelta(days=20),
    pre_order_eligible=True,
)


@dataclass
class Storefront:
    clock: FakeClock
    gifts: InMemoryGiftRepository
    pre_orders: InMemoryPreOrderRepository
    catalog: FakeCatalog
    identity: FakeIdentity
    entitlements: FakeEntitlements
    payments: FakePayments
    notifications: FakeNotifications
    dispatcher: NotificationDispatcher
    gift_workflow: GiftWorkflow
    pre_order_workflow: PreOrderWorkflow
    sweep: ExpirationSweep


@pytest.fixture
def store() -> Storefront:
    clock = FakeClock()
    gifts = InMemoryGiftRepository()
    pre_orders = InMemoryPreOrderRepository()
    catalog = FakeCatalog([GAME, UPCOMING])
    identity = FakeIdentity(["alice", "bob", "carol"])
    entitlements = FakeEntitlements()
    payments = FakePayments()
    notifications = FakeNotifications()
    dispatcher = NotificationDispatcher(timeout=0.5)

    gift_workflow = GiftWorkflow(
        gifts=gifts,
        catalog=catalog,
        identity=identity,
        entitlements=entitlements,
        payments=payments,
        notifications=notifications,
        dispatcher=dispatcher,
        capture_timeout=0.2,
        clock=clock,
    )
    pre_order_workflow = PreOrderWorkflow(
        pre_orders=pre_orders,
        catalog=catalog,
        identity=identity,
        entitlements=entitlements,
        payments=payments,
        notifications=notifications,
        dispatcher=dispatcher,
        download_base_url="https://store.test/download/",
        capture_timeout=0.2,
        clock=clock,
    )
    sweep = ExpirationSweep(
        gifts=gifts,
        pre_orders=pre_orders,
        catalog=catalog,
        gift_workflow=gift_workflow,
        pre_order_workflow=pre_order_workflow,
        batch_size=50,
        clock=clock,
    )
    return Storefront(
        clock=clock,
        gifts=gifts,
        pre_orders=pre_orders,
        catalog=catalog,
        identity=identity,
        entitlements=entitlements,
        payments=payments,
        notifications=notifications,
        dispatcher=dispatcher,
        gift_workflow=gift_workflow,
        pre_order_workflow=pre_order_workflow,
        sweep=sweep,
    )
