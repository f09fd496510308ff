# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import UTC, datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.application.interfaces import GiftRepository, PreOrderRepository
from storefront.domain import Gift, GiftStatus, Money, PreOrder, PreOrderStatus
from storefront.infrastructure.db.models import GiftRow, PreOrderRow
from storefront.infrastructure.unit_of_work import unit_of_work_scope
from storefront.shared.errors import ConcurrentModificationError, DuplicatePreOrderError
from storefront.shared.logging import logger


def _utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive values; everything is stored as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _gift_from_row(row: GiftRow) -> Gift:
    return Gift(
        id=row.id,
        item_id=row.item_id,
        sender_id=row.sender_id,
        recipient_id=row.recipient_id,
        amount=Money(row.amount, row.currency),
        message=row.message or "",
        status=GiftStatus(row.status),
        sent_at=_utc(row.sent_at),
        expires_at=_utc(row.expires_at),
        claimed_at=_utc(row.claimed_at),
        transaction_id=row.transaction_id,
        entitlement_granted_at=_utc(row.entitlement_granted_at),
        version=row.version,
    )


def _pre_order_from_row(row: PreOrderRow) -> PreOrder:
    return PreOrder(
        id=row.id,
        item_id=row.item_id,
        user_id=row.user_id,
        paid_amount=Money(row.paid_amount, row.currency),
        status=PreOrderStatus(row.status),
        pre_ordered_at=_utc(row.pre_ordered_at),
        estimated_delivery_at=_utc(row.estimated_delivery_at),
        bonus_content=row.bonus_content,
        transaction_id=row.transaction_id,
        entitlement_granted_at=_utc(row.entitlement_granted_at),
        version=row.version,
    )


class SqlAlchemyGiftRepository(GiftRepository):
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def add(self, gift: Gift) -> Gift:
        with unit_of_work_scope(self._session_factory, "gifts") as session:
            session.add(
                GiftRow(
                    id=gift.id,
                    item_id=gift.item_id,
                    sender_id=gift.sender_id,
                    recipient_id=gift.recipient_id,
                    amount=gift.amount.amount,
                    currency=gift.amount.currency,
                    message=gift.message,
                    status=gift.status.value,
                    sent_at=_utc(gift.sent_at),
                    expires_at=_utc(gift.expires_at),
                    claimed_at=_utc(gift.claimed_at),
                    transaction_id=gift.transaction_id,
                    entitlement_granted_at=_utc(gift.entitlement_granted_at),
                    version=1,
                )
            )
        return replace(gift, version=1)

    def get(self, gift_id: str) -> Gift | None:
        with unit_of_work_scope(self._session_factory, "gifts") as session:
            row = session.get(GiftRow, gift_id)
            return _gift_from_row(row) if row else None

    def save(self, gift: Gift) -> Gift:
        with unit_of_work_scope(self._session_factory, "gifts") as session:
            result = session.execute(
                update(GiftRow)
                .where(GiftRow.id == gift.id, GiftRow.version == gift.version)
                .values(
                    status=gift.status.value,
                    claimed_at=_utc(gift.claimed_at),
                    transaction_id=gift.transaction_id,
                    entitlement_granted_at=_utc(gift.entitlement_granted_at),
                    version=GiftRow.version + 1,
                )
            )
            if result.rowcount != 1:
                logger.info(f"repo:gift version conflict id={gift.id} expected={gift.version}")
                raise ConcurrentModificationError("gift", gift.id)
        return replace(gift, version=gift.version + 1)

    def mark_granted(self, gift_id: str, granted_at: datetime) -> Gift | None:
        with unit_of_work_scope(self._session_factory, "gifts") as session:
            session.execute(
                update(GiftRow)
                .where(GiftRow.id == gift_id, GiftRow.entitlement_granted_at.is_(None))
                .values(entitlement_granted_at=_utc(granted_at), version=GiftRow.version + 1)
            )
            row = session.get(GiftRow, gift_id)
            return _gift_from_row(row) if row else None

    def list_overdue_pending(self, now: datetime, limit: int) -> Sequence[Gift]:
        with unit_of_work_scope(self._session_factory, "gifts") as session:
            rows = (
                session.query(GiftRow)
                .filter(
                    GiftRow.status == GiftStatus.PENDING.value,
                    GiftRow.expires_at < _utc(now),
                )
                .order_by(GiftRow.expires_at.asc())
                .limit(limit)
                .all()
            )
            return [_gift_from_row(row) for row in rows]

    def list_ungranted_claims(self, limit: int) -> Sequence[Gift]:
        with unit_of_work_scope(self._session_factory, "gifts") as session:
            rows = (
                session.query(GiftRow)
                .filter(
                    GiftRow.status == GiftStatus.CLAIMED.value,
                    GiftRow.entitlement_granted_at.is_(None),
                )
                .order_by(GiftRow.claimed_at.asc())
                .limit(limit)
                .all()
            )
            return [_gift_from_row(row) for row in rows]

    def list_pending_for_recipient(self, recipient_id: str, now: datetime) -> Sequence[Gift]:
        with unit_of_work_scope(self._session_factory, "gifts") as session:
            rows = (
                session.query(GiftRow)
                .filter(
                    GiftRow.recipient_id == recipient_id,
                    GiftRow.status == GiftStatus.PENDING.value,
                    GiftRow.expires_at >= _utc(now),
                )
                .order_by(GiftRow.sent_at.desc())
                .all()
            )
            return [_gift_from_row(row) for row in rows]

    def list_by_sender(self, sender_id: str) -> Sequence[Gift]:
        with unit_of_work_scope(self._session_factory, "gifts") as session:
            rows = (
                session.query(GiftRow)
                .filter(GiftRow.sender_id == sender_id)
                .order_by(GiftRow.sent_at.desc())
                .all()
            )
            return [_gift_from_row(row) for row in rows]


class SqlAlchemyPreOrderRepository(PreOrderRepository):
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def add(self, pre_order: PreOrder) -> PreOrder:
        try:
            with unit_of_work_scope(self._session_factory, "pre_orders") as session:
                session.add(
                    PreOrderRow(
                        id=pre_order.id,
                        item_id=pre_order.item_id,
                        user_id=pre_order.user_id,
                        paid_amount=pre_order.paid_amount.amount,
                        currency=pre_order.paid_amount.currency,
                        status=pre_order.status.value,
                        pre_ordered_at=_utc(pre_order.pre_ordered_at),
                        estimated_delivery_at=_utc(pre_order.estimated_delivery_at),
                        bonus_content=pre_order.bonus_content,
                        transaction_id=pre_order.transaction_id,
                        entitlement_granted_at=_utc(pre_order.entitlement_granted_at),
                        version=1,
                    )
                )
        except IntegrityError as exc:
            logger.info(
                f"repo:pre_order duplicate active user_id={pre_order.user_id} "
                f"item_id={pre_order.item_id}"
            )
            raise DuplicatePreOrderError(pre_order.user_id, pre_order.item_id) from exc
        return replace(pre_order, version=1)

    def get(self, pre_order_id: str) -> PreOrder | None:
        with unit_of_work_scope(self._session_factory, "pre_orders") as session:
            row = session.get(PreOrderRow, pre_order_id)
            return _pre_order_from_row(row) if row else None

    def save(self, pre_order: PreOrder) -> PreOrder:
        with unit_of_work_scope(self._session_factory, "pre_orders") as session:
            result = session.execute(
                update(PreOrderRow)
                .where(PreOrderRow.id == pre_order.id, PreOrderRow.version == pre_order.version)
                .values(
                    status=pre_order.status.value,
                    transaction_id=pre_order.transaction_id,
                    entitlement_granted_at=_utc(pre_order.entitlement_granted_at),
                    version=PreOrderRow.version + 1,
                )
            )
            if result.rowcount != 1:
                logger.info(
                    f"repo:pre_order version conflict id={pre_order.id} "
                    f"expected={pre_order.version}"
                )
                raise ConcurrentModificationError("pre_order", pre_order.id)
        return replace(pre_order, version=pre_order.version + 1)

    def mark_granted(self, pre_order_id: str, granted_at: datetime) -> PreOrder | None:
        with unit_of_work_scope(self._session_factory, "pre_orders") as session:
            session.execute(
                update(PreOrderRow)
                .where(
                    PreOrderRow.id == pre_order_id,
                    PreOrderRow.entitlement_granted_at.is_(None),
                )
                .values(entitlement_granted_at=_utc(granted_at), version=PreOrderRow.version + 1)
            )
            row = session.get(PreOrderRow, pre_order_id)
            return _pre_order_from_row(row) if row else None

    def has_active(self, user_id: str, item_id: str) -> bool:
        with unit_of_work_scope(self._session_factory, "pre_orders") as session:
            found = (
                session.query(PreOrderRow.id)
                .filter(
                    PreOrderRow.user_id == user_id,
                    PreOrderRow.item_id == item_id,
                    PreOrderRow.status == PreOrderStatus.CONFIRMED.value,
                )
                .first()
            )
            return found is not None

    def list_for_user(self, user_id: str) -> Sequence[PreOrder]:
        with unit_of_work_scope(self._session_factory, "pre_orders") as session:
            rows = (
                session.query(PreOrderRow)
                .filter(PreOrderRow.user_id == user_id)
                .order_by(PreOrderRow.pre_ordered_at.desc())
                .all()
            )
            return [_pre_order_from_row(row) for row in rows]

    def active_item_ids(self) -> Sequence[str]:
        with unit_of_work_scope(self._session_factory, "pre_orders") as session:
            rows = (
                session.query(PreOrderRow.item_id)
                .filter(PreOrderRow.status == PreOrderStatus.CONFIRMED.value)
                .distinct()
                .order_by(PreOrderRow.item_id.asc())
                .all()
            )
            return [row[0] for row in rows]

    def list_active_for_item(self, item_id: str, limit: int) -> Sequence[PreOrder]:
        with unit_of_work_scope(self._session_factory, "pre_orders") as session:
            rows = (
                session.query(PreOrderRow)
                .filter(
                    PreOrderRow.item_id == item_id,
                    PreOrderRow.status == PreOrderStatus.CONFIRMED.value,
                )
                .order_by(PreOrderRow.pre_ordered_at.asc())
                .limit(limit)
                .all()
            )
            return [_pre_order_from_row(row) for row in rows]

    def list_ungranted_completions(self, limit: int) -> Sequence[PreOrder]:
        with unit_of_work_scope(self._session_factory, "pre_orders") as session:
            rows = (
                session.query(PreOrderRow)
                .filter(
                    PreOrderRow.status == PreOrderStatus.COMPLETED.value,
                    PreOrderRow.entitlement_granted_at.is_(None),
                )
                .order_by(PreOrderRow.pre_ordered_at.asc())
                .limit(limit)
                .all()
            )
            return [_pre_order_from_row(row) for row in rows]


__all__ = ["SqlAlchemyGiftRepository", "SqlAlchemyPreOrderRepository"]
