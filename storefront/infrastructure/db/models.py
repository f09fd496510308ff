# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from storefront.infrastructure.db.session import Base

_ACTIVE_PRE_ORDER = text("status = 'CONFIRMED'")


class GiftRow(Base):
    __tablename__ = "gifts"
    __table_args__ = (
        Index("ix_gifts_status_expires", "status", "expires_at"),
        Index("ix_gifts_recipient_status", "recipient_id", "status"),
    )
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(64), index=True)
    sender_id: Mapped[str] = mapped_column(String(64), index=True)
    recipient_id: Mapped[str] = mapped_column(String(64))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3))
    message: Mapped[str] = mapped_column(Text, default="", server_default="")
    status: Mapped[str] = mapped_column(String(16))
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    entitlement_granted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")


class PreOrderRow(Base):
    __tablename__ = "pre_orders"
    __table_args__ = (
        # At most one CONFIRMED pre-order per (user, item).
        Index(
            "uq_pre_orders_active",
            "user_id",
            "item_id",
            unique=True,
            sqlite_where=_ACTIVE_PRE_ORDER,
            postgresql_where=_ACTIVE_PRE_ORDER,
        ),
        Index("ix_pre_orders_item_status", "item_id", "status"),
    )
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(64))
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3))
    status: Mapped[str] = mapped_column(String(16))
    pre_ordered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    estimated_delivery_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    bonus_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    entitlement_granted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")


__all__ = ["GiftRow", "PreOrderRow"]
