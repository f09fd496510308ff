# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol

from storefront.domain import CatalogItem, Gift, PreOrder


class CaptureStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass(slots=True, frozen=True)
class CaptureRequest:
    user_id: str
    amount: Decimal
    currency: str
    item_id: str
    description: str


@dataclass(slots=True, frozen=True)
class CaptureResult:
    status: CaptureStatus
    transaction_id: str | None = None
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is CaptureStatus.SUCCESS


@dataclass(slots=True, frozen=True)
class PaymentStatus:
    transaction_id: str
    status: str
    amount: Decimal
    currency: str


@dataclass(slots=True, frozen=True)
class UserProfile:
    user_id: str
    username: str
    display_name: str | None = None

    @property
    def shown_name(self) -> str:
        return self.display_name or self.username


@dataclass(slots=True, frozen=True)
class GiftNotice:
    recipient_id: str
    sender_name: str
    item_title: str
    message: str
    gift_id: str


@dataclass(slots=True, frozen=True)
class PreOrderNotice:
    user_id: str
    item_title: str
    release_at: datetime
    bonus_content: str | None
    pre_order_id: str


@dataclass(slots=True, frozen=True)
class ReleaseNotice:
    user_id: str
    item_title: str
    download_link: str
    release_notes: str


class GiftRepository(Protocol):
    def add(self, gift: Gift) -> Gift: ...

    def get(self, gift_id: str) -> Gift | None: ...

    def save(self, gift: Gift) -> Gift:
        """Persist a transition if the stored version still equals ``gift.version``."""
        ...

    def mark_granted(self, gift_id: str, granted_at: datetime) -> Gift | None: ...

    def list_overdue_pending(self, now: datetime, limit: int) -> Sequence[Gift]: ...

    def list_ungranted_claims(self, limit: int) -> Sequence[Gift]: ...

    def list_pending_for_recipient(self, recipient_id: str, now: datetime) -> Sequence[Gift]: ...

    def list_by_sender(self, sender_id: str) -> Sequence[Gift]: ...


class PreOrderRepository(Protocol):
    def add(self, pre_order: PreOrder) -> PreOrder:
        """Insert a CONFIRMED pre-order; the store rejects a second active one atomically."""
        ...

    def get(self, pre_order_id: str) -> PreOrder | None: ...

    def save(self, pre_order: PreOrder) -> PreOrder: ...

    def mark_granted(self, pre_order_id: str, granted_at: datetime) -> PreOrder | None: ...

    def has_active(self, user_id: str, item_id: str) -> bool: ...

    def list_for_user(self, user_id: str) -> Sequence[PreOrder]: ...

    def active_item_ids(self) -> Sequence[str]: ...

    def list_active_for_item(self, item_id: str, limit: int) -> Sequence[PreOrder]: ...

    def list_ungranted_completions(self, limit: int) -> Sequence[PreOrder]: ...


class CatalogGateway(Protocol):
    async def get_item(self, item_id: str) -> CatalogItem | None: ...


class IdentityGateway(Protocol):
    async def user_exists(self, user_id: str) -> bool: ...

    async def are_connected(self, user_id: str, other_id: str) -> bool: ...

    async def get_profile(self, user_id: str) -> UserProfile | None: ...


class EntitlementGateway(Protocol):
    async def user_owns(self, user_id: str, item_id: str) -> bool: ...

    async def grant(self, user_id: str, item_id: str, source_transaction_id: str) -> None: ...


class PaymentGateway(Protocol):
    async def capture(self, request: CaptureRequest) -> CaptureResult: ...

    async def refund(self, transaction_id: str) -> None: ...

    async def status(self, transaction_id: str) -> PaymentStatus: ...


class NotificationGateway(Protocol):
    async def send_gift_notice(self, notice: GiftNotice) -> None: ...

    async def send_pre_order_confirmation(self, notice: PreOrderNotice) -> None: ...

    async def send_release_notice(self, notice: ReleaseNotice) -> None: ...
