# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from storefront.domain import CatalogItem, Gift, GiftStatus, PreOrder
from storefront.infrastructure.observability import track_sweep
from storefront.shared.errors import AppError, ItemNotFoundError
from storefront.shared.logging import correlation_scope, logger

from ..interfaces import CatalogGateway, GiftRepository, PreOrderRepository
from ..services import require_item
from .gifts import GiftWorkflow
from .preorders import PreOrderWorkflow


@dataclass(slots=True)
class SweepReport:
    expired: int = 0
    completed: int = 0
    grants: int = 0
    failures: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class ExpirationSweep:
    """One pass over overdue gifts, released pre-orders and ungranted entitlements.

    Each entity is handled and stored on its own; a failure is counted and
    logged and the pass moves on. Everything a pass applies is a no-op when
    applied again, so a crashed or overlapping run is safe to repeat.
    """

    def __init__(
        self,
        *,
        gifts: GiftRepository,
        pre_orders: PreOrderRepository,
        catalog: CatalogGateway,
        gift_workflow: GiftWorkflow,
        pre_order_workflow: PreOrderWorkflow,
        batch_size: int = 500,
        clock: Callable[[], datetime] | None = None,
    ):
        self._gifts = gifts
        self._pre_orders = pre_orders
        self._catalog = catalog
        self._gift_workflow = gift_workflow
        self._pre_order_workflow = pre_order_workflow
        self._batch_size = batch_size
        self._clock = clock or (lambda: datetime.now(UTC))

    async def run_once(self) -> SweepReport:
        report = SweepReport()
        with correlation_scope("sweep"), track_sweep():
            now = self._clock()
            self._expire_gifts(now, report)
            await self._complete_pre_orders(now, report)
            await self._redrive_grants(report)
        logger.info(
            f"sweep:done expired={report.expired} completed={report.completed} "
            f"grants={report.grants} failures={report.failures}"
        )
        return report

    def _expire_gifts(self, now: datetime, report: SweepReport) -> None:
        for gift in self._gifts.list_overdue_pending(now, self._batch_size):
            try:
                result = self._gift_workflow.expire(gift)
            except Exception as exc:
                report.failures += 1
                logger.opt(exception=exc).error(f"sweep:expire failed gift_id={gift.id}")
                continue
            if result.status is GiftStatus.EXPIRED:
                report.expired += 1

    async def _complete_pre_orders(self, now: datetime, report: SweepReport) -> None:
        for item_id in self._pre_orders.active_item_ids():
            item = await self._released_item(item_id, now, report)
            if item is None:
                continue
            for pre_order in self._pre_orders.list_active_for_item(item_id, self._batch_size):
                try:
                    await self._pre_order_workflow.complete_released(pre_order, item)
                except AppError as exc:
                    report.failures += 1
                    logger.warning(
                        f"sweep:complete refused pre_order_id={pre_order.id} code={exc.code}"
                    )
                    continue
                except Exception as exc:
                    report.failures += 1
                    logger.opt(exception=exc).error(
                        f"sweep:complete failed pre_order_id={pre_order.id}"
                    )
                    continue
                report.completed += 1

    async def _released_item(
        self, item_id: str, now: datetime, report: SweepReport
    ) -> CatalogItem | None:
        try:
            item = await require_item(self._catalog, item_id)
        except ItemNotFoundError:
            logger.warning(f"sweep:complete item missing from catalog item_id={item_id}")
            return None
        except AppError as exc:
            report.failures += 1
            logger.warning(
                f"sweep:complete catalog lookup failed item_id={item_id} code={exc.code}"
            )
            return None
        return item if item.is_released(now) else None

    async def _redrive_grants(self, report: SweepReport) -> None:
        for gift in self._gifts.list_ungranted_claims(self._batch_size):
            self._count_grant(report, await self._gift_workflow.redrive_grant(gift))

        for pre_order in self._pre_orders.list_ungranted_completions(self._batch_size):
            self._count_grant(report, await self._pre_order_workflow.redrive_grant(pre_order))

    @staticmethod
    def _count_grant(report: SweepReport, entity: Gift | PreOrder) -> None:
        if entity.entitlement_granted_at is None:
            report.failures += 1
        else:
            report.grants += 1


__all__ = ["ExpirationSweep", "SweepReport"]
