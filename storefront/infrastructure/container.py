# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import timedelta
from functools import cached_property

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from storefront.application import ExpirationSweep, GiftWorkflow, PreOrderWorkflow
from storefront.application.services import NotificationDispatcher
from storefront.infrastructure.db import build_engine, build_session_factory, init_db
from storefront.infrastructure.gateways import (
    HttpCatalogGateway,
    HttpEntitlementGateway,
    HttpIdentityGateway,
    HttpNotificationGateway,
    HttpPaymentGateway,
)
from storefront.infrastructure.repositories.sqlalchemy import (
    SqlAlchemyGiftRepository,
    SqlAlchemyPreOrderRepository,
)
from storefront.shared.config import AppConfig, load_config


class Container:
    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or load_config()

    @cached_property
    def engine(self) -> Engine:
        engine = build_engine(self.config.database.url)
        init_db(engine)
        return engine

    @cached_property
    def session_factory(self) -> sessionmaker[Session]:
        return build_session_factory(self.engine)

    @cached_property
    def gift_repository(self) -> SqlAlchemyGiftRepository:
        return SqlAlchemyGiftRepository(self.session_factory)

    @cached_property
    def pre_order_repository(self) -> SqlAlchemyPreOrderRepository:
        return SqlAlchemyPreOrderRepository(self.session_factory)

    @cached_property
    def catalog(self) -> HttpCatalogGateway:
        return HttpCatalogGateway(
            self.config.gateways.catalog_url, resilience=self.config.resilience
        )

    @cached_property
    def identity(self) -> HttpIdentityGateway:
        return HttpIdentityGateway(
            self.config.gateways.identity_url, resilience=self.config.resilience
        )

    @cached_property
    def entitlements(self) -> HttpEntitlementGateway:
        return HttpEntitlementGateway(
            self.config.gateways.entitlement_url, resilience=self.config.resilience
        )

    @cached_property
    def payments(self) -> HttpPaymentGateway:
        return HttpPaymentGateway(
            self.config.gateways.payment_url, resilience=self.config.resilience
        )

    @cached_property
    def notifications(self) -> HttpNotificationGateway:
        return HttpNotificationGateway(
            self.config.gateways.notification_url, resilience=self.config.resilience
        )

    @cached_property
    def dispatcher(self) -> NotificationDispatcher:
        return NotificationDispatcher(timeout=self.config.gateways.notification_timeout)

    @cached_property
    def gift_workflow(self) -> GiftWorkflow:
        return GiftWorkflow(
            gifts=self.gift_repository,
            catalog=self.catalog,
            identity=self.identity,
            entitlements=self.entitlements,
            payments=self.payments,
            notifications=self.notifications,
            dispatcher=self.dispatcher,
            capture_timeout=self.config.gateways.capture_timeout,
            ttl=timedelta(days=self.config.workflow.gift_ttl_days),
            message_max=self.config.workflow.gift_message_max,
        )

    @cached_property
    def pre_order_workflow(self) -> PreOrderWorkflow:
        return PreOrderWorkflow(
            pre_orders=self.pre_order_repository,
            catalog=self.catalog,
            identity=self.identity,
            entitlements=self.entitlements,
            payments=self.payments,
            notifications=self.notifications,
            dispatcher=self.dispatcher,
            download_base_url=self.config.gateways.download_base_url,
            capture_timeout=self.config.gateways.capture_timeout,
        )

    @cached_property
    def expiration_sweep(self) -> ExpirationSweep:
        return ExpirationSweep(
            gifts=self.gift_repository,
            pre_orders=self.pre_order_repository,
            catalog=self.catalog,
            gift_workflow=self.gift_workflow,
            pre_order_workflow=self.pre_order_workflow,
            batch_size=self.config.workflow.sweep_batch_size,
        )

    async def aclose(self) -> None:
        await self.dispatcher.drain()
        for gateway in (
            self.catalog,
            self.identity,
            self.entitlements,
            self.payments,
            self.notifications,
        ):
            await gateway.aclose()


__all__ = ["Container"]
