# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .interfaces import (
    CaptureRequest,
    CaptureResult,
    CaptureStatus,
    CatalogGateway,
    EntitlementGateway,
    GiftNotice,
    GiftRepository,
    IdentityGateway,
    NotificationGateway,
    PaymentGateway,
    PaymentStatus,
    PreOrderNotice,
    PreOrderRepository,
    ReleaseNotice,
    UserProfile,
)
from .use_cases.gifts import GiftWorkflow, SendGiftInput
from .use_cases.preorders import CreatePreOrderInput, PreOrderWorkflow
from .use_cases.sweep import ExpirationSweep, SweepReport

__all__ = [
    "CaptureRequest",
    "CaptureResult",
    "CaptureStatus",
    "CatalogGateway",
    "CreatePreOrderInput",
    "EntitlementGateway",
    "ExpirationSweep",
    "GiftNotice",
    "GiftRepository",
    "GiftWorkflow",
    "IdentityGateway",
    "NotificationGateway",
    "PaymentGateway",
    "PaymentStatus",
    "PreOrderNotice",
    "PreOrderRepository",
    "PreOrderWorkflow",
    "ReleaseNotice",
    "SendGiftInput",
    "SweepReport",
    "UserProfile",
]
