from .base import (
    AlreadyOwnedError,
    AppError,
    AuthorizationError,
    ConcurrentModificationError,
    ConflictError,
    DependencyError,
    DuplicatePreOrderError,
    GatewayUnavailableError,
    GiftNotFoundError,
    InvalidTransitionError,
    ItemNotFoundError,
    NotFoundError,
    NotOwnerError,
    NotPreOrderableError,
    PaymentCaptureError,
    PaymentError,
    PreOrderNotFoundError,
    SelfGiftError,
    UserNotFoundError,
    ValidationError,
)

__all__ = [
    "AlreadyOwnedError",
    "AppError",
    "AuthorizationError",
    "ConcurrentModificationError",
    "ConflictError",
    "DependencyError",
    "DuplicatePreOrderError",
    "GatewayUnavailableError",
    "GiftNotFoundError",
    "InvalidTransitionError",
    "ItemNotFoundError",
    "NotFoundError",
    "NotOwnerError",
    "NotPreOrderableError",
    "PaymentCaptureError",
    "PaymentError",
    "PreOrderNotFoundError",
    "SelfGiftError",
    "UserNotFoundError",
    "ValidationError",
]
