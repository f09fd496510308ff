# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, ClassVar


@dataclass(slots=True)
class AppError(Exception):
    code: str
    status: HTTPStatus
    context: Mapping[str, Any] | None = None

    retryable: ClassVar[bool] = False

    def __post_init__(self) -> None:
        Exception.__init__(self, self.code)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "retryable": self.retryable}
        if self.context:
            payload["context"] = dict(self.context)
        return payload


class _KindError(AppError):
    """Base for error kinds: subclasses pin a default code and status."""

    default_code: ClassVar[str] = "app_error"
    default_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST

    def __init__(
        self,
        code: str | None = None,
        *,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        resolved_code = code or self.default_code
        super().__init__(code=resolved_code, status=self.default_status, context=context)


class ValidationError(_KindError):
    default_code = "validation_error"
    default_status = HTTPStatus.UNPROCESSABLE_ENTITY


class NotFoundError(_KindError):
    default_code = "not_found"
    default_status = HTTPStatus.NOT_FOUND


class ConflictError(_KindError):
    default_code = "conflict"
    default_status = HTTPStatus.CONFLICT


class AuthorizationError(_KindError):
    default_code = "forbidden"
    default_status = HTTPStatus.FORBIDDEN


class PaymentError(_KindError):
    default_code = "payment_failed"
    default_status = HTTPStatus.PAYMENT_REQUIRED


class DependencyError(_KindError):
    default_code = "dependency_unavailable"
    default_status = HTTPStatus.SERVICE_UNAVAILABLE
    retryable = True


class ItemNotFoundError(NotFoundError):
    def __init__(self, item_id: str) -> None:
        super().__init__("item_not_found", context={"item_id": item_id})


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__("user_not_found", context={"user_id": user_id})


class GiftNotFoundError(NotFoundError):
    def __init__(self, gift_id: str) -> None:
        super().__init__("gift_not_found", context={"gift_id": gift_id})


class PreOrderNotFoundError(NotFoundError):
    def __init__(self, pre_order_id: str) -> None:
        super().__init__("pre_order_not_found", context={"pre_order_id": pre_order_id})


class SelfGiftError(ValidationError):
    def __init__(self, user_id: str) -> None:
        super().__init__("self_gift", context={"user_id": user_id})


class AlreadyOwnedError(ConflictError):
    def __init__(self, user_id: str, item_id: str) -> None:
        super().__init__("already_owned", context={"user_id": user_id, "item_id": item_id})


class InvalidTransitionError(ConflictError):
    def __init__(self, code: str, *, entity: str, entity_id: str, status: str) -> None:
        super().__init__(
            code,
            context={"entity": entity, "id": entity_id, "status": status},
        )


class ConcurrentModificationError(ConflictError):
    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            "concurrent_modification", context={"entity": entity, "id": entity_id}
        )


class DuplicatePreOrderError(ConflictError):
    def __init__(self, user_id: str, item_id: str) -> None:
        super().__init__(
            "duplicate_pre_order", context={"user_id": user_id, "item_id": item_id}
        )


class NotPreOrderableError(ConflictError):
    def __init__(self, item_id: str) -> None:
        super().__init__("item_not_pre_orderable", context={"item_id": item_id})


class NotOwnerError(AuthorizationError):
    def __init__(self, entity: str, entity_id: str, user_id: str) -> None:
        super().__init__(
            "not_owner", context={"entity": entity, "id": entity_id, "user_id": user_id}
        )


class PaymentCaptureError(PaymentError):
    def __init__(self, reason: str | None, *, timed_out: bool = False) -> None:
        super().__init__(
            "payment_timeout" if timed_out else "payment_failed",
            context={"reason": reason or "unknown"},
        )


class GatewayUnavailableError(DependencyError):
    def __init__(self, gateway: str, operation: str) -> None:
        super().__init__(
            "dependency_unavailable", context={"gateway": gateway, "operation": operation}
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
