# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    pass


class InvariantViolationError(DomainError):
    """Raised when a value object or entity would be built in an impossible shape."""

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {super().__str__()}"
        return super().__str__()

    def to_context(self) -> dict[str, Any]:
        context: dict[str, Any] = {"reason": super().__str__()}
        if self.field:
            context["field"] = self.field
        return context


InvariantViolation = InvariantViolationError
