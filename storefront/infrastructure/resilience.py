# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Timeouts, retries and a circuit breaker for calls to downstream services."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storefront.shared.config import ResilienceConfig, load_config
from storefront.shared.logging import logger

T = TypeVar("T")


class CircuitOpenError(RuntimeError):
    def __init__(self, name: str) -> None:
        super().__init__(f"circuit '{name}' is open")
        self.name = name


@dataclass
class CircuitBreaker:
    """In-memory circuit breaker shared by every call to one downstream service."""

    name: str
    failure_threshold: int
    reset_timeout: float

    def __post_init__(self) -> None:
        self._failures = 0
        self._opened_at: float | None = None

    @classmethod
    def from_config(cls, name: str, config: ResilienceConfig | None = None) -> CircuitBreaker:
        config = config or load_config().resilience
        return cls(
            name=name,
            failure_threshold=config.circuit_fail_threshold,
            reset_timeout=config.circuit_reset_timeout,
        )

    def allow(self) -> bool:
        if self._opened_at is None:
            return True
        if time.monotonic() - self._opened_at >= self.reset_timeout:
            logger.info(f"breaker:{self.name} half-open")
            self._opened_at = None
            self._failures = 0
            return True
        logger.warning(f"breaker:{self.name} open, refusing call")
        return False

    def on_success(self) -> None:
        self._failures = 0
        self._opened_at = None

    def on_failure(self) -> None:
        self._failures += 1
        if self._failures >= self.failure_threshold and self._opened_at is None:
            self._opened_at = time.monotonic()
            logger.error(f"breaker:{self.name} opening after {self._failures} failures")


async def resilient_call(  # noqa: UP047
    func: Callable[..., Awaitable[T]],
    *args: Any,
    breaker: CircuitBreaker | None = None,
    timeout: float | None = None,
    retries: int | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    config: ResilienceConfig | None = None,
    **kwargs: Any,
) -> T:
    """Run ``func`` with a per-attempt timeout, exponential backoff and an optional breaker.

    Only exceptions listed in ``retry_on`` are retried; anything else propagates
    on the first attempt.
    """

    config = config or load_config().resilience
    if breaker is not None and not breaker.allow():
        raise CircuitOpenError(breaker.name)

    timeout = timeout or config.default_timeout
    attempts = (config.max_retries if retries is None else retries) + 1

    retry = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=config.backoff_base, max=config.backoff_cap),
        retry=retry_if_exception_type(retry_on),
        reraise=True,
    )

    try:
        async for attempt in retry:
            with attempt:
                logger.debug(
                    f"resilience: attempt={attempt.retry_state.attempt_number} "
                    f"func={getattr(func, '__name__', func)}"
                )
                result = await asyncio.wait_for(func(*args, **kwargs), timeout=timeout)
                if breaker is not None:
                    breaker.on_success()
                return result
    except RetryError as exc:
        if breaker is not None:
            breaker.on_failure()
        last_exc = exc.last_attempt.exception()
        if last_exc is None:
            raise RuntimeError("resilience: retry failed without exception") from exc
        raise last_exc from exc
    except Exception:
        if breaker is not None:
            breaker.on_failure()
        raise
    raise RuntimeError("resilience: reached unexpected branch")


__all__ = ["CircuitBreaker", "CircuitOpenError", "resilient_call"]
