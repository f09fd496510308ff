# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Run the expiration sweep once or on a fixed interval."""

from __future__ import annotations

import argparse
import asyncio

from storefront.infrastructure.container import Container
from storefront.infrastructure.observability import serve_metrics
from storefront.shared.config import load_config
from storefront.shared.errors import GatewayUnavailableError
from storefront.shared.logging import logger, setup_logging


async def run(container: Container, *, once: bool, interval: float) -> None:
    sweep = container.expiration_sweep
    try:
        while True:
            try:
                report = await sweep.run_once()
            except GatewayUnavailableError as exc:
                if once:
                    raise
                logger.error(f"sweep:pass aborted context={dict(exc.context or {})}")
            except Exception as exc:
                if once:
                    raise
                logger.opt(exception=exc).error(
                    f"sweep:pass crashed error={type(exc).__name__}, retrying in {interval}s"
                )
            else:
                logger.debug(f"sweep:report {report.as_dict()}")
            if once:
                return
            await asyncio.sleep(interval)
    finally:
        await container.aclose()


def main(argv: list[str] | None = None) -> None:
    config = load_config()
    parser = argparse.ArgumentParser(
        description="Expire overdue gifts and complete released pre-orders"
    )
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument(
        "--interval",
        type=float,
        default=config.workflow.sweep_interval_seconds,
        help="Seconds between passes",
    )
    parser.add_argument("--log-level", default=None, help="Override the log level")
    args = parser.parse_args(argv)
    if args.interval <= 0:
        parser.error("--interval must be positive")

    setup_logging(args.log_level)
    logger.info(
        f"sweep:start service={config.observability.service_name} "
        f"once={args.once} interval={args.interval}s"
    )
    if serve_metrics(config.observability.metrics_port):
        logger.info(f"sweep:metrics on port {config.observability.metrics_port}")
    try:
        asyncio.run(run(Container(config), once=args.once, interval=args.interval))
    except KeyboardInterrupt:
        logger.info("sweep:stopped")


if __name__ == "__main__":
    main()
