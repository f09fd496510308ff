# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.shared.config import load_config
from storefront.shared.logging import logger


class Base(DeclarativeBase):
    pass


def build_engine(url: str | None = None) -> Engine:
    """Create an engine for ``url`` (defaults to DATABASE_URL).

    ``sqlite://`` without a path yields a single shared in-memory connection.
    """

    database = load_config().database
    url = url or database.url

    if url.startswith("sqlite"):
        connect_args: dict[str, object] = {
            "check_same_thread": False,
            "timeout": int(database.pool_timeout),
        }
        if url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(url, pool_pre_ping=True, connect_args=connect_args)

    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
        pool_timeout=database.pool_timeout,
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    # Register the mapped tables before create_all.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ensured")
