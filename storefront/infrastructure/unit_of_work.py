# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Transaction boundary used by the repositories."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from storefront.shared.errors import GatewayUnavailableError
from storefront.shared.logging import logger


class SqlAlchemyUnitOfWork(AbstractContextManager):
    """One session, one transaction: commit on clean exit, rollback otherwise.

    Lost connections and lock timeouts surface as ``OperationalError``; they are
    re-raised as ``GatewayUnavailableError`` so callers treat the store like any
    other unreachable dependency.
    """

    def __init__(self, session_factory: Callable[[], Session], label: str = "db") -> None:
        self.session_factory = session_factory
        self.label = label
        self._session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self._session = self.session_factory()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        session = self.session
        try:
            if exc is None:
                session.commit()
            else:
                logger.debug(f"uow:{self.label} rollback due to {exc_type.__name__}")
                session.rollback()
        except OperationalError as commit_exc:
            session.rollback()
            logger.error(f"uow:{self.label} store unavailable on commit")
            raise GatewayUnavailableError("database", self.label) from commit_exc
        except Exception as commit_exc:
            logger.warning(f"uow:{self.label} commit failed: {type(commit_exc).__name__}")
            session.rollback()
            raise
        finally:
            session.close()
            self._session = None

        if isinstance(exc, OperationalError):
            logger.error(f"uow:{self.label} store unavailable")
            raise GatewayUnavailableError("database", self.label) from exc

    @property
    def session(self) -> Session:
        if self._session is None:
            msg = "UnitOfWork session accessed before entering context"
            raise RuntimeError(msg)
        return self._session


@contextmanager
def unit_of_work_scope(factory: Callable[[], Session], label: str = "db") -> Iterator[Session]:
    with SqlAlchemyUnitOfWork(factory, label) as uow:
        yield uow.session


__all__ = ["SqlAlchemyUnitOfWork", "unit_of_work_scope"]
