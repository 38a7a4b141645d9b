from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from guestbook.config import Settings
from guestbook.errors import DatabaseUnavailableError, EntryStoreError


def build_engine(settings: Settings) -> Engine:
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    try:
        url = settings.sqlalchemy_url
        if url.get_backend_name() != "sqlite":
            # Bounded pool, no overflow; callers queue for a free connection.
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=0,
                pool_timeout=settings.db_pool_timeout,
            )
        return create_engine(url, **kwargs)
    except (SQLAlchemyError, ImportError) as exc:
        # Malformed URL, unknown dialect or missing driver.
        raise DatabaseUnavailableError(str(exc)) from exc


class Database:
    """Owns the connection pool for the lifetime of the process."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.ready = False

    def verify(self) -> None:
        """Check out one connection and hand it straight back."""

        try:
            with self.engine.connect():
                pass
        except SQLAlchemyError as exc:
            raise DatabaseUnavailableError(str(exc)) from exc

        self.ready = True
        url = self.engine.url
        structlog.get_logger("database").info(
            "database.ready",
            host=url.host,
            user=url.username,
            database=url.database,
        )

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Check out one pooled connection; it is returned on every exit path."""

        try:
            conn = self.engine.connect()
        except SQLAlchemyError as exc:
            raise EntryStoreError("could not check out a database connection") from exc
        try:
            yield conn
        finally:
            conn.close()


def get_database(request: Request) -> Database:
    return request.app.state.database
