from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from guestbook.db.models import Entry
from guestbook.errors import EntryStoreError
from guestbook.models.schemas import EntryOut, EntryRecord

ANONYMOUS_EMAIL = "anonimo@example.com"
LOCAL_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)

_table = Entry.__table__


def _upsert_statement(dialect_name: str, email: str, now: datetime):
    values = {"email": email, "visits": 1, "timestamp": now}

    if dialect_name in {"postgresql", "sqlite"}:
        insert = postgresql.insert if dialect_name == "postgresql" else sqlite.insert
        stmt = insert(_table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[_table.c.email],
            set_={"visits": _table.c.visits + 1, "timestamp": stmt.excluded["timestamp"]},
        )

    if dialect_name in {"mysql", "mariadb"}:
        stmt = mysql.insert(_table).values(**values)
        return stmt.on_duplicate_key_update(
            visits=_table.c.visits + 1,
            timestamp=stmt.inserted["timestamp"],
        )

    raise EntryStoreError(f"No atomic upsert available for dialect {dialect_name!r}")


def record_visit(conn: Connection, email: str, now: datetime | None = None) -> None:
    """Insert a first visit for ``email`` or bump the existing row.

    Runs as a single statement committed on its own; concurrent requests for
    the same email are serialized by the database's unique constraint.
    """

    if now is None:
        now = datetime.now(timezone.utc)
    # Naive UTC keeps the value portable across DATETIME columns.
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)

    stmt = _upsert_statement(conn.dialect.name, email, now)
    try:
        conn.execute(stmt)
        conn.commit()
    except SQLAlchemyError as exc:
        raise EntryStoreError(str(exc)) from exc

    logger.info("entry.recorded", extra={"email": email})


def list_entries(conn: Connection) -> list[EntryRecord]:
    stmt = select(Entry.id, Entry.email, Entry.visits, Entry.timestamp).order_by(
        Entry.timestamp.desc(), Entry.id.desc()
    )
    try:
        rows = conn.execute(stmt).all()
    except SQLAlchemyError as exc:
        raise EntryStoreError(str(exc)) from exc

    return [EntryRecord(id=r.id, email=r.email, visits=r.visits, timestamp=r.timestamp) for r in rows]


def format_local_time(value: datetime) -> str:
    """Render a stored timestamp in the server's local time zone."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone().strftime(LOCAL_TIME_FORMAT)


def to_output(entry: EntryRecord) -> EntryOut:
    return EntryOut(
        id=entry.id,
        email=entry.email,
        visits=entry.visits,
        timestamp=format_local_time(entry.timestamp),
    )
