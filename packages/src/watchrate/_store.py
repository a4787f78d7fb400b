"""Measurement store port and SQLAlchemy adapter.

The store owns the append-only log of :class:`MeasurementRecord`
entries.  Records are never updated or deleted; the only write is
:meth:`MeasurementStorePort.insert`.

Persisted layout::

    measurement_records
        id             INTEGER PRIMARY KEY
        watch_name     VARCHAR   ┐ composite index for
        timestamp      DATETIME  ┘ latest_sync_before()
        kind           VARCHAR   ('sync' | 'measurement')
        comment        TEXT
        computed_rate  FLOAT NULL

Timestamps are stored as naive UTC and re-tagged as UTC on the way
out, so backends without timezone support (SQLite) round-trip them
unchanged down to the microsecond.

Selection is always by ``timestamp``, never by insertion order.  Two
records with the same timestamp resolve to the later-inserted one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import (
    Connection,
    DateTime,
    Engine,
    Float,
    Index,
    Select,
    String,
    Text,
    TypeDecorator,
    create_engine,
    event,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from watchrate._errors import StorageError
from watchrate._record import MeasurementRecord, RecordKind

logger = logging.getLogger(__name__)


@runtime_checkable
class MeasurementStorePort(Protocol):
    """Query surface the measurement engine needs from persistence."""

    def insert(self, record: MeasurementRecord) -> MeasurementRecord:
        """Persist *record* and return it with its ``record_id`` set."""
        ...

    def latest_sync_before(
        self, watch_name: str, timestamp: datetime
    ) -> MeasurementRecord | None:
        """Most recent sync for *watch_name* with timestamp ≤ *timestamp*."""
        ...

    def latest_sync(self, watch_name: str) -> MeasurementRecord | None:
        """Most recent sync for *watch_name* regardless of time."""
        ...

    def history(self, watch_name: str) -> list[MeasurementRecord]:
        """All records for *watch_name* in timestamp order."""
        ...

    def watch_names(self) -> list[str]:
        """Distinct watch names, sorted."""
        ...

    def atomic(self) -> AbstractContextManager[MeasurementStorePort]:
        """Context manager grouping reads and writes into one transaction."""
        ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class UtcDateTime(TypeDecorator[datetime]):
    """DateTime column that stores naive UTC and returns aware UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


class Base(DeclarativeBase):
    pass


class RecordRow(Base):
    """ORM row for one entry of the append-only log."""

    __tablename__ = "measurement_records"
    __table_args__ = (Index("ix_measurement_records_watch_ts", "watch_name", "timestamp"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    watch_name: Mapped[str] = mapped_column(String(200), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    computed_rate: Mapped[float | None] = mapped_column(Float, nullable=True)

    def to_record(self) -> MeasurementRecord:
        return MeasurementRecord(
            watch_name=self.watch_name,
            timestamp=self.timestamp,
            kind=RecordKind(self.kind),
            comment=self.comment,
            computed_rate=self.computed_rate,
            record_id=self.id,
        )

    def __repr__(self) -> str:
        return f"<RecordRow(id={self.id}, watch={self.watch_name!r}, kind={self.kind})>"


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


def _begin_immediate_on_sqlite(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers ``BEGIN`` until the first write, so the lookup in a
    measure would run unlocked.  Disabling the driver's own ``BEGIN``
    and emitting ``BEGIN IMMEDIATE`` from the ``begin`` event holds the
    database's RESERVED lock from the first statement to the commit.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for *url* and make sure the schema exists.

    On SQLite every transaction begins with ``BEGIN IMMEDIATE``, so
    concurrent writers queue behind an open :meth:`SqlMeasurementStore.atomic`
    block (for up to the driver's busy timeout, ``?timeout=`` in the URL).

    Raises:
        StorageError: If the database cannot be reached or initialised.
    """
    try:
        engine = create_engine(url, echo=echo)
        if engine.dialect.name == "sqlite":
            _begin_immediate_on_sqlite(engine)
        Base.metadata.create_all(engine)
    except SQLAlchemyError as exc:
        raise StorageError(f"Cannot open measurement store at {url!r}: {exc}") from exc
    logger.debug("Measurement store ready at %s", engine.url.render_as_string(hide_password=True))
    return engine


class SqlMeasurementStore:
    """SQLAlchemy-backed :class:`MeasurementStorePort`.

    Each call runs in its own short transaction unless the store was
    obtained from :meth:`atomic`, in which case every call shares the
    enclosing session and commits (or rolls back) together.  On SQLite
    an :meth:`atomic` block holds the write lock from its first lookup,
    so no other writer can add a sync before the measurement commits.
    Other backends lock the sync rows read inside the block
    (``SELECT ... FOR UPDATE``).

    Usage::

        store = SqlMeasurementStore(create_store_engine("sqlite:///watchrate.db"))
        with store.atomic() as tx:
            sync = tx.latest_sync_before("seamaster", now)
            tx.insert(...)
    """

    def __init__(self, engine: Engine, *, session: Session | None = None) -> None:
        self._engine = engine
        self._session = session

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False) -> SqlMeasurementStore:
        return cls(create_store_engine(url, echo=echo))

    @contextmanager
    def _scope(self) -> Iterator[Session]:
        if self._session is not None:
            yield self._session
            return
        try:
            with Session(self._engine) as session, session.begin():
                yield session
        except SQLAlchemyError as exc:
            raise StorageError(f"Measurement store failure: {exc}") from exc

    @contextmanager
    def atomic(self) -> Iterator[SqlMeasurementStore]:
        if self._session is not None:
            yield self
            return
        try:
            with Session(self._engine) as session, session.begin():
                yield SqlMeasurementStore(self._engine, session=session)
        except SQLAlchemyError as exc:
            raise StorageError(f"Measurement store transaction failed: {exc}") from exc

    def insert(self, record: MeasurementRecord) -> MeasurementRecord:
        row = RecordRow(
            watch_name=record.watch_name,
            timestamp=record.timestamp,
            kind=record.kind.value,
            comment=record.comment,
            computed_rate=record.computed_rate,
        )
        try:
            with self._scope() as session:
                session.add(row)
                session.flush()
                stored = record.with_id(row.id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to insert {record.kind.value} record: {exc}") from exc
        logger.debug("Inserted %s record id=%d", stored.kind.value, stored.record_id)
        return stored

    def latest_sync_before(
        self, watch_name: str, timestamp: datetime
    ) -> MeasurementRecord | None:
        stmt = (
            select(RecordRow)
            .where(RecordRow.watch_name == watch_name)
            .where(RecordRow.kind == RecordKind.SYNC.value)
            .where(RecordRow.timestamp <= timestamp)
            .order_by(RecordRow.timestamp.desc(), RecordRow.id.desc())
            .limit(1)
        )
        return self._first(stmt)

    def latest_sync(self, watch_name: str) -> MeasurementRecord | None:
        stmt = (
            select(RecordRow)
            .where(RecordRow.watch_name == watch_name)
            .where(RecordRow.kind == RecordKind.SYNC.value)
            .order_by(RecordRow.timestamp.desc(), RecordRow.id.desc())
            .limit(1)
        )
        return self._first(stmt)

    def history(self, watch_name: str) -> list[MeasurementRecord]:
        stmt = (
            select(RecordRow)
            .where(RecordRow.watch_name == watch_name)
            .order_by(RecordRow.timestamp, RecordRow.id)
        )
        try:
            with self._scope() as session:
                return [row.to_record() for row in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read history for {watch_name!r}: {exc}") from exc

    def watch_names(self) -> list[str]:
        stmt = select(RecordRow.watch_name).distinct().order_by(RecordRow.watch_name)
        try:
            with self._scope() as session:
                return list(session.scalars(stmt))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to list watches: {exc}") from exc

    def _first(self, stmt: Select[tuple[RecordRow]]) -> MeasurementRecord | None:
        if self._session is not None:
            # row lock for backends with FOR UPDATE; SQLite relies on BEGIN IMMEDIATE
            stmt = stmt.with_for_update()
        try:
            with self._scope() as session:
                row = session.scalars(stmt).first()
                return row.to_record() if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Measurement store query failed: {exc}") from exc
