"""
SQLAlchemy-backed scan store.
"""

from __future__ import annotations

import threading
import weakref
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Float, Integer, String, create_engine, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from avatarprobe.errors import StorageError
from avatarprobe.models import ProbeResult, ScanRecord, ScanStats
from avatarprobe.store.base import ScanStore

_DIALECT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class Base(DeclarativeBase):
    pass


class ScanRow(Base):
    __tablename__ = "scans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    country_code: Mapped[str] = mapped_column(String(16), nullable=False)
    probe_results: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    private_hits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    success_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    scan_duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )


def create_store_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine usable from worker threads."""
    if database_url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: ScanRow) -> ScanRecord:
    return ScanRecord(
        identifier=row.identifier,
        country_code=row.country_code,
        probe_results=[ProbeResult.model_validate(item) for item in row.probe_results or []],
        private_hits=row.private_hits,
        success_rate=row.success_rate,
        scan_duration=row.scan_duration,
        created_at=_as_utc(row.created_at),
    )


class SQLAlchemyScanStore(ScanStore):
    """
    Persist scan records in a single ``scans`` table with a unique identifier.

    Writes to the same identifier are serialised in-process; writes to
    different identifiers proceed independently. On SQLite and PostgreSQL
    the upsert is a single ON CONFLICT statement, so separate processes
    sharing one database do not collide on the unique identifier.
    """

    def __init__(self, *, engine: Engine, create_schema: bool = True) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine,
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
        # Entries vanish once no writer holds the lock.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()
        if create_schema:
            try:
                Base.metadata.create_all(engine)
            except SQLAlchemyError as exc:
                raise StorageError(f"cannot create scan schema: {exc}") from exc

    @classmethod
    def from_url(cls, database_url: str) -> SQLAlchemyScanStore:
        try:
            engine = create_store_engine(database_url)
        except SQLAlchemyError as exc:
            raise StorageError(f"invalid database URL {database_url!r}: {exc}") from exc
        return cls(engine=engine)

    def _lock_for(self, identifier: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(identifier)
            if lock is None:
                lock = threading.Lock()
                self._locks[identifier] = lock
            return lock

    def upsert(self, record: ScanRecord) -> None:
        values: dict[str, Any] = {
            "identifier": record.identifier,
            "country_code": record.country_code,
            "probe_results": [item.model_dump(mode="json") for item in record.probe_results],
            "private_hits": record.private_hits,
            "success_rate": record.success_rate,
            "scan_duration": record.scan_duration,
            "created_at": record.created_at,
        }
        insert = _DIALECT_INSERTS.get(self._engine.dialect.name)
        with self._lock_for(record.identifier), self._session_factory() as session:
            try:
                if insert is not None:
                    stmt = insert(ScanRow).values(**values)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[ScanRow.identifier],
                        set_={key: stmt.excluded[key] for key in values if key != "identifier"},
                    )
                    session.execute(stmt)
                else:
                    self._select_then_write(session, values)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError(f"cannot save scan {record.identifier}: {exc}") from exc

    @staticmethod
    def _select_then_write(session: Session, values: dict[str, Any]) -> None:
        # Only atomic within this process; other dialects lack ON CONFLICT.
        row = session.scalars(
            select(ScanRow).where(ScanRow.identifier == values["identifier"])
        ).one_or_none()
        if row is None:
            session.add(ScanRow(**values))
            return
        for key, value in values.items():
            setattr(row, key, value)

    def get(self, identifier: str) -> ScanRecord | None:
        try:
            with self._session_factory() as session:
                row = session.scalars(
                    select(ScanRow).where(ScanRow.identifier == identifier)
                ).one_or_none()
                return _to_record(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"cannot load scan {identifier}: {exc}") from exc

    def list_recent(self, limit: int = 100) -> list[ScanRecord]:
        stmt = (
            select(ScanRow)
            .order_by(ScanRow.created_at.desc(), ScanRow.id.desc())
            .limit(max(0, limit))
        )
        try:
            with self._session_factory() as session:
                return [_to_record(row) for row in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise StorageError(f"cannot list scans: {exc}") from exc

    def stats(self) -> ScanStats:
        stmt = select(
            func.count(ScanRow.id),
            func.coalesce(func.sum(ScanRow.private_hits), 0),
            func.coalesce(func.avg(ScanRow.success_rate), 0.0),
            func.count(func.distinct(ScanRow.identifier)),
        )
        try:
            with self._session_factory() as session:
                total, private_hits, avg_rate, unique = session.execute(stmt).one()
        except SQLAlchemyError as exc:
            raise StorageError(f"cannot compute scan stats: {exc}") from exc
        return ScanStats(
            total_scans=total,
            total_private_hits=int(private_hits),
            avg_success_rate=float(avg_rate),
            unique_identifiers=unique,
        )
