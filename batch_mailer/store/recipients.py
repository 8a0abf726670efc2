"""
SQLAlchemy model and operations for the pending-recipient pool.

Each row is one addressee. ``delivered`` flips from false to true once a
message has gone out and been recorded; nothing in this package ever
flips it back.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    create_engine,
    func,
    select,
    text,
    update,
)
from sqlalchemy.engine import Engine, URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from batch_mailer.errors import StorageQueryError, StorageUnavailable

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Recipient(Base):
    """A single addressee and its delivery state."""

    __tablename__ = "recipients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(320), nullable=False)
    delivered = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Recipient(id={self.id}, email='{self.email}', "
            f"delivered={self.delivered})>"
        )


@dataclass(frozen=True)
class PendingRecipient:
    """Read projection of a recipient that has not been delivered yet."""

    id: int
    email: str


@dataclass(frozen=True)
class RecipientState:
    """Snapshot of one row's delivery state, for inspection and tests."""

    id: int
    email: str
    delivered: bool
    updated_at: Optional[datetime]


@dataclass
class PoolSettings:
    """Connection pool sizing; ignored for in-memory SQLite."""

    pool_size: int = 5
    max_overflow: int = 5
    pool_recycle_seconds: int = 60


class RecipientStore:
    """
    Persistence interface for the recipient pool.

    Usage:
        store = RecipientStore("sqlite:///batch_mailer.db")
        store.create_tables()
        store.add_recipients(["a@example.com", "b@example.com"])
        pending = store.select_pending(limit=50)
        store.mark_delivered(pending[0].id, timeout=5.0)
    """

    def __init__(
        self,
        db_url: str = "sqlite:///batch_mailer.db",
        pool: Optional[PoolSettings] = None,
    ) -> None:
        self.url = make_url(db_url)
        self.backend = self.url.get_backend_name()
        self._engine_kwargs: dict = {"echo": False, "pool_pre_ping": True}
        if not _is_memory_sqlite(self.url):
            pool = pool or PoolSettings()
            self._engine_kwargs.update(
                pool_size=pool.pool_size,
                max_overflow=pool.max_overflow,
                pool_recycle=pool.pool_recycle_seconds,
            )
        self.engine = create_engine(self.url, **self._engine_kwargs)
        self.SessionFactory = sessionmaker(bind=self.engine)
        self._write_engines: dict[float, Engine] = {}
        self._write_lock = threading.Lock()

    def _session(self) -> Session:
        return self.SessionFactory()

    def _connect(self, session: Session) -> None:
        try:
            session.connection()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Recipient store unreachable: {exc}") from exc

    def write_engine(self, timeout: float) -> Engine:
        """
        Engine for single-row writes whose pool checkout and connect are
        both bounded by *timeout*.

        In-memory SQLite lives in one connection, so it shares the main
        engine.
        """
        if _is_memory_sqlite(self.url):
            return self.engine
        with self._write_lock:
            engine = self._write_engines.get(timeout)
            if engine is None:
                engine = create_engine(
                    self.url,
                    pool_timeout=timeout,
                    connect_args=_connect_timeout_args(self.backend, timeout),
                    **self._engine_kwargs,
                )
                self._write_engines[timeout] = engine
            return engine

    def _apply_timeout(self, session: Session, timeout: float) -> None:
        millis = max(int(timeout * 1000), 1)
        if self.backend == "postgresql":
            session.execute(text(f"SET LOCAL statement_timeout = {millis}"))
        elif self.backend == "sqlite":
            session.execute(text(f"PRAGMA busy_timeout = {millis}"))

    # ---- Lifecycle ----

    def create_tables(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Could not create tables: {exc}") from exc

    def ping(self) -> None:
        """Raise StorageUnavailable unless a round trip to the store succeeds."""
        with self._session() as session:
            self._connect(session)
            try:
                session.execute(text("SELECT 1"))
            except SQLAlchemyError as exc:
                raise StorageUnavailable(f"Recipient store ping failed: {exc}") from exc

    def close(self) -> None:
        with self._write_lock:
            for engine in self._write_engines.values():
                engine.dispose()
            self._write_engines.clear()
        self.engine.dispose()

    # ---- Create ----

    def add_recipients(self, emails: Iterable[str]) -> int:
        with self._session() as session:
            self._connect(session)
            rows = [Recipient(email=email) for email in emails]
            try:
                session.add_all(rows)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageQueryError(f"Could not add recipients: {exc}") from exc
        logger.info("Added %d pending recipients", len(rows))
        return len(rows)

    # ---- Read ----

    def select_pending(self, limit: int) -> list[PendingRecipient]:
        """Return up to *limit* undelivered recipients, lowest id first."""
        with self._session() as session:
            self._connect(session)
            try:
                rows = session.execute(
                    select(Recipient.id, Recipient.email)
                    .where(Recipient.delivered.is_(False))
                    .order_by(Recipient.id)
                    .limit(max(limit, 0))
                ).all()
            except SQLAlchemyError as exc:
                raise StorageQueryError(f"Could not select pending recipients: {exc}") from exc
        return [PendingRecipient(id=row.id, email=row.email) for row in rows]

    def get_recipient(self, recipient_id: int) -> Optional[RecipientState]:
        """Current state of one recipient, or None. Not used on the delivery path."""
        with self._session() as session:
            row = session.get(Recipient, recipient_id)
            if row is None:
                return None
            return RecipientState(
                id=row.id, email=row.email, delivered=row.delivered, updated_at=row.updated_at
            )

    def get_stats(self) -> dict[str, int]:
        with self._session() as session:
            self._connect(session)
            try:
                total = session.query(Recipient).count()
                delivered = (
                    session.query(Recipient).filter(Recipient.delivered.is_(True)).count()
                )
            except SQLAlchemyError as exc:
                raise StorageQueryError(f"Could not count recipients: {exc}") from exc
            return {"total": total, "delivered": delivered, "pending": total - delivered}

    # ---- Update ----

    def mark_delivered(self, recipient_id: int, timeout: float = 5.0) -> bool:
        """
        Flip ``delivered`` for exactly one row.

        Returns False when no pending row matched, either because the id
        is unknown or because it was already delivered. *timeout* bounds
        the connection checkout and then the statement, each on its own.
        """
        with Session(bind=self.write_engine(timeout)) as session:
            self._connect(session)
            try:
                self._apply_timeout(session, timeout)
                result = session.execute(
                    update(Recipient)
                    .where(Recipient.id == recipient_id, Recipient.delivered.is_(False))
                    .values(delivered=True, updated_at=func.now())
                    .execution_options(synchronize_session=False)
                )
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageQueryError(
                    f"Could not update recipient {recipient_id}: {exc}"
                ) from exc
        return result.rowcount == 1


def _is_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _connect_timeout_args(backend: str, timeout: float) -> dict:
    if backend == "postgresql":
        return {"connect_timeout": max(math.ceil(timeout), 1)}
    if backend == "sqlite":
        return {"timeout": timeout}
    return {}
