# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""SQLAlchemy-backed session store.

Rows live in one table ``(id BINARY(32) PK, timestamp INT, data BLOB)``.
Advisory locks and the replica identity come from the database server
itself, so the dialect decides how they are obtained:

- MySQL / MariaDB: ``GET_LOCK`` / ``RELEASE_LOCK`` and ``@@server_id``.
- PostgreSQL: session-level ``pg_try_advisory_lock`` on a 64-bit hash of the
  lock name, and the ``sessionvault.server_id`` setting for the replica id.

Both lock flavours belong to the database session, so they are freed when
the connection drops. The backend therefore needs its own connection, held
for the whole session lifecycle.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Protocol

import structlog
from sqlalchemy import Column, Integer, LargeBinary, MetaData, Table, delete, insert, select, text, update
from sqlalchemy.dialects import mysql
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from sessionvault.config.properties import SessionProperties
from sessionvault.core.config import Config
from sessionvault.kernel.exceptions import (
    InfrastructureException,
    ReplicaIdentityException,
    StoreConnectivityException,
    UnsupportedBackendException,
)
from sessionvault.session.hashing import DIGEST_SIZE
from sessionvault.session.record import SessionRecord

logger = structlog.get_logger(__name__)


def session_table(name: str = "sessions", metadata: MetaData | None = None) -> Table:
    """Describe the session table; schema creation is left to the caller."""
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column(
            "id",
            LargeBinary(DIGEST_SIZE).with_variant(mysql.BINARY(DIGEST_SIZE), "mysql", "mariadb"),
            primary_key=True,
        ),
        Column("timestamp", Integer, nullable=False, index=True),
        Column("data", LargeBinary().with_variant(mysql.MEDIUMBLOB(), "mysql", "mariadb"), nullable=False),
    )


def create_engine(props: SessionProperties) -> AsyncEngine:
    """Build the async engine for ``sessionvault.session.url``."""
    if not props.url:
        raise StoreConnectivityException(
            "No session store configured; set sessionvault.session.url",
            code="STORE_URL_MISSING",
        )
    return create_async_engine(props.url, pool_pre_ping=True)


# =============================================================================
# Lock dialects
# =============================================================================


class LockDialect(Protocol):
    #: ``True`` when ``try_acquire`` itself waits up to *timeout* for a busy lock.
    waits_for_timeout: bool

    async def try_acquire(self, conn: AsyncConnection, name: str, timeout: float) -> bool: ...

    async def release(self, conn: AsyncConnection, name: str) -> bool: ...

    async def server_id(self, conn: AsyncConnection) -> Any: ...


class MySqlLockDialect:
    """``GET_LOCK`` waits server-side for up to *timeout* seconds per attempt.

    It answers 1 (granted), 0 (busy) or NULL (error, e.g. the thread was killed).
    """

    waits_for_timeout = True

    async def try_acquire(self, conn: AsyncConnection, name: str, timeout: float) -> bool:
        result = await conn.execute(text("SELECT GET_LOCK(:name, :timeout)"), {"name": name, "timeout": timeout})
        granted = result.scalar()
        if granted is None:
            raise StoreConnectivityException(
                "GET_LOCK returned NULL", code="LOCK_ERROR", context={"lock": name[:12]}
            )
        return granted == 1

    async def release(self, conn: AsyncConnection, name: str) -> bool:
        result = await conn.execute(text("SELECT RELEASE_LOCK(:name)"), {"name": name})
        return result.scalar() == 1

    async def server_id(self, conn: AsyncConnection) -> Any:
        result = await conn.execute(text("SELECT @@server_id"))
        return result.scalar()


class PostgresLockDialect:
    """``pg_try_advisory_lock`` answers at once; the backend does the waiting."""

    waits_for_timeout = False

    async def try_acquire(self, conn: AsyncConnection, name: str, timeout: float) -> bool:
        result = await conn.execute(text("SELECT pg_try_advisory_lock(hashtextextended(:name, 0))"), {"name": name})
        return bool(result.scalar())

    async def release(self, conn: AsyncConnection, name: str) -> bool:
        result = await conn.execute(text("SELECT pg_advisory_unlock(hashtextextended(:name, 0))"), {"name": name})
        return bool(result.scalar())

    async def server_id(self, conn: AsyncConnection) -> Any:
        result = await conn.execute(text("SELECT current_setting('sessionvault.server_id', true)"))
        value = result.scalar()
        return int(value) if value not in (None, "") and str(value).isdigit() else value


class UnsupportedLockDialect:
    """Placeholder for dialects without named locks; rows still work."""

    waits_for_timeout = True

    def __init__(self, dialect_name: str) -> None:
        self._dialect_name = dialect_name

    def _fail(self) -> UnsupportedBackendException:
        return UnsupportedBackendException(
            f"Dialect '{self._dialect_name}' has no advisory-lock primitive",
            code="UNSUPPORTED_DIALECT",
            context={"dialect": self._dialect_name},
        )

    async def try_acquire(self, conn: AsyncConnection, name: str, timeout: float) -> bool:
        raise self._fail()

    async def release(self, conn: AsyncConnection, name: str) -> bool:
        raise self._fail()

    async def server_id(self, conn: AsyncConnection) -> Any:
        raise self._fail()


def lock_dialect_for(dialect_name: str) -> LockDialect:
    if dialect_name in ("mysql", "mariadb"):
        return MySqlLockDialect()
    if dialect_name == "postgresql":
        return PostgresLockDialect()
    return UnsupportedLockDialect(dialect_name)


# =============================================================================
# Backend
# =============================================================================


class SqlAlchemySessionBackend:
    """Session backend over a single ``AsyncConnection``.

    Each call runs in its own short transaction, so every row mutation
    commits on its own. Server-level named locks outlive those commits.
    """

    def __init__(
        self,
        connection: AsyncConnection,
        table: Table,
        *,
        lock_dialect: LockDialect | None = None,
    ) -> None:
        self._conn = connection
        self._table = table
        self._locks = lock_dialect or lock_dialect_for(connection.dialect.name)

    @classmethod
    @asynccontextmanager
    async def connect(cls, engine: AsyncEngine, table_name: str = "sessions") -> AsyncIterator[SqlAlchemySessionBackend]:
        """Open a dedicated connection for one session lifecycle."""
        try:
            conn = await engine.connect()
        except DBAPIError as exc:
            raise StoreConnectivityException(
                "Cannot connect to the session store", code="STORE_UNREACHABLE"
            ) from exc
        try:
            yield cls(conn, session_table(table_name))
        finally:
            await conn.close()

    @property
    def table(self) -> Table:
        return self._table

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncConnection]:
        try:
            async with self._conn.begin():
                yield self._conn
        except (OperationalError, InterfaceError) as exc:
            raise StoreConnectivityException(
                f"Session store unreachable during {operation}",
                code="STORE_UNREACHABLE",
                context={"operation": operation},
            ) from exc
        except DBAPIError as exc:
            raise InfrastructureException(
                f"Session store rejected {operation}: {exc.orig}",
                code="STORE_ERROR",
                context={"operation": operation},
            ) from exc

    async def get_row(self, id: bytes) -> SessionRecord | None:
        t = self._table
        async with self._transaction("get_row") as conn:
            result = await conn.execute(select(t.c.id, t.c.timestamp, t.c.data).where(t.c.id == id))
            row = result.first()
        if row is None:
            return None
        return SessionRecord(id=bytes(row.id), timestamp=int(row.timestamp), data=bytes(row.data))

    async def insert_row(self, record: SessionRecord) -> None:
        async with self._transaction("insert_row") as conn:
            await conn.execute(
                insert(self._table).values(id=record.id, timestamp=record.timestamp, data=record.data)
            )

    async def update_row(self, id: bytes, *, timestamp: int, data: bytes | None = None) -> None:
        values: dict[str, Any] = {"timestamp": timestamp}
        if data is not None:
            values["data"] = data
        async with self._transaction("update_row") as conn:
            await conn.execute(update(self._table).where(self._table.c.id == id).values(**values))

    async def delete_row(self, id: bytes) -> int:
        async with self._transaction("delete_row") as conn:
            result = await conn.execute(delete(self._table).where(self._table.c.id == id))
        return result.rowcount

    async def delete_expired(self, cutoff: float) -> int:
        async with self._transaction("delete_expired") as conn:
            result = await conn.execute(delete(self._table).where(self._table.c.timestamp < cutoff))
        return result.rowcount

    async def try_acquire_lock(self, name: str, timeout: float) -> bool:
        async with self._transaction("try_acquire_lock") as conn:
            acquired = await self._locks.try_acquire(conn, name, timeout)
        if not acquired and not self._locks.waits_for_timeout:
            await asyncio.sleep(timeout)
        return acquired

    async def release_lock(self, name: str) -> bool:
        async with self._transaction("release_lock") as conn:
            return await self._locks.release(conn, name)

    async def server_id(self) -> int:
        async with self._transaction("server_id") as conn:
            value = await self._locks.server_id(conn)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ReplicaIdentityException(
                f"Session store returned no usable server id: {value!r}",
                code="REPLICA_IDENTITY",
            )
        return value


@asynccontextmanager
async def create_backend(config: Config) -> AsyncIterator[SqlAlchemySessionBackend]:
    """Engine plus one dedicated connection built from ``sessionvault.session``.

    The engine is disposed when the block exits::

        async with create_backend(Config.from_file("sessionvault.yaml")) as backend:
            handler = DatabaseSessionHandler(backend)
    """
    props = config.bind(SessionProperties)
    engine = create_engine(props)
    try:
        async with SqlAlchemySessionBackend.connect(engine, props.table_name) as backend:
            yield backend
    finally:
        await engine.dispose()
