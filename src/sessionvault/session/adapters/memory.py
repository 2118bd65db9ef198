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
"""In-memory session backend with connection-scoped named locks."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from sessionvault.kernel.exceptions import ReplicaIdentityException, StoreConnectivityException
from sessionvault.session.record import SessionRecord


class InMemoryLockRegistry:
    """Named locks shared by every connection to one in-memory database.

    A lock belongs to the connection that took it. Asking again on the same
    connection succeeds, like MySQL's ``GET_LOCK``.
    """

    def __init__(self) -> None:
        self._owners: dict[str, object] = {}
        self._cond = asyncio.Condition()

    def owner_of(self, name: str) -> object | None:
        return self._owners.get(name)

    async def acquire(self, name: str, owner: object, timeout: float) -> bool:
        async with self._cond:
            try:
                async with asyncio.timeout(timeout):
                    await self._cond.wait_for(lambda: self._owners.get(name) in (None, owner))
            except TimeoutError:
                return False
            self._owners[name] = owner
            return True

    async def release(self, name: str, owner: object) -> bool:
        async with self._cond:
            if self._owners.get(name) is not owner:
                return False
            del self._owners[name]
            self._cond.notify_all()
            return True

    async def release_all(self, owner: object) -> None:
        async with self._cond:
            for name in [n for n, o in self._owners.items() if o is owner]:
                del self._owners[name]
            self._cond.notify_all()


class InMemorySessionDatabase:
    """Shared state standing in for one database server.

    Suitable for development, testing, and single-process applications.
    ``server_id`` plays the role of the replica identity; ``None`` makes the
    identity query fail.
    """

    def __init__(self, server_id: int | None = 1) -> None:
        self.rows: dict[bytes, SessionRecord] = {}
        self.locks = InMemoryLockRegistry()
        self.server_id = server_id

    def connect(self) -> InMemorySessionBackend:
        return InMemorySessionBackend(self)


class InMemorySessionBackend:
    """One connection to an :class:`InMemorySessionDatabase`."""

    def __init__(self, database: InMemorySessionDatabase | None = None) -> None:
        self._db = database or InMemorySessionDatabase()
        self._connected = True

    @property
    def database(self) -> InMemorySessionDatabase:
        return self._db

    def _check(self) -> None:
        if not self._connected:
            raise StoreConnectivityException("In-memory connection is closed", code="STORE_DISCONNECTED")

    async def disconnect(self) -> None:
        """Drop the connection; locks it held are freed, later calls fail."""
        self._connected = False
        await self._db.locks.release_all(self)

    async def get_row(self, id: bytes) -> SessionRecord | None:
        self._check()
        return self._db.rows.get(id)

    async def insert_row(self, record: SessionRecord) -> None:
        self._check()
        self._db.rows[record.id] = record

    async def update_row(self, id: bytes, *, timestamp: int, data: bytes | None = None) -> None:
        self._check()
        row = self._db.rows.get(id)
        if row is None:
            return
        if data is None:
            self._db.rows[id] = replace(row, timestamp=timestamp)
        else:
            self._db.rows[id] = replace(row, timestamp=timestamp, data=data)

    async def delete_row(self, id: bytes) -> int:
        self._check()
        return 1 if self._db.rows.pop(id, None) is not None else 0

    async def delete_expired(self, cutoff: float) -> int:
        self._check()
        expired = [k for k, row in self._db.rows.items() if row.timestamp < cutoff]
        for key in expired:
            del self._db.rows[key]
        return len(expired)

    async def try_acquire_lock(self, name: str, timeout: float) -> bool:
        self._check()
        return await self._db.locks.acquire(name, self, timeout)

    async def release_lock(self, name: str) -> bool:
        self._check()
        return await self._db.locks.release(name, self)

    async def server_id(self) -> int:
        self._check()
        if self._db.server_id is None:
            raise ReplicaIdentityException("Server id is not available", code="REPLICA_IDENTITY")
        return self._db.server_id
