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
"""DatabaseSessionHandler — one session lifecycle against a SessionBackend."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from sessionvault.config.properties import SessionProperties
from sessionvault.session.hashing import IdentifierHasher
from sessionvault.session.lock import DEFAULT_POLL_INTERVAL, AdvisoryLock
from sessionvault.session.ports.outbound import SessionBackend
from sessionvault.session.reclaimer import ReplicaSkewedReclaimer
from sessionvault.session.store import TOUCH_THRESHOLD, SessionStore


class DatabaseSessionHandler:
    """Implements the six-operation :class:`SessionHandler` contract.

    An instance owns one backend connection, one identifier-hash cache and
    at most one advisory lock, and serves one lifecycle at a time::

        handler = DatabaseSessionHandler(backend)
        async with handler.session(session_id):
            data = await handler.read(session_id)
            await handler.write(session_id, data + b"...")

    ``read`` and ``write`` take the lock themselves when ``open`` was not
    called first. The lock is named after the identifier passed to ``open``,
    or else the first one seen, and is released by ``close`` or ``destroy``.
    """

    def __init__(
        self,
        backend: SessionBackend,
        *,
        touch_threshold: int = TOUCH_THRESHOLD,
        lock_poll_interval: float = DEFAULT_POLL_INTERVAL,
        lock_deadline: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._hasher = IdentifierHasher()
        self._lock = AdvisoryLock(backend, poll_interval=lock_poll_interval, deadline=lock_deadline)
        self._store = SessionStore(backend, touch_threshold=touch_threshold, clock=lambda: int(clock()))
        self._reclaimer = ReplicaSkewedReclaimer(backend, clock=clock)
        self._active_id: str | bytes | None = None

    @classmethod
    def from_properties(cls, backend: SessionBackend, props: SessionProperties) -> DatabaseSessionHandler:
        return cls(
            backend,
            touch_threshold=props.touch_threshold,
            lock_poll_interval=props.lock_poll_interval,
            lock_deadline=props.lock_deadline or None,
        )

    @property
    def hasher(self) -> IdentifierHasher:
        return self._hasher

    @property
    def lock(self) -> AdvisoryLock:
        return self._lock

    @property
    def active_id(self) -> str | bytes | None:
        """Identifier the held lock is named after, ``None`` while unlocked."""
        return self._active_id

    async def _ensure_locked(self, session_id: str | bytes) -> None:
        if self._lock.held:
            return
        await self._lock.acquire(self._hasher.hexdigest(session_id))
        self._active_id = session_id

    async def open(self, session_id: str | bytes) -> bool:
        await self._ensure_locked(session_id)
        return True

    async def close(self) -> bool:
        try:
            await self._lock.release()
        finally:
            self._active_id = None
        return True

    async def read(self, session_id: str | bytes) -> bytes:
        await self._ensure_locked(session_id)
        return await self._store.read(self._hasher.digest(session_id))

    async def write(self, session_id: str | bytes, data: bytes) -> bool:
        await self._ensure_locked(session_id)
        await self._store.write(self._hasher.digest(session_id), data)
        return True

    async def destroy(self, session_id: str | bytes) -> bool:
        await self._store.destroy(self._hasher.digest(session_id))
        await self.close()
        return True

    async def collect(self, max_lifetime: int) -> int:
        """Reclaim expired sessions; returns the number of rows deleted."""
        result = await self._reclaimer.collect(max_lifetime)
        return result.deleted

    @asynccontextmanager
    async def session(self, session_id: str | bytes) -> AsyncIterator[DatabaseSessionHandler]:
        """``open`` on entry, ``close`` on exit, even when the body raises."""
        await self.open(session_id)
        try:
            yield self
        finally:
            await self.close()
