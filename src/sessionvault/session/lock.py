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
"""AdvisoryLock — per-session mutex granted by the backing store."""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from sessionvault.kernel.exceptions import LockTimeoutException
from sessionvault.session.ports.outbound import SessionBackend

logger = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL = 1.0


class AdvisoryLock:
    """Holds at most one named lock on a backend connection.

    ``acquire`` asks the backend for the lock with a short per-attempt wait
    and tries again for as long as the answer is "busy". Errors raised by the
    backend (``StoreConnectivityException``) end the loop immediately.

    Every attempt is an ``await``, so cancelling the surrounding task stops
    the wait. An optional *deadline* (seconds, measured with *clock*) turns a
    lock that stays busy into :class:`LockTimeoutException`.
    """

    def __init__(
        self,
        backend: SessionBackend,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._backend = backend
        self._poll_interval = poll_interval
        self._deadline = deadline
        self._clock = clock
        self._name: str | None = None

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def held(self) -> bool:
        return self._name is not None

    async def acquire(self, lock_name: str) -> None:
        """Block until *lock_name* is granted. No-op while a lock is already held."""
        if self._name is not None:
            return

        started = self._clock()
        attempts = 0
        while True:
            attempts += 1
            if await self._backend.try_acquire_lock(lock_name, self._poll_interval):
                break

            waited = self._clock() - started
            if self._deadline is not None and waited >= self._deadline:
                raise LockTimeoutException(
                    f"Advisory lock '{lock_name[:12]}…' still busy after {waited:.1f}s",
                    code="LOCK_TIMEOUT",
                    context={"lock": lock_name, "attempts": attempts, "waited": waited},
                )
            logger.debug("session_lock_busy", lock=lock_name[:12], attempts=attempts)

        self._name = lock_name
        logger.debug(
            "session_lock_acquired",
            lock=lock_name[:12],
            attempts=attempts,
            waited=round(self._clock() - started, 3),
        )

    async def release(self) -> None:
        """Free the held lock. No-op when nothing is held."""
        if self._name is None:
            return

        name, self._name = self._name, None
        released = await self._backend.release_lock(name)
        if not released:
            logger.warning("session_lock_not_owned", lock=name[:12])
        else:
            logger.debug("session_lock_released", lock=name[:12])
