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
"""SessionStore — read/write/destroy of session rows keyed by digest."""

from __future__ import annotations

import enum
import time
from collections.abc import Callable

import structlog

from sessionvault.session.ports.outbound import SessionBackend
from sessionvault.session.record import SessionRecord

logger = structlog.get_logger(__name__)

TOUCH_THRESHOLD = 300  # seconds


def _now() -> int:
    return int(time.time())


class WriteOutcome(enum.Enum):
    """Which row mutation a write performed."""

    INSERTED = "INSERTED"
    UPDATED = "UPDATED"
    TOUCHED = "TOUCHED"
    SKIPPED = "SKIPPED"


class SessionStore:
    """CRUD over the session table with write amortization.

    Callers serialize access per key through the advisory lock; this class
    does no conflict detection of its own. Every write is at most one row
    mutation.
    """

    def __init__(
        self,
        backend: SessionBackend,
        *,
        touch_threshold: int = TOUCH_THRESHOLD,
        clock: Callable[[], int] = _now,
    ) -> None:
        self._backend = backend
        self._touch_threshold = touch_threshold
        self._clock = clock

    async def read(self, key: bytes) -> bytes:
        """Return the stored payload, or ``b""`` when no row exists."""
        row = await self._backend.get_row(key)
        return row.data if row is not None else b""

    async def write(self, key: bytes, data: bytes) -> WriteOutcome:
        """Insert, update, refresh or skip, depending on the stored row.

        Unchanged data only refreshes the timestamp once it is more than
        ``touch_threshold`` seconds old.
        """
        now = self._clock()
        row = await self._backend.get_row(key)

        if row is None:
            await self._backend.insert_row(SessionRecord(id=key, timestamp=now, data=data))
            outcome = WriteOutcome.INSERTED
        elif row.data != data:
            await self._backend.update_row(key, timestamp=now, data=data)
            outcome = WriteOutcome.UPDATED
        elif now - row.timestamp > self._touch_threshold:
            await self._backend.update_row(key, timestamp=now)
            outcome = WriteOutcome.TOUCHED
        else:
            outcome = WriteOutcome.SKIPPED

        logger.debug("session_write", key=key.hex()[:12], outcome=outcome.value, size=len(data))
        return outcome

    async def destroy(self, key: bytes) -> None:
        """Delete the row if present; a missing row is fine."""
        deleted = await self._backend.delete_row(key)
        logger.debug("session_destroyed", key=key.hex()[:12], deleted=deleted)
