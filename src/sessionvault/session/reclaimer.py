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
"""ReplicaSkewedReclaimer — garbage collection of expired session rows.

Several replicas of a multi-writer (master-master) store may each run their
own collection pass. If they all used the same cutoff, one replica could
delete a row whose fresh update has not replicated to it yet, and that
delete would then replicate back and destroy the live session.

Each replica with a small id therefore pushes its cutoff further into the
past: server 1 uses the plain cutoff, server ``r`` with ``1 < r < 10``
subtracts ``(r - 1) * max(86400, max_lifetime / 10)`` seconds. This narrows
the race without closing it.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from sessionvault.kernel.exceptions import InvalidRequestException, ReplicaIdentityException
from sessionvault.session.ports.outbound import SessionBackend

logger = structlog.get_logger(__name__)

MIN_REPLICA_SKEW = 86400  # one day
_SKEWED_SERVER_IDS = range(2, 10)


def offset_for(server_id: int, max_lifetime: float) -> float:
    """Seconds a replica subtracts from its reclamation cutoff."""
    if server_id not in _SKEWED_SERVER_IDS:
        return 0
    return (server_id - 1) * max(MIN_REPLICA_SKEW, max_lifetime / 10)


@dataclass(frozen=True)
class CollectionResult:
    """Outcome of one reclamation pass."""

    server_id: int
    cutoff: float
    offset: float
    deleted: int


class ReplicaSkewedReclaimer:
    """Deletes rows whose timestamp falls behind the replica-adjusted cutoff.

    Takes no session lock. A pass may remove a row another process is still
    using, which only happens to sessions that have already expired.
    """

    def __init__(self, backend: SessionBackend, *, clock: Callable[[], float] = time.time) -> None:
        self._backend = backend
        self._clock = clock

    async def collect(self, max_lifetime: int) -> CollectionResult:
        if max_lifetime < 0:
            raise InvalidRequestException(
                f"max_lifetime must not be negative, got {max_lifetime}",
                code="INVALID_LIFETIME",
                context={"max_lifetime": max_lifetime},
            )

        cutoff = int(self._clock()) - max_lifetime
        server_id = await self._backend.server_id()
        if isinstance(server_id, bool) or not isinstance(server_id, int):
            raise ReplicaIdentityException(
                f"Backing store reported a non-integer server id: {server_id!r}",
                code="REPLICA_IDENTITY",
            )

        offset = offset_for(server_id, max_lifetime)
        cutoff -= offset
        deleted = await self._backend.delete_expired(cutoff)

        logger.info(
            "sessions_collected",
            server_id=server_id,
            max_lifetime=max_lifetime,
            cutoff=cutoff,
            offset=offset,
            deleted=deleted,
        )
        return CollectionResult(server_id=server_id, cutoff=cutoff, offset=offset, deleted=deleted)
