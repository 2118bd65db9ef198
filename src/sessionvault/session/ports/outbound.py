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
"""Session backend protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sessionvault.session.record import SessionRecord


@runtime_checkable
class SessionBackend(Protocol):
    """Abstract backing store for session rows and named advisory locks.

    One backend instance stands for one connection to the store and is owned
    by a single session lifecycle at a time. Locks are scoped to that
    connection: when it drops, the store frees them.

    Implementations raise ``StoreConnectivityException`` when the store is
    unreachable. A missing row is reported as ``None`` or a zero count.
    """

    async def get_row(self, id: bytes) -> SessionRecord | None: ...

    async def insert_row(self, record: SessionRecord) -> None: ...

    async def update_row(self, id: bytes, *, timestamp: int, data: bytes | None = None) -> None: ...

    async def delete_row(self, id: bytes) -> int: ...

    async def delete_expired(self, cutoff: float) -> int: ...

    async def try_acquire_lock(self, name: str, timeout: float) -> bool: ...

    async def release_lock(self, name: str) -> bool: ...

    async def server_id(self) -> int: ...
