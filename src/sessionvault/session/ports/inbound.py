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
"""Session handler protocol — the six operations a hosting runtime calls."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SessionHandler(Protocol):
    """Pluggable session-handler contract.

    ``open`` acquires the per-session lock, ``close`` and ``destroy`` release
    it. ``collect`` reclaims expired sessions and takes no lock.
    """

    async def open(self, session_id: str | bytes) -> bool: ...

    async def close(self) -> bool: ...

    async def read(self, session_id: str | bytes) -> bytes: ...

    async def write(self, session_id: str | bytes, data: bytes) -> bool: ...

    async def destroy(self, session_id: str | bytes) -> bool: ...

    async def collect(self, max_lifetime: int) -> int: ...
