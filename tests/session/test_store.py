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
"""Tests for SessionStore — read/write/destroy and write amortization."""

from __future__ import annotations

import pytest

from sessionvault.session.adapters.memory import InMemorySessionDatabase
from sessionvault.session.hashing import IdentifierHasher
from sessionvault.session.store import TOUCH_THRESHOLD, SessionStore, WriteOutcome


class FakeClock:
    def __init__(self, now: int = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def database() -> InMemorySessionDatabase:
    return InMemorySessionDatabase()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(database: InMemorySessionDatabase, clock: FakeClock) -> SessionStore:
    return SessionStore(database.connect(), clock=clock)


@pytest.fixture
def key() -> bytes:
    return IdentifierHasher().digest("abc")


class TestRead:
    @pytest.mark.asyncio
    async def test_missing_session_reads_empty(self, store: SessionStore, key: bytes):
        assert await store.read(key) == b""

    @pytest.mark.asyncio
    async def test_round_trip(self, store: SessionStore, key: bytes):
        await store.write(key, b"hello")
        assert await store.read(key) == b"hello"

    @pytest.mark.asyncio
    async def test_data_returned_byte_for_byte(self, store: SessionStore, key: bytes):
        payload = bytes(range(256)) + b"\x00\x00"
        await store.write(key, payload)
        assert await store.read(key) == payload


class TestWrite:
    @pytest.mark.asyncio
    async def test_first_write_inserts_row(self, store, database, clock, key):
        outcome = await store.write(key, b"hello")

        assert outcome is WriteOutcome.INSERTED
        assert len(database.rows) == 1
        row = database.rows[key]
        assert row.timestamp == clock.now
        assert row.data == b"hello"

    @pytest.mark.asyncio
    async def test_changed_data_updates_both_fields_immediately(self, store, database, clock, key):
        await store.write(key, b"hello")
        clock.advance(1)

        outcome = await store.write(key, b"world")

        assert outcome is WriteOutcome.UPDATED
        assert database.rows[key].data == b"world"
        assert database.rows[key].timestamp == clock.now

    @pytest.mark.asyncio
    async def test_unchanged_data_within_threshold_is_skipped(self, store, database, clock, key):
        await store.write(key, b"hello")
        written_at = clock.now
        clock.advance(299)

        outcome = await store.write(key, b"hello")

        assert outcome is WriteOutcome.SKIPPED
        assert database.rows[key].timestamp == written_at
        assert await store.read(key) == b"hello"

    @pytest.mark.asyncio
    async def test_unchanged_data_at_exact_threshold_is_skipped(self, store, database, clock, key):
        await store.write(key, b"hello")
        written_at = clock.now
        clock.advance(TOUCH_THRESHOLD)

        assert await store.write(key, b"hello") is WriteOutcome.SKIPPED
        assert database.rows[key].timestamp == written_at

    @pytest.mark.asyncio
    async def test_unchanged_data_past_threshold_touches_timestamp(self, store, database, clock, key):
        await store.write(key, b"hello")
        clock.advance(TOUCH_THRESHOLD + 1)

        outcome = await store.write(key, b"hello")

        assert outcome is WriteOutcome.TOUCHED
        assert database.rows[key].timestamp == clock.now
        assert database.rows[key].data == b"hello"

    @pytest.mark.asyncio
    async def test_custom_touch_threshold(self, database, clock, key):
        store = SessionStore(database.connect(), touch_threshold=10, clock=clock)
        await store.write(key, b"hello")
        clock.advance(11)

        assert await store.write(key, b"hello") is WriteOutcome.TOUCHED

    @pytest.mark.asyncio
    async def test_skip_performs_no_backend_mutation(self, database, clock, key):
        from unittest.mock import AsyncMock

        backend = database.connect()
        store = SessionStore(backend, clock=clock)
        await store.write(key, b"hello")

        backend.update_row = AsyncMock()
        backend.insert_row = AsyncMock()
        await store.write(key, b"hello")

        backend.update_row.assert_not_awaited()
        backend.insert_row.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_touch_does_not_send_data(self, database, clock, key):
        from unittest.mock import AsyncMock

        backend = database.connect()
        store = SessionStore(backend, clock=clock)
        await store.write(key, b"hello")
        clock.advance(301)

        backend.update_row = AsyncMock()
        await store.write(key, b"hello")

        backend.update_row.assert_awaited_once_with(key, timestamp=clock.now)


class TestDestroy:
    @pytest.mark.asyncio
    async def test_destroy_removes_row(self, store, database, key):
        await store.write(key, b"hello")
        await store.destroy(key)

        assert key not in database.rows
        assert await store.read(key) == b""

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self, store, key):
        await store.destroy(key)
        await store.destroy(key)

    @pytest.mark.asyncio
    async def test_write_after_destroy_inserts_again(self, store, key):
        await store.write(key, b"hello")
        await store.destroy(key)

        assert await store.write(key, b"again") is WriteOutcome.INSERTED
