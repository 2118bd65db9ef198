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
"""Tests for ReplicaSkewedReclaimer — replica-staggered garbage collection."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from sessionvault.kernel.exceptions import (
    InvalidRequestException,
    ReplicaIdentityException,
    StoreConnectivityException,
)
from sessionvault.session.adapters.memory import InMemorySessionDatabase
from sessionvault.session.reclaimer import ReplicaSkewedReclaimer, offset_for
from sessionvault.session.record import SessionRecord

NOW = 1_000_000


def _seed(database: InMemorySessionDatabase, *timestamps: int) -> None:
    for i, ts in enumerate(timestamps):
        key = i.to_bytes(32, "big")
        database.rows[key] = SessionRecord(id=key, timestamp=ts, data=b"x")


def _surviving(database: InMemorySessionDatabase) -> list[int]:
    return sorted(row.timestamp for row in database.rows.values())


class TestOffset:
    @pytest.mark.parametrize("server_id", [-3, 0, 1, 10, 11, 1000])
    def test_outside_band_has_no_offset(self, server_id: int):
        assert offset_for(server_id, 3600) == 0

    def test_replica_two_skews_one_day(self):
        assert offset_for(2, 3600) == 86400

    def test_replica_five_example(self):
        assert offset_for(5, 3600) == 345600

    def test_replica_nine_is_last_in_band(self):
        assert offset_for(9, 3600) == 8 * 86400

    def test_long_lifetime_uses_tenth(self):
        # 30 days: a tenth (259200s) exceeds one day
        assert offset_for(2, 2_592_000) == 259200

    def test_fractional_tenth(self):
        assert offset_for(3, 864_005) == pytest.approx(2 * 86400.5)


class TestCollect:
    @pytest.mark.asyncio
    async def test_primary_uses_plain_cutoff(self):
        database = InMemorySessionDatabase(server_id=1)
        _seed(database, NOW - 3601, NOW - 3600, NOW - 10)
        reclaimer = ReplicaSkewedReclaimer(database.connect(), clock=lambda: NOW)

        result = await reclaimer.collect(3600)

        assert result.deleted == 1
        assert result.offset == 0
        assert result.cutoff == NOW - 3600
        assert _surviving(database) == [NOW - 3600, NOW - 10]

    @pytest.mark.asyncio
    async def test_replica_five_cutoff_is_skewed(self):
        database = InMemorySessionDatabase(server_id=5)
        skewed_cutoff = NOW - 3600 - 345600
        _seed(database, skewed_cutoff - 1, skewed_cutoff, NOW - 3601)
        reclaimer = ReplicaSkewedReclaimer(database.connect(), clock=lambda: NOW)

        result = await reclaimer.collect(3600)

        assert result.server_id == 5
        assert result.offset == 345600
        assert result.cutoff == skewed_cutoff
        assert result.deleted == 1
        assert _surviving(database) == [skewed_cutoff, NOW - 3601]

    @pytest.mark.asyncio
    async def test_server_id_ten_is_not_skewed(self):
        database = InMemorySessionDatabase(server_id=10)
        _seed(database, NOW - 3601)
        reclaimer = ReplicaSkewedReclaimer(database.connect(), clock=lambda: NOW)

        result = await reclaimer.collect(3600)

        assert result.offset == 0
        assert result.deleted == 1

    @pytest.mark.asyncio
    async def test_zero_lifetime_deletes_everything_older_than_now(self):
        database = InMemorySessionDatabase(server_id=1)
        _seed(database, NOW - 1, NOW)
        reclaimer = ReplicaSkewedReclaimer(database.connect(), clock=lambda: NOW)

        assert (await reclaimer.collect(0)).deleted == 1
        assert _surviving(database) == [NOW]

    @pytest.mark.asyncio
    async def test_empty_table_is_fine(self):
        reclaimer = ReplicaSkewedReclaimer(InMemorySessionDatabase().connect(), clock=lambda: NOW)
        assert (await reclaimer.collect(60)).deleted == 0

    @pytest.mark.asyncio
    async def test_collect_twice_is_idempotent(self):
        database = InMemorySessionDatabase()
        _seed(database, NOW - 7200)
        reclaimer = ReplicaSkewedReclaimer(database.connect(), clock=lambda: NOW)

        assert (await reclaimer.collect(3600)).deleted == 1
        assert (await reclaimer.collect(3600)).deleted == 0

    @pytest.mark.asyncio
    async def test_negative_lifetime_rejected(self):
        reclaimer = ReplicaSkewedReclaimer(InMemorySessionDatabase().connect())
        with pytest.raises(InvalidRequestException):
            await reclaimer.collect(-1)


class TestReplicaIdentityFailures:
    @pytest.mark.asyncio
    async def test_missing_server_id_aborts_pass(self):
        database = InMemorySessionDatabase(server_id=None)
        _seed(database, 0)
        reclaimer = ReplicaSkewedReclaimer(database.connect(), clock=lambda: NOW)

        with pytest.raises(ReplicaIdentityException):
            await reclaimer.collect(3600)

        assert len(database.rows) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_value", [None, "2", 2.0, True])
    async def test_non_integer_server_id_aborts_pass(self, bad_value: object):
        backend = MagicMock()
        backend.server_id = AsyncMock(return_value=bad_value)
        backend.delete_expired = AsyncMock()

        with pytest.raises(ReplicaIdentityException):
            await ReplicaSkewedReclaimer(backend, clock=lambda: NOW).collect(3600)

        backend.delete_expired.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_connectivity_failure_propagates(self):
        backend = MagicMock()
        backend.server_id = AsyncMock(side_effect=StoreConnectivityException("gone"))
        backend.delete_expired = AsyncMock()

        with pytest.raises(StoreConnectivityException):
            await ReplicaSkewedReclaimer(backend).collect(3600)

        backend.delete_expired.assert_not_awaited()
