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
"""SessionVault Session — locked, amortized, replica-aware session storage.

Import concrete backends from the adapter package::

    from sessionvault.session.adapters.memory import InMemorySessionDatabase
    from sessionvault.session.adapters.sqlalchemy import SqlAlchemySessionBackend
"""

from sessionvault.session.handler import DatabaseSessionHandler
from sessionvault.session.hashing import IdentifierHasher
from sessionvault.session.lock import AdvisoryLock
from sessionvault.session.ports.inbound import SessionHandler
from sessionvault.session.ports.outbound import SessionBackend
from sessionvault.session.reclaimer import CollectionResult, ReplicaSkewedReclaimer, offset_for
from sessionvault.session.record import SessionRecord
from sessionvault.session.store import SessionStore, WriteOutcome

__all__ = [
    "AdvisoryLock",
    "CollectionResult",
    "DatabaseSessionHandler",
    "IdentifierHasher",
    "ReplicaSkewedReclaimer",
    "SessionBackend",
    "SessionHandler",
    "SessionRecord",
    "SessionStore",
    "WriteOutcome",
    "offset_for",
]
