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
"""IdentifierHasher — SHA-256 digests of session identifiers."""

from __future__ import annotations

import hashlib

DIGEST_SIZE = 32


class IdentifierHasher:
    """Memoizes the SHA-256 digest of each session identifier it sees.

    One hasher belongs to one session handler, so the cache lives exactly as
    long as a session lifecycle and is never shared between sessions. The raw
    digest is the storage key; its lowercase hex form is the lock name.
    """

    __slots__ = ("_digests",)

    def __init__(self) -> None:
        self._digests: dict[str | bytes, bytes] = {}

    def digest(self, identifier: str | bytes) -> bytes:
        """Return the 32-byte digest, hashing only on the first call per identifier."""
        cached = self._digests.get(identifier)
        if cached is None:
            raw = identifier.encode("utf-8") if isinstance(identifier, str) else identifier
            cached = hashlib.sha256(raw).digest()
            self._digests[identifier] = cached
        return cached

    def hexdigest(self, identifier: str | bytes) -> str:
        return self.digest(identifier).hex()

    def __len__(self) -> int:
        """Number of distinct identifiers hashed so far in this lifecycle."""
        return len(self._digests)

    @staticmethod
    def fingerprint(identifier: object, length: int = 12) -> str:
        """Short, non-cached hex prefix safe to put in log lines."""
        if isinstance(identifier, bytes):
            raw = identifier
        else:
            raw = str(identifier).encode("utf-8")
        return hashlib.sha256(raw).hexdigest()[:length]
