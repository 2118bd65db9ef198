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
"""LoggingPort — the hexagonal port for SessionVault logging."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from sessionvault.core.config import Config

# Event keys that may carry a caller-supplied session identifier.
SENSITIVE_KEYS = frozenset({"session_id", "identifier"})


def redact_identifier(value: Any) -> str:
    """Render a session identifier as a short SHA-256 prefix, never the raw value."""
    from sessionvault.session.hashing import IdentifierHasher

    return IdentifierHasher.fingerprint(value)


@runtime_checkable
class LoggingPort(Protocol):
    """Port defining the logging contract for SessionVault."""

    def configure(self, config: Config) -> None: ...
    def get_logger(self, name: str) -> Any: ...
    def set_level(self, name: str, level: str) -> None: ...
