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
"""Session and logging configuration properties."""

from __future__ import annotations

from pydantic import BaseModel, Field

from sessionvault.core.config import config_properties


@config_properties(prefix="sessionvault.session")
class SessionProperties(BaseModel):
    """Configuration for the session store (sessionvault.session.*).

    ``url`` has no default: it must name a MySQL/MariaDB or PostgreSQL
    database reached through an async driver. ``lock_deadline`` of ``0``
    means wait for the lock indefinitely.
    """

    url: str | None = None
    table_name: str = Field(default="sessions", min_length=1)
    touch_threshold: int = Field(default=300, ge=0)
    lock_poll_interval: float = Field(default=1.0, gt=0)
    lock_deadline: float = Field(default=0.0, ge=0)
    max_lifetime: int = Field(default=1440, ge=0)


@config_properties(prefix="sessionvault.logging")
class LoggingProperties(BaseModel):
    """Configuration for logging (sessionvault.logging.*)."""

    format: str = "console"
    level: dict[str, str] = Field(default_factory=lambda: {"root": "INFO"})
