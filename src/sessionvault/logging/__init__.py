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
"""SessionVault Logging — hexagonal logging port and the structlog adapter."""

from __future__ import annotations

from sessionvault.core.config import Config
from sessionvault.logging.port import LoggingPort
from sessionvault.logging.structlog_adapter import StructlogAdapter


def configure_logging(config: Config) -> LoggingPort:
    """Configure process-wide logging from ``sessionvault.logging`` and return the adapter."""
    adapter = StructlogAdapter()
    adapter.configure(config)
    return adapter


__all__ = ["LoggingPort", "StructlogAdapter", "configure_logging"]
