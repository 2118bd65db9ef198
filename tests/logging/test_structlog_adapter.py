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
"""Tests for StructlogAdapter — default LoggingPort implementation."""

import logging

from sessionvault.core.config import Config
from sessionvault.logging import configure_logging
from sessionvault.logging.port import LoggingPort
from sessionvault.logging.structlog_adapter import StructlogAdapter, redact_session_ids
from sessionvault.session.hashing import IdentifierHasher


class TestStructlogAdapterConformance:
    def test_implements_logging_port(self):
        assert isinstance(StructlogAdapter(), LoggingPort)


class TestStructlogAdapterConfigure:
    def test_configure_with_defaults(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter._root_level == "INFO"
        assert adapter._format == "console"
        assert adapter._module_levels == {}

    def test_configure_reads_root_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"sessionvault": {"logging": {"level": {"root": "debug"}}}}))
        assert adapter._root_level == "DEBUG"

    def test_configure_reads_format(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"sessionvault": {"logging": {"format": "JSON"}}}))
        assert adapter._format == "json"

    def test_configure_applies_per_module_levels(self):
        adapter = StructlogAdapter()
        config = Config({"sessionvault": {"logging": {"level": {"root": "INFO", "sessionvault.session.lock": "DEBUG"}}}})
        adapter.configure(config)
        assert adapter._module_levels == {"sessionvault.session.lock": "DEBUG"}
        assert logging.getLogger("sessionvault.session.lock").level == logging.DEBUG

    def test_configure_logging_helper(self):
        adapter = configure_logging(Config({}))
        assert isinstance(adapter, StructlogAdapter)


class TestStructlogAdapterGetLogger:
    def test_get_logger_returns_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        logger = adapter.get_logger("sessionvault.test")
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "debug", None))


class TestStructlogAdapterSetLevel:
    def test_set_level(self):
        adapter = StructlogAdapter()
        adapter.set_level("sessionvault.session.store", "WARNING")
        assert logging.getLogger("sessionvault.session.store").level == logging.WARNING


class TestRedactProcessor:
    def test_session_id_replaced(self):
        event = redact_session_ids(None, "info", {"event": "x", "session_id": "raw-id"})
        assert event["session_id"] == IdentifierHasher.fingerprint("raw-id")

    def test_other_keys_untouched(self):
        event = redact_session_ids(None, "info", {"event": "x", "lock": "abc"})
        assert event == {"event": "x", "lock": "abc"}
