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
"""Unified exception hierarchy for SessionVault.

All library exceptions inherit from SessionVaultException, so callers can
catch a single type at the edge of a request.

Categories:
- BusinessException: Invalid arguments supplied by the caller
- InfrastructureException: Backing store, lock and replica failures

A missing session row is never an exception. Neither is a busy lock: the
advisory lock retries until granted, and only an explicit deadline turns
waiting into LockTimeoutException.
"""

from __future__ import annotations

# =============================================================================
# Base Exception
# =============================================================================


class SessionVaultException(Exception):
    """Base exception for all SessionVault errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "STORE_001").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Business Exceptions
# =============================================================================


class BusinessException(SessionVaultException):
    """Caller-side contract violations."""


class InvalidRequestException(BusinessException):
    """Request is syntactically valid but semantically incorrect."""


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(SessionVaultException):
    """Infrastructure failures: database, locks, replication topology."""


class StoreConnectivityException(InfrastructureException):
    """The backing store is unreachable or the connection broke mid-operation.

    Fatal to the current session lifecycle and never retried by this library.
    """


class OperationTimeoutException(InfrastructureException):
    """Operation exceeded its allowed time limit."""


class LockTimeoutException(OperationTimeoutException):
    """The advisory lock stayed busy past the caller-supplied deadline."""


class ReplicaIdentityException(InfrastructureException):
    """The backing store's replica identity could not be determined.

    Aborts a reclamation pass: without the identity the per-replica offset
    cannot be computed.
    """


class UnsupportedBackendException(InfrastructureException):
    """The backing store offers no named advisory-lock primitive."""
