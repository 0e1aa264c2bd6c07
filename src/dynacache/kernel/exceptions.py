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
"""Exception hierarchy for dynacache.

All library exceptions inherit from DynaCacheException, enabling unified
error handling across modules.

Categories:
- BusinessException: caller-side misuse, values that cannot be stored
- InfrastructureException: store capabilities and partial backend failures

Errors raised by the backend client itself (``botocore`` ``ClientError``,
connection errors) are never wrapped and reach the caller unchanged.
"""

from __future__ import annotations


# =============================================================================
# Base Exception
# =============================================================================


class DynaCacheException(Exception):
    """Base exception for all dynacache errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CACHE_FLUSH_UNSUPPORTED").
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


class BusinessException(DynaCacheException):
    """Caller-side errors: bad input, contended resources."""


class CacheSerializationException(BusinessException):
    """A value could not be encoded to, or decoded from, its stored form."""


class LockedResourceException(BusinessException):
    """Resource is locked by another owner."""


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(DynaCacheException):
    """Store-level failures and unsupported store capabilities."""


class UnsupportedOperationException(InfrastructureException):
    """The store cannot perform the requested operation at all."""


class PartialBatchWriteException(InfrastructureException):
    """Some entries of a bulk write were not processed by the backend.

    Args:
        message: Human-readable error description.
        failed_keys: The caller-facing keys that were not written.
    """

    def __init__(self, message: str, failed_keys: list[str]) -> None:
        super().__init__(
            message,
            code="CACHE_BATCH_WRITE_PARTIAL",
            context={"failed_keys": list(failed_keys)},
        )
        self.failed_keys = list(failed_keys)


class OperationTimeoutException(InfrastructureException):
    """Operation exceeded its allowed time limit."""


class LockTimeoutException(OperationTimeoutException):
    """A lock could not be acquired before the blocking timeout elapsed."""
