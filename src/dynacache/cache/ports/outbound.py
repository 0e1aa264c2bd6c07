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
"""Cache store ports."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dynacache.cache.lock import CacheLock


@runtime_checkable
class LockProvider(Protocol):
    """Conditional-write primitives a :class:`CacheLock` is built on.

    Lock rows hold the owner token as their value. Acquisition succeeds only
    when the row is missing or expired; release succeeds only for the owner.
    """

    async def acquire_lock(self, name: str, owner: str, seconds: int) -> bool: ...

    async def release_lock(self, name: str, owner: str) -> bool: ...

    async def lock_owner(self, name: str) -> str | None: ...

    async def force_release_lock(self, name: str) -> None: ...


@runtime_checkable
class CacheStore(Protocol):
    """Expiring key-value store contract.

    TTLs are given in minutes. A TTL of zero or less stores the item already
    expired. Expired and missing items are indistinguishable to readers.
    """

    async def get(self, key: str) -> Any | None: ...

    async def many(self, keys: list[str]) -> dict[str, Any | None]: ...

    async def put(self, key: str, value: Any, ttl_minutes: float) -> bool: ...

    async def put_many(self, values: Mapping[str, Any], ttl_minutes: float) -> bool: ...

    async def add(self, key: str, value: Any, ttl_minutes: float) -> bool: ...

    async def increment(self, key: str, value: int | float = 1) -> int | float | bool: ...

    async def decrement(self, key: str, value: int | float = 1) -> int | float | bool: ...

    async def forever(self, key: str, value: Any) -> bool: ...

    async def forget(self, key: str) -> bool: ...

    async def flush(self) -> bool: ...

    def lock(self, name: str, seconds: int = 0, owner: str | None = None) -> CacheLock: ...

    def restore_lock(self, name: str, owner: str) -> CacheLock: ...

    def get_prefix(self) -> str: ...
