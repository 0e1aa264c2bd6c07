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
"""In-process cache store."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from dynacache.cache.lock import CacheLock
from dynacache.cache.serialization import NUMBER, STRING, ValueSerializer
from dynacache.kernel.clock import Clock, SystemClock, is_expired

FOREVER_MINUTES = 5 * 365 * 24 * 60


class InMemoryStore:
    """Dictionary-backed store with the same rules as DynamoDbStore.

    Entries are kept in their wire form (type descriptor, encoded payload,
    expiration), so values read back exactly as they would from DynamoDB:
    numeric strings come back as numbers, numbers are normalized the way
    DynamoDB normalizes them (``1.0`` reads back as ``1``) and structured
    values are copies.
    Unlike DynamoDB, ``flush`` is supported.

    Suitable for development, testing, and single-process applications.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        prefix: str = "",
        serializer: ValueSerializer | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._prefix = prefix
        self._serializer = serializer or ValueSerializer()
        self._store: dict[str, tuple[str, str, int]] = {}

    async def get(self, key: str) -> Any | None:
        """Get a value by key. Returns None if missing or expired."""
        return self._read(self._prefix + key, self._clock.now())

    async def many(self, keys: list[str]) -> dict[str, Any | None]:
        now = self._clock.now()
        return {key: self._read(self._prefix + key, now) for key in keys}

    async def put(self, key: str, value: Any, ttl_minutes: float) -> bool:
        self._write(key, value, self._to_timestamp(ttl_minutes))
        return True

    async def put_many(self, values: Mapping[str, Any], ttl_minutes: float) -> bool:
        expiration = self._to_timestamp(ttl_minutes)
        for key, value in values.items():
            self._write(key, value, expiration)
        return True

    async def add(self, key: str, value: Any, ttl_minutes: float) -> bool:
        """Store a value only if the key is missing or expired."""
        if self._live(self._prefix + key, self._clock.now()):
            return False
        return await self.put(key, value, ttl_minutes)

    async def increment(self, key: str, value: int | float = 1) -> int | float | bool:
        stored_key = self._prefix + key
        if not self._live(stored_key, self._clock.now()):
            return False
        kind, raw, expiration = self._store[stored_key]
        if kind != NUMBER:
            raise TypeError(f"Cannot increment non-numeric value stored at '{key}'")
        # Decimal arithmetic, as DynamoDB applies to numbers
        updated = self._serializer.canonical(str(Decimal(raw) + Decimal(str(value))))
        self._store[stored_key] = (NUMBER, updated, expiration)
        return self._serializer.number(updated)

    async def decrement(self, key: str, value: int | float = 1) -> int | float | bool:
        return await self.increment(key, -value)

    async def forever(self, key: str, value: Any) -> bool:
        return await self.put(key, value, FOREVER_MINUTES)

    async def forget(self, key: str) -> bool:
        self._store.pop(self._prefix + key, None)
        return True

    async def flush(self) -> bool:
        """Remove all entries."""
        self._store.clear()
        return True

    def lock(self, name: str, seconds: int = 0, owner: str | None = None) -> CacheLock:
        return CacheLock(self, name, seconds, owner)

    def restore_lock(self, name: str, owner: str) -> CacheLock:
        return self.lock(name, 0, owner)

    async def acquire_lock(self, name: str, owner: str, seconds: int) -> bool:
        now = self._clock.now()
        stored_key = self._prefix + name
        if self._live(stored_key, now):
            return False
        self._store[stored_key] = (STRING, owner, now + seconds)
        return True

    async def release_lock(self, name: str, owner: str) -> bool:
        stored_key = self._prefix + name
        entry = self._store.get(stored_key)
        if entry is None or entry[:2] != (STRING, owner):
            return False
        del self._store[stored_key]
        return True

    async def lock_owner(self, name: str) -> str | None:
        stored_key = self._prefix + name
        if not self._live(stored_key, self._clock.now()):
            return None
        kind, raw, _ = self._store[stored_key]
        return raw if kind == STRING else None

    async def force_release_lock(self, name: str) -> None:
        await self.forget(name)

    def get_prefix(self) -> str:
        return self._prefix

    def get_stats(self) -> dict[str, Any]:
        """Return entry counts; ``size`` excludes expired entries."""
        now = self._clock.now()
        live = sum(1 for key in self._store if self._live(key, now))
        return {"size": live, "stored": len(self._store), "type": "memory"}

    def _write(self, key: str, value: Any, expiration: int) -> None:
        kind = self._serializer.type_of(value)
        raw = self._serializer.serialize(value)
        if kind == NUMBER:
            raw = self._serializer.canonical(raw)
        self._store[self._prefix + key] = (kind, raw, expiration)

    def _live(self, stored_key: str, now: int) -> bool:
        entry = self._store.get(stored_key)
        return entry is not None and not is_expired(entry[2], now)

    def _read(self, stored_key: str, now: int) -> Any | None:
        if not self._live(stored_key, now):
            return None
        return self._serializer.unserialize(self._store[stored_key][1])

    def _to_timestamp(self, minutes: float) -> int:
        now = self._clock.now()
        return now + int(minutes * 60) if minutes > 0 else now
