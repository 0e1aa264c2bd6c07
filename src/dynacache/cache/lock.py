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
"""Distributed lock built on a store's conditional-write primitives."""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any

from dynacache.cache.ports.outbound import LockProvider
from dynacache.kernel.exceptions import LockedResourceException, LockTimeoutException

# Expiration applied to locks requested without a TTL.
DEFAULT_LOCK_SECONDS = 86400


class CacheLock:
    """Named lock whose state lives in a cache store row.

    Acquisition is a conditional insert that succeeds when the row is
    missing or expired. Release deletes the row only if it still holds this
    lock's owner token. The lock object itself holds no state beyond its
    name, TTL and owner, so any process knowing the owner token can release
    it (see ``restore_lock``).

    Args:
        provider: Store implementing the lock primitives.
        name: Lock name, used as the cache key.
        seconds: Lock TTL. ``0`` means "until released", bounded by
            :data:`DEFAULT_LOCK_SECONDS`.
        owner: Owner token. A random one is generated when omitted.
        sleep_milliseconds: Delay between attempts in :meth:`block`.
    """

    def __init__(
        self,
        provider: LockProvider,
        name: str,
        seconds: int = 0,
        owner: str | None = None,
        sleep_milliseconds: int = 250,
    ) -> None:
        self._provider = provider
        self._name = name
        self._seconds = seconds
        self._owner = owner if owner is not None else uuid.uuid4().hex
        self._sleep_milliseconds = sleep_milliseconds

    @property
    def name(self) -> str:
        return self._name

    @property
    def owner(self) -> str:
        """The token identifying this lock's holder."""
        return self._owner

    async def acquire(self) -> bool:
        """Try to take the lock once."""
        seconds = self._seconds if self._seconds > 0 else DEFAULT_LOCK_SECONDS
        return await self._provider.acquire_lock(self._name, self._owner, seconds)

    async def release(self) -> bool:
        """Release the lock if this owner still holds it."""
        return await self._provider.release_lock(self._name, self._owner)

    async def force_release(self) -> None:
        """Release the lock regardless of its owner."""
        await self._provider.force_release_lock(self._name)

    async def is_owned_by_current_process(self) -> bool:
        return await self._provider.lock_owner(self._name) == self._owner

    async def get(self, callback: Callable[[], Awaitable[Any]] | None = None) -> Any:
        """Acquire the lock, optionally running *callback* while holding it.

        Without a callback, returns whether the lock was acquired. With one,
        returns its result (the lock is released afterwards), or ``False``
        when the lock could not be acquired.
        """
        acquired = await self.acquire()
        if acquired and callback is not None:
            try:
                return await callback()
            finally:
                await self.release()
        return acquired

    async def block(
        self,
        seconds: float,
        callback: Callable[[], Awaitable[Any]] | None = None,
    ) -> Any:
        """Wait up to *seconds* for the lock.

        Raises:
            LockTimeoutException: The lock was not acquired in time.
        """
        started = time.monotonic()
        while not await self.acquire():
            if time.monotonic() - started >= seconds:
                raise LockTimeoutException(
                    f"Timed out after {seconds}s waiting for lock '{self._name}'",
                    code="CACHE_LOCK_TIMEOUT",
                    context={"lock": self._name},
                )
            await asyncio.sleep(self._sleep_milliseconds / 1000)

        if callback is None:
            return True
        try:
            return await callback()
        finally:
            await self.release()

    async def __aenter__(self) -> CacheLock:
        if not await self.acquire():
            raise LockedResourceException(
                f"Lock '{self._name}' is held by another owner",
                code="CACHE_LOCKED",
                context={"lock": self._name},
            )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.release()
