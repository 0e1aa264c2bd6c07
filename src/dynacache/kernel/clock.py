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
"""Wall-clock source used for expiration timestamps and expiry checks."""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Returns the current time as whole epoch seconds."""

    def now(self) -> int: ...


class SystemClock:
    """Clock backed by :func:`time.time`."""

    def now(self) -> int:
        return int(time.time())


def is_expired(expires_at: int | float | None, now: int) -> bool:
    """Return True when an item with *expires_at* is logically absent at *now*.

    An item whose expiration equals *now* is already expired. A missing
    expiration means the item was not written by a dynacache store and is
    treated as absent.
    """
    if expires_at is None:
        return True
    return now >= expires_at
