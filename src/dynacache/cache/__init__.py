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
"""dynacache cache: expiring key-value stores with conditional writes and locks."""

from dynacache.cache.adapters.dynamodb import DynamoDbStore
from dynacache.cache.adapters.memory import InMemoryStore
from dynacache.cache.decorators import cache_evict, cache_put, cacheable
from dynacache.cache.factory import create_store
from dynacache.cache.lock import CacheLock
from dynacache.cache.ports.outbound import CacheStore, LockProvider
from dynacache.cache.serialization import ValueSerializer

__all__ = [
    "CacheLock",
    "CacheStore",
    "DynamoDbStore",
    "InMemoryStore",
    "LockProvider",
    "ValueSerializer",
    "cache_evict",
    "cache_put",
    "cacheable",
    "create_store",
]
