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
"""Cache store construction from configuration."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dynacache.cache.ports.outbound import CacheStore
from dynacache.config.properties.cache import CacheProperties
from dynacache.core.config import Config
from dynacache.kernel.clock import Clock
from dynacache.logging.port import LoggingPort
from dynacache.logging.structlog_adapter import StructlogAdapter

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_store(
    config: Config,
    clock: Clock | None = None,
    logging_port: LoggingPort | None = None,
) -> AsyncIterator[CacheStore]:
    """Yield a started store for ``dynacache.cache.provider``.

    When the config carries a ``dynacache.logging`` section, logging is
    configured from it first through ``logging_port`` (a
    :class:`StructlogAdapter` unless one is given).

    ``dynamodb`` opens an aioboto3 client for the lifetime of the context,
    validates the table and closes the client on exit. ``memory`` yields an
    :class:`InMemoryStore`.
    """
    if config.get_section("dynacache.logging"):
        (logging_port or StructlogAdapter()).configure(config)

    properties = config.bind(CacheProperties)
    provider = properties.provider.lower()

    if provider == "memory":
        from dynacache.cache.adapters.memory import InMemoryStore

        yield InMemoryStore(clock=clock, prefix=properties.prefix)
        return

    if provider != "dynamodb":
        raise ValueError(f"Unknown cache provider '{properties.provider}'")

    import aioboto3

    from dynacache.cache.adapters.dynamodb import DynamoDbStore

    session = aioboto3.Session()
    async with session.client(
        "dynamodb",
        region_name=properties.region,
        endpoint_url=properties.endpoint_url,
    ) as client:
        store = DynamoDbStore(
            client,
            table=properties.table,
            key_attribute=properties.key_attribute,
            value_attribute=properties.value_attribute,
            expiration_attribute=properties.expiration_attribute,
            prefix=properties.prefix,
            clock=clock,
            batch_get_size=properties.batch_get_size,
            batch_write_size=properties.batch_write_size,
        )
        await store.start()
        _logger.info("DynamoDB cache store ready on table '%s'", properties.table)
        yield store
