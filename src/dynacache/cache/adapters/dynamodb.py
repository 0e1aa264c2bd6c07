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
"""DynamoDB-backed cache store.

Each cache entry is one item of a single table keyed by a string partition
key. Besides the key the item carries the encoded value and an absolute
expiration (epoch seconds). DynamoDB does not filter expired items on read,
so every read path checks the expiration against the injected clock.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any, TypeVar

from botocore.exceptions import ClientError

from dynacache.cache.lock import CacheLock
from dynacache.cache.serialization import NUMBER, STRING, ValueSerializer
from dynacache.kernel.clock import Clock, SystemClock, is_expired
from dynacache.kernel.exceptions import PartialBatchWriteException, UnsupportedOperationException

_logger = logging.getLogger(__name__)

T = TypeVar("T")

# DynamoDB request limits.
MAX_BATCH_GET_SIZE = 100
MAX_BATCH_WRITE_SIZE = 25

# Five years; DynamoDB items have no "never expires" marker.
FOREVER_MINUTES = 5 * 365 * 24 * 60

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _chunks(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def is_conditional_check_failure(exc: ClientError) -> bool:
    """Return True when *exc* reports a failed ``ConditionExpression``."""
    return exc.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


class DynamoDbStore:
    """Cache store that delegates to a low-level async DynamoDB client.

    The client is the object returned by ``aioboto3.Session().client("dynamodb")``
    (or anything exposing the same coroutines). Attribute values are sent
    typed: numbers as ``{"N": "..."}``, everything else as a JSON string
    ``{"S": "..."}``.

    Conditional writes (``add``, ``increment``, ``decrement`` and the lock
    primitives) report a failed condition as ``False``. Every other client
    error propagates unchanged.

    Args:
        client: Async DynamoDB client.
        table: Table name.
        key_attribute: Name of the partition key attribute (type ``S``).
        value_attribute: Name of the attribute holding the value.
        expiration_attribute: Name of the attribute holding the expiration.
        prefix: Prepended to every key stored in the table.
        clock: Time source, :class:`SystemClock` by default.
        serializer: Value encoder, :class:`ValueSerializer` by default.
        batch_get_size: Keys per ``BatchGetItem`` request (at most 100).
        batch_write_size: Items per ``BatchWriteItem`` request (at most 25).
    """

    def __init__(
        self,
        client: Any,
        table: str,
        key_attribute: str = "key",
        value_attribute: str = "value",
        expiration_attribute: str = "expires_at",
        prefix: str = "",
        clock: Clock | None = None,
        serializer: ValueSerializer | None = None,
        batch_get_size: int = MAX_BATCH_GET_SIZE,
        batch_write_size: int = MAX_BATCH_WRITE_SIZE,
    ) -> None:
        if not 1 <= batch_get_size <= MAX_BATCH_GET_SIZE:
            raise ValueError(f"batch_get_size must be between 1 and {MAX_BATCH_GET_SIZE}")
        if not 1 <= batch_write_size <= MAX_BATCH_WRITE_SIZE:
            raise ValueError(f"batch_write_size must be between 1 and {MAX_BATCH_WRITE_SIZE}")

        self._client = client
        self._table = table
        self._key_attribute = key_attribute
        self._value_attribute = value_attribute
        self._expiration_attribute = expiration_attribute
        self._prefix = prefix
        self._clock = clock or SystemClock()
        self._serializer = serializer or ValueSerializer()
        self._batch_get_size = batch_get_size
        self._batch_write_size = batch_write_size

    @property
    def table(self) -> str:
        return self._table

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """Retrieve a value, or ``None`` when missing or expired."""
        response = await self._client.get_item(
            TableName=self._table,
            ConsistentRead=False,
            Key=self._key(key),
        )
        item = response.get("Item")
        if item is None or self._is_expired(item, self._clock.now()):
            return None
        return self._value_of(item)

    async def many(self, keys: list[str]) -> dict[str, Any | None]:
        """Retrieve several values at once.

        Every requested key appears in the result; missing, expired and
        unprocessed keys map to ``None``. Expiry is judged against a single
        timestamp taken before the first request.
        """
        results: dict[str, Any | None] = dict.fromkeys(keys)
        if not results:
            return results

        now = self._clock.now()
        for chunk in _chunks(list(results), self._batch_get_size):
            response = await self._client.batch_get_item(
                RequestItems={
                    self._table: {
                        "ConsistentRead": False,
                        "Keys": [self._key(key) for key in chunk],
                    },
                },
            )

            for item in response.get("Responses", {}).get(self._table, []):
                key = self._unprefixed(item[self._key_attribute][STRING])
                if key in results and not self._is_expired(item, now):
                    results[key] = self._value_of(item)

            unprocessed = response.get("UnprocessedKeys", {}).get(self._table, {}).get("Keys", [])
            if unprocessed:
                _logger.warning(
                    "BatchGetItem left %d of %d keys unprocessed on table '%s'; treating them as misses",
                    len(unprocessed),
                    len(chunk),
                    self._table,
                )

        return results

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def put(self, key: str, value: Any, ttl_minutes: float) -> bool:
        """Store a value, overwriting any existing item."""
        await self._client.put_item(
            TableName=self._table,
            Item=self._item(key, self._serializer.attribute(value), self._to_timestamp(ttl_minutes)),
        )
        return True

    async def put_many(self, values: Mapping[str, Any], ttl_minutes: float) -> bool:
        """Store several values sharing one expiration.

        Raises:
            PartialBatchWriteException: The backend left some items unprocessed.
                Every chunk is still attempted before raising.
            ClientError: A chunk failed outright. Keys left unprocessed by
                earlier chunks are attached as an exception note.
        """
        entries = list(values.items())
        if not entries:
            return True

        expiration = self._to_timestamp(ttl_minutes)
        failed: list[str] = []
        try:
            for chunk in _chunks(entries, self._batch_write_size):
                response = await self._client.batch_write_item(
                    RequestItems={
                        self._table: [
                            {"PutRequest": {"Item": self._item(key, self._serializer.attribute(value), expiration)}}
                            for key, value in chunk
                        ],
                    },
                )
                for request in response.get("UnprocessedItems", {}).get(self._table, []):
                    item = request["PutRequest"]["Item"]
                    failed.append(self._unprefixed(item[self._key_attribute][STRING]))
        except Exception as exc:
            if failed:
                exc.add_note(f"Items left unprocessed by earlier chunks: {sorted(failed)}")
            raise

        if failed:
            raise PartialBatchWriteException(
                f"{len(failed)} of {len(entries)} items were not written to table '{self._table}'",
                failed_keys=sorted(failed),
            )
        return True

    async def add(self, key: str, value: Any, ttl_minutes: float) -> bool:
        """Store a value only if the key is missing or expired."""
        now = self._clock.now()
        return await self._put_if_absent(
            key,
            self._serializer.attribute(value),
            self._to_timestamp(ttl_minutes, now),
            now,
        )

    async def increment(self, key: str, value: int | float = 1) -> int | float | bool:
        """Atomically add *value* to a live numeric item.

        Returns the new value, or ``False`` when the key is missing or expired.
        """
        return await self._update_counter(key, "+", value)

    async def decrement(self, key: str, value: int | float = 1) -> int | float | bool:
        """Atomically subtract *value* from a live numeric item."""
        return await self._update_counter(key, "-", value)

    async def forever(self, key: str, value: Any) -> bool:
        """Store a value with a five-year expiration."""
        return await self.put(key, value, FOREVER_MINUTES)

    async def forget(self, key: str) -> bool:
        """Delete an item. Succeeds whether or not it existed."""
        await self._client.delete_item(TableName=self._table, Key=self._key(key))
        return True

    async def flush(self) -> bool:
        raise UnsupportedOperationException(
            "DynamoDB does not support flushing an entire table. Please create a new table.",
            code="CACHE_FLUSH_UNSUPPORTED",
            context={"table": self._table},
        )

    # ------------------------------------------------------------------
    # Locks
    # ------------------------------------------------------------------

    def lock(self, name: str, seconds: int = 0, owner: str | None = None) -> CacheLock:
        """Get a lock handle named *name*."""
        return CacheLock(self, name, seconds, owner)

    def restore_lock(self, name: str, owner: str) -> CacheLock:
        """Rebuild a handle for a lock already held by *owner*."""
        return self.lock(name, 0, owner)

    async def acquire_lock(self, name: str, owner: str, seconds: int) -> bool:
        now = self._clock.now()
        return await self._put_if_absent(name, {STRING: owner}, now + seconds, now)

    async def release_lock(self, name: str, owner: str) -> bool:
        try:
            await self._client.delete_item(
                TableName=self._table,
                Key=self._key(name),
                ConditionExpression="#value = :owner",
                ExpressionAttributeNames={"#value": self._value_attribute},
                ExpressionAttributeValues={":owner": {STRING: owner}},
            )
        except ClientError as exc:
            if is_conditional_check_failure(exc):
                _logger.debug("Lock '%s' is not held by owner '%s'", name, owner)
                return False
            raise
        return True

    async def lock_owner(self, name: str) -> str | None:
        response = await self._client.get_item(
            TableName=self._table,
            ConsistentRead=True,
            Key=self._key(name),
        )
        item = response.get("Item")
        if item is None or self._is_expired(item, self._clock.now()):
            return None
        owner: str | None = item.get(self._value_attribute, {}).get(STRING)
        return owner

    async def force_release_lock(self, name: str) -> None:
        await self.forget(name)

    def get_prefix(self) -> str:
        return self._prefix

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Validate that the table exists and is reachable."""
        await self._client.describe_table(TableName=self._table)

    async def stop(self) -> None:
        """Close the underlying client."""
        await self._client.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _put_if_absent(self, key: str, attribute: dict[str, str], expiration: int, now: int) -> bool:
        try:
            await self._client.put_item(
                TableName=self._table,
                Item=self._item(key, attribute, expiration),
                ConditionExpression="attribute_not_exists(#key) OR #expires_at <= :now",
                ExpressionAttributeNames={
                    "#key": self._key_attribute,
                    "#expires_at": self._expiration_attribute,
                },
                ExpressionAttributeValues={":now": {NUMBER: str(now)}},
            )
        except ClientError as exc:
            if is_conditional_check_failure(exc):
                _logger.debug("Conditional add skipped for live key '%s'", key)
                return False
            raise
        return True

    async def _update_counter(self, key: str, operator: str, amount: int | float) -> int | float | bool:
        try:
            response = await self._client.update_item(
                TableName=self._table,
                Key=self._key(key),
                ConditionExpression="attribute_exists(#key) AND #expires_at > :now",
                UpdateExpression=f"SET #value = #value {operator} :amount",
                ExpressionAttributeNames={
                    "#key": self._key_attribute,
                    "#value": self._value_attribute,
                    "#expires_at": self._expiration_attribute,
                },
                ExpressionAttributeValues={
                    ":now": {NUMBER: str(self._clock.now())},
                    ":amount": {NUMBER: str(amount)},
                },
                ReturnValues="UPDATED_NEW",
            )
        except ClientError as exc:
            if is_conditional_check_failure(exc):
                _logger.debug("Counter update skipped for missing or expired key '%s'", key)
                return False
            raise
        return self._serializer.number(response["Attributes"][self._value_attribute][NUMBER])

    def _key(self, key: str) -> dict[str, dict[str, str]]:
        return {self._key_attribute: {STRING: self._prefix + key}}

    def _unprefixed(self, stored_key: str) -> str:
        return stored_key.removeprefix(self._prefix)

    def _item(self, key: str, attribute: dict[str, str], expiration: int) -> dict[str, dict[str, str]]:
        return {
            self._key_attribute: {STRING: self._prefix + key},
            self._value_attribute: attribute,
            self._expiration_attribute: {NUMBER: str(expiration)},
        }

    def _is_expired(self, item: dict[str, Any], now: int) -> bool:
        attribute = item.get(self._expiration_attribute)
        expires_at = None
        if attribute is not None and NUMBER in attribute:
            expires_at = self._serializer.number(attribute[NUMBER])
        return is_expired(expires_at, now)

    def _value_of(self, item: dict[str, Any]) -> Any | None:
        attribute = item.get(self._value_attribute)
        if attribute is None:
            return None
        return self._serializer.unserialize(attribute.get(STRING, attribute.get(NUMBER)))

    def _to_timestamp(self, minutes: float, now: int | None = None) -> int:
        now = self._clock.now() if now is None else now
        return now + int(minutes * 60) if minutes > 0 else now
